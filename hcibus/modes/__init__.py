"""Run-modes for the HCIBUS CLI (daemon, agent, devices)."""

__all__ = ["daemon", "agent", "devices"]
