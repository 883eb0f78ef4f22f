"""Bluetooth reference data: wire constants, error tables and conversion helpers."""

from hcibus.bt_ref import constants, error_map, utils  # noqa: F401

__all__ = ["constants", "error_map", "utils"]
