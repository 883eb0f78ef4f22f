"""
Core logging functionality for HCIBUS.

Every record goes through the stdlib ``logging`` package; each log type has its
own file under the per-user data directory, and the daemon can additionally
mirror everything to syslog.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Optional
from . import config

# Re-export log type constants for external modules
LOG__GENERAL = config.LOG__GENERAL
LOG__DEBUG = config.LOG__DEBUG
LOG__AGENT = config.LOG__AGENT
LOG__EVENT = config.LOG__EVENT

_LOG_PATHS: Dict[str, Path] = {
    LOG__GENERAL: config.LOG_DIR / "general.log",
    LOG__DEBUG: config.LOG_DIR / "debug.log",
    LOG__AGENT: config.LOG_DIR / "agent.log",
    LOG__EVENT: config.LOG_DIR / "event.log",
}

# Formatter identical for all files (timestamp + raw message)
_formatter = logging.Formatter("%(asctime)s %(message)s")

# Create and configure handlers
_handlers: Dict[str, logging.Handler] = {}
for log_type, path in _LOG_PATHS.items():
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError:
        # Read-only home (e.g. system service account); keep the record
        # flowing to stderr instead of refusing to start.
        handler = logging.StreamHandler()
    handler.setFormatter(_formatter)
    _handlers[log_type] = handler

# Root logger for HCIBUS
_logger = logging.getLogger("hcibus")
_logger.setLevel(logging.INFO)
_logger.propagate = False

_syslog_handler: Optional[logging.Handler] = None

# Clean up temporary variables
del log_type, path, handler


def _emit(line: str, log_type: str) -> None:
    """Emit *line* unchanged to the handler of *log_type* (and syslog when enabled)."""
    record = logging.LogRecord(
        name=f"hcibus.{log_type.lower()}",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=line.rstrip("\n"),
        args=(),
        exc_info=None,
    )
    _handlers.get(log_type, _handlers[LOG__GENERAL]).handle(record)
    if _syslog_handler is not None:
        _syslog_handler.handle(record)


def logging__debug_log(msg: str) -> None:
    """Write to debug log."""
    _emit(msg, LOG__DEBUG)


def logging__general_log(msg: str) -> None:
    """Write to general log."""
    _emit(msg, LOG__GENERAL)


def logging__agent_log(msg: str) -> None:
    """Write to agent (PIN negotiation) log."""
    _emit(msg, LOG__AGENT)


def logging__event_log(msg: str) -> None:
    """Write to event (outbound signal) log."""
    _emit(msg, LOG__EVENT)


# Map log type to function for convenience
_log_func_map = {
    LOG__GENERAL: logging__general_log,
    LOG__DEBUG: logging__debug_log,
    LOG__AGENT: logging__agent_log,
    LOG__EVENT: logging__event_log,
}


def logging__log_event(log_type: str, string_to_log: str) -> None:
    """Log an event to the specified log type."""
    _log_func_map.get(log_type, logging__general_log)(string_to_log)


def print_and_log(output_string: str, log_type: str = LOG__GENERAL) -> None:
    """Print to stdout and log to the specified log type."""
    if log_type == LOG__GENERAL:
        print(output_string)
    logging__log_event(log_type, output_string)


def enable_syslog(address: str = "/dev/log", facility: int = logging.handlers.SysLogHandler.LOG_DAEMON) -> bool:
    """Mirror every log record to syslog (daemon mode).

    Returns False when the syslog socket cannot be opened.
    """
    global _syslog_handler
    if _syslog_handler is not None:
        return True
    try:
        handler = logging.handlers.SysLogHandler(address=address, facility=facility)
    except OSError as exc:
        logging__debug_log(f"[-] syslog unavailable at {address}: {exc}")
        return False
    handler.setFormatter(logging.Formatter("hcibus: %(message)s"))
    _syslog_handler = handler
    return True


# Modern interface
def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger with the specified name.

    The logger writes to the general log file.
    """
    if not _logger.handlers:
        _logger.addHandler(_handlers[LOG__GENERAL])
    if name:
        return _logger.getChild(name)
    return _logger
