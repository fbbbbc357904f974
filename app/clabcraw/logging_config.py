"""
Logging configuration for the Clabcraw agent with structured logging support.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Extra fields lifted from log records, passed via logger.info(..., extra={...})
STRUCTURED_FIELDS = [
    # Core identifiers
    "event_type", "session_id", "signer",
    # Request handling
    "method", "path", "status", "kind", "attempt", "delay",
    # Session life cycle
    "phase", "previous_phase", "move", "result",
]


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, UTC timestamps, structured extras lifted to the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update({key: getattr(record, key) for key in STRUCTURED_FIELDS if hasattr(record, key)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    def format(self, record: logging.LogRecord) -> str:
        tags = []
        session_id = getattr(record, "session_id", None)
        if session_id:
            tags.append(f"[{str(session_id)[:8]}]")
        kind = getattr(record, "kind", None)
        if kind:
            tags.append(f"{{{kind}}}")

        tags.append(record.getMessage())

        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        source = record.name.rsplit(".", 1)[-1]
        line = f"{when} {record.levelname:<7} {source}: {' '.join(tags)}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", json_console: bool = False) -> None:
    """Set up logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_console: If True, output JSON lines to console; otherwise human-readable
    """
    console_handler = logging.StreamHandler(sys.stdout)
    if json_console:
        console_handler.setFormatter(StructuredFormatter())
    else:
        console_handler.setFormatter(HumanReadableFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


# Convenience functions for structured logging
def log_retry(
    logger: logging.Logger,
    method: str,
    path: str,
    kind: str,
    attempt: int,
    delay: float,
) -> None:
    """Log a request retry with structured data."""
    extra = {
        "event_type": "retry",
        "method": method,
        "path": path,
        "kind": kind,
        "attempt": attempt,
        "delay": delay,
    }
    logger.warning(f"{method} {path} failed ({kind}), retry {attempt} in {delay:.2f}s", extra=extra)


def log_phase_change(
    logger: logging.Logger,
    session_id: str | None,
    previous_phase: str,
    phase: str,
) -> None:
    """Log a session phase transition with structured data."""
    extra: dict[str, Any] = {
        "event_type": "phase_change",
        "previous_phase": previous_phase,
        "phase": phase,
    }
    if session_id:
        extra["session_id"] = session_id
    logger.info(f"{previous_phase} -> {phase}", extra=extra)


def log_move(
    logger: logging.Logger,
    session_id: str,
    move: dict[str, Any],
) -> None:
    """Log a submitted move with structured data."""
    extra = {
        "event_type": "move",
        "session_id": session_id,
        "move": move,
    }
    msg = f"=> {move.get('action', '?')}"
    if move.get("amount") is not None:
        msg += f" {move['amount']}"
    logger.info(msg, extra=extra)
