"""structlog setup for the arcade server and its tooling.

Output is driven by two environment variables. LOG_FORMAT picks the renderer
("json" for aggregation, "console" or empty for a terminal) and LOG_LEVEL picks
the root threshold (INFO when unset).

Session secrets and request signatures are masked by _redact_sensitive before
any renderer sees the event, so binding one by accident cannot leak it.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
REDACTED = "[redacted]"

_LOG_FORMATS = ("json", "console", "")
_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}
_SENSITIVE_KEYS = frozenset({"secret", "signature", "expected_signature"})
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _redact_sensitive(_logger: object, _method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Mask secrets and signatures bound to an event."""
    for key in _SENSITIVE_KEYS & event_dict.keys():
        event_dict[key] = REDACTED
    return event_dict


def _serialize_enums(_logger: object, _method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    # rejection reasons and directions render as their wire strings
    enum_keys = [key for key, value in event_dict.items() if isinstance(value, Enum)]
    for key in enum_keys:
        event_dict[key] = event_dict[key].value
    return event_dict


def shared_processors() -> list[structlog.types.Processor]:
    """Processor chain used by the app and by the test configuration."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _redact_sensitive,
        _serialize_enums,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]


def _is_test() -> bool:
    return "pytest" in sys.modules


def _log_format_from_env() -> str:
    log_format = os.environ.get("LOG_FORMAT", "").strip().lower()
    if log_format not in _LOG_FORMATS:
        msg = f"Invalid LOG_FORMAT={log_format!r}; expected 'json', 'console' or nothing"
        raise ValueError(msg)
    return log_format


def _log_level_from_env() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
    try:
        return _LOG_LEVELS[name]
    except KeyError:
        msg = f"Invalid LOG_LEVEL={name!r}; expected one of {', '.join(_LOG_LEVELS)}"
        raise ValueError(msg) from None


def _formatter(log_format: str, *, colors: bool) -> structlog.stdlib.ProcessorFormatter:
    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)
    # tracebacks are formatted here, once per handler
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _open_log_file(log_dir: Path | str, log_format: str) -> logging.FileHandler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    handler = logging.FileHandler(directory / f"{stamp}.log")
    handler.setFormatter(_formatter(log_format, colors=False))
    return handler


def setup_logging(log_dir: Path | str | None = None, level: int | None = None) -> Path | None:
    """Route structlog through the stdlib root logger.

    A stdout handler is always installed. With ``log_dir`` (outside of pytest)
    a second handler writes to a new timestamped file in that directory, and
    the file path is returned.
    """
    log_format = _log_format_from_env()
    root_level = _log_level_from_env() if level is None else level

    structlog.configure(
        processors=shared_processors(),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(root_level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(log_format, colors=sys.stdout.isatty()))
    root.addHandler(console)

    if log_dir is None or _is_test():
        return None
    file_handler = _open_log_file(log_dir, log_format)
    root.addHandler(file_handler)
    return Path(file_handler.baseFilename)
