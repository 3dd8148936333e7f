"""One-JSON-object-per-line logging for the search engine.

Lines carry the correlation fields of :mod:`launcher_search.observability.context`
(trace/span id and, while a search is being served, its ``generation``).
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING, Any, TextIO

import orjson

from launcher_search.observability.context import get_trace_context


if TYPE_CHECKING:
    from launcher_search.config import SearchSettings


# Attributes every LogRecord has; anything else arrived through ``extra=``
_STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """Render records as compact JSON via orjson."""

    REDACT_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization"})
    MAX_MESSAGE_LEN = 2000
    MAX_EXTRA_LEN = 500

    def format(self, record: logging.LogRecord) -> str:
        entry = self._base_entry(record)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(self._extras(record))
        return orjson.dumps(entry, default=self._json_default).decode("utf-8")

    def _base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        ctx = get_trace_context()
        message = record.getMessage()
        if len(message) > self.MAX_MESSAGE_LEN:
            message = message[: self.MAX_MESSAGE_LEN] + "..."
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "trace_id": ctx.get("trace_id", ""),
            "span_id": ctx.get("span_id", ""),
        }
        _, dot, component = record.name.rpartition(".")
        if dot:
            entry["component"] = component
        if "generation" in ctx:
            entry["generation"] = ctx["generation"]
        return entry

    def _extras(self, record: logging.LogRecord) -> dict[str, Any]:
        extras: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if key.lower() in self.REDACT_KEYS:
                value = "[REDACTED]"
            elif isinstance(value, str) and len(value) > self.MAX_EXTRA_LEN:
                value = value[: self.MAX_EXTRA_LEN] + "..."
            extras[key] = value
        return extras

    @staticmethod
    def _json_default(value: Any) -> Any:
        if isinstance(value, (set, frozenset)):
            try:
                return sorted(value)
            except TypeError:
                return list(value)
        if isinstance(value, (bytes, bytearray)):
            return value.decode("utf-8", errors="replace")
        if isinstance(value, (Path, Exception)):
            return str(value)
        return repr(value)


def _level(name: str, default: int = logging.INFO) -> int:
    return getattr(logging, name.upper(), default)


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    logger_levels: dict[str, str] | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install a single handler on the root logger.

    Args:
        level: Root log level name (case-insensitive)
        json_output: JSON lines when True, plain text otherwise
        logger_levels: Per-logger level overrides (logger name -> level name)
        stream: Destination, stdout by default
    """
    root = logging.getLogger()
    root.setLevel(_level(level))
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(PLAIN_FORMAT))
    root.addHandler(handler)

    for logger_name, logger_level in (logger_levels or {}).items():
        logging.getLogger(logger_name).setLevel(_level(logger_level))


def configure_logging_from_settings(
    settings: SearchSettings,
    *,
    level: str | None = None,
    json_output: bool | None = None,
    stream: TextIO | None = None,
) -> None:
    """Apply ``settings.log_level``/``settings.log_json`` unless overridden."""
    configure_logging(
        level or settings.log_level,
        settings.log_json if json_output is None else json_output,
        stream=stream,
    )
