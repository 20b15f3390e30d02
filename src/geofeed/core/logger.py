"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so that every component of
the feed logs short event names followed by structured fields, for example
``relay_connected relay=wss://nos.lol regions=42``. Two renderings exist:
human-readable key=value pairs (default) and one JSON object per line for
log aggregators.

The ``StructuredFormatter`` is a stdlib ``logging.Formatter`` that reads the
fields from the ``structured_kv`` extra attached by
[Logger][geofeed.core.logger.Logger]. Installed on the root handler by the
CLI, it also renders plain ``logging.getLogger()`` output from the utils
layer with the same ``level name message`` prefix.

Examples:
    ```python
    from geofeed.core.logger import Logger

    logger = Logger("multiplexer")
    logger.info("relay_connected", relay="wss://nos.lol", regions=42)
    # Output: relay_connected relay=wss://nos.lol regions=42

    json_logger = Logger("multiplexer", json_output=True)
    json_logger.info("relay_connected", regions=42)
    # Output: {"timestamp": "...", "level": "info", ..., "regions": 42}
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


_TRUNCATION_SUFFIX = "...<truncated {} chars>"


def _truncate(value: str, max_length: int | None) -> str:
    """Cut *value* to *max_length* characters, noting how much was dropped."""
    if max_length and len(value) > max_length:
        return value[:max_length] + _TRUNCATION_SUFFIX.format(len(value) - max_length)
    return value


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values containing whitespace, equals signs or quotes are escaped and
    wrapped in double quotes so the output stays machine-splittable.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string such as ``' relay=nos.lol reason="socket closed"'``,
        or an empty string if *kwargs* is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for key, value in kwargs.items():
        s = _truncate(str(value), max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render every log record as ``level name message key=value ...``."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        return base


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    Wraps a standard ``logging.Logger``. The public methods mirror the stdlib
    API with an added ``**kwargs`` parameter carrying the structured fields.

    Examples:
        ```python
        logger = Logger("store")
        logger.info("events_pruned", count=120, remaining=4810)
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Logger name, typically the component name. Maps to the
                underlying ``logging.getLogger(name)`` call.
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        """Name of the wrapped stdlib logger."""
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "component": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Build the ``extra`` dict carrying pre-truncated structured fields."""
        if not kwargs:
            return {}
        truncated: dict[str, Any] = {}
        for key, value in kwargs.items():
            s = str(value)
            if self._max_value_length and len(s) > self._max_value_length:
                truncated[key] = _truncate(s, self._max_value_length)
            else:
                truncated[key] = value
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            level_name = "error" if exc_info else logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, level_name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log a CRITICAL level message with optional key=value pairs."""
        self._log(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
