"""Structured logging utilities for the Gemini provider layer.

All package loggers are children of the shared ``gemini_providers`` logger,
which owns a single stderr handler with :class:`JsonFormatter`. Events are
emitted through ``normalized_log_event`` so every line carries the canonical
keys ``structured``, ``phase``, ``attempt``, ``error_code``, ``emitted`` and
``tokens`` regardless of the call site.

The level is read from ``GEMINI_PROVIDERS_LOG_LEVEL`` on every ``get_logger``
call, which lets tests and operators change verbosity without a restart.
"""
from __future__ import annotations

import logging
import json
import sys
import os
import contextlib
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Mapping, Optional

from .log_support import JsonFormatter, LogContext

BASE_LOGGER_NAME = "gemini_providers"
LOG_LEVEL_ENV = "GEMINI_PROVIDERS_LOG_LEVEL"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_CONSOLE_HANDLER_ATTR = "_gemini_console_handler"
_FILE_HANDLER_ATTR = "_gemini_file_handler"


def _formatter(json_mode: bool) -> logging.Formatter:
    return JsonFormatter() if json_mode else logging.Formatter(_PLAIN_FORMAT)


def _parse_level(value: str | None, default: int = logging.INFO) -> int:
    """Parse a logging level name (case-insensitive); ``default`` on unknown values."""
    if not value:
        return default
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARN": logging.WARNING,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return mapping.get(value.strip().upper(), default)


def _ensure_base_logger(json_mode: bool, level: int) -> logging.Logger:
    """Initialize (once) and return the shared ``gemini_providers`` logger.

    On repeat calls the level is refreshed from the environment and a console
    handler whose stream was closed (pytest capture swaps) is replaced.
    """
    logger = logging.getLogger(BASE_LOGGER_NAME)
    desired = _parse_level(os.getenv(LOG_LEVEL_ENV), default=level)
    logger.setLevel(desired)
    console = [h for h in logger.handlers if getattr(h, _CONSOLE_HANDLER_ATTR, False)]
    for handler in console:
        stream = getattr(handler, "stream", None)
        if stream is None or getattr(stream, "closed", False) or stream is not sys.stderr:
            logger.removeHandler(handler)
            with contextlib.suppress(Exception):
                handler.close()
            continue
        handler.setLevel(desired)
        if json_mode != isinstance(handler.formatter, JsonFormatter):
            handler.setFormatter(_formatter(json_mode))
    if not any(getattr(h, _CONSOLE_HANDLER_ATTR, False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(desired)
        handler.setFormatter(_formatter(json_mode))
        setattr(handler, _CONSOLE_HANDLER_ATTR, True)
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = BASE_LOGGER_NAME, json_mode: bool = True, level: int = logging.INFO) -> logging.Logger:
    """Return ``name`` as a child of the configured base logger.

    Names outside the package namespace are nested under it
    (``"gemini"`` becomes ``"gemini_providers.gemini"``).
    """
    base = _ensure_base_logger(json_mode=json_mode, level=level)
    if name == BASE_LOGGER_NAME:
        return base
    if not name.startswith(BASE_LOGGER_NAME + "."):
        name = f"{BASE_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    return logger


def configure_logger(
    *,
    level: int | str | None = None,
    file_path: Optional[str] = None,
    json_mode: bool = True,
) -> logging.Logger:
    """Reconfigure the shared logger at runtime.

    Parameters
    ----------
    level: int | str | None
        New level (number or name). ``None`` keeps the current level.
    file_path: Optional[str]
        Attach a rotating file handler (10MB x 5) writing to this path, or
        remove the managed file handler when ``None``. Handlers attached by
        the application itself are never touched.
    json_mode: bool
        JSON or plain-text formatting for the managed handlers.
    """
    logger = _ensure_base_logger(json_mode=json_mode, level=logging.INFO)
    if level is not None:
        new_level = _parse_level(level, default=logger.level) if isinstance(level, str) else level
        logger.setLevel(new_level)
        for h in logger.handlers:
            h.setLevel(new_level)

    managed = [h for h in logger.handlers if getattr(h, _FILE_HANDLER_ATTR, False)]
    abs_path = os.path.abspath(os.path.expanduser(file_path)) if file_path else None
    for h in managed:
        if abs_path is None or getattr(h, "baseFilename", None) != abs_path:
            logger.removeHandler(h)
            with contextlib.suppress(Exception):
                h.close()
    if abs_path is None:
        return logger

    existing = next(
        (h for h in logger.handlers if getattr(h, _FILE_HANDLER_ATTR, False)),
        None,
    )
    if existing is None:
        os.makedirs(os.path.dirname(abs_path) or ".", exist_ok=True)
        existing = RotatingFileHandler(abs_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
        setattr(existing, _FILE_HANDLER_ATTR, True)
        logger.addHandler(existing)
    existing.setFormatter(_formatter(json_mode))
    existing.setLevel(logger.level)
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    keep_none: bool = False,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit one structured event as a JSON message.

    ``None`` values are dropped unless ``keep_none`` is set, which
    ``normalized_log_event`` uses to guarantee the presence of schema keys.
    """
    if not logger.isEnabledFor(level):
        return
    payload: Dict[str, Any] = {"event": event}
    if ctx:
        payload |= ctx.to_dict()
    if keep_none:
        payload.update(fields)
    else:
        payload.update({k: v for k, v in fields.items() if v is not None})
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


REQUIRED_NORMALIZED_KEYS = (
    "structured",
    "phase",
    "attempt",
    "error_code",
    "emitted",
    "tokens",
)


def _coerce_tokens(tokens: Any) -> Any:
    """Coerce token usage info (mapping, ``as_dict()`` object, pairs) to a dict."""
    if tokens is None:
        return None
    if isinstance(tokens, Mapping):
        return dict(tokens.items())
    as_dict = getattr(tokens, "as_dict", None)
    if callable(as_dict):
        return as_dict()
    if isinstance(tokens, (list, tuple)):
        try:
            return dict(tokens)
        except (TypeError, ValueError):
            return {"value": repr(tokens)}
    return {"value": repr(tokens)}


def normalized_log_event(  # noqa: PLR0913
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    phase: str,
    attempt: int | None = None,
    error_code: str | None = None,
    emitted: bool | None = None,
    tokens: Any = None,
    structured: bool = True,
    level: int = logging.INFO,
    **extra_fields: Any,
) -> None:
    """Emit a normalized structured log event with the required keys.

    ``error_code`` is omitted when ``None``; the other required keys are always
    present, ``null`` when unknown. ``extra_fields`` never overwrite a
    non-null normalized value and ``None`` extras are dropped.
    """
    fields: Dict[str, Any] = {
        "structured": structured,
        "phase": phase,
        "attempt": attempt,
        "emitted": emitted,
        "tokens": _coerce_tokens(tokens),
    }
    if error_code is not None:
        fields["error_code"] = error_code
    for k, v in extra_fields.items():
        if v is None or fields.get(k) is not None:
            continue
        fields[k] = v
    log_event(logger, event, ctx, keep_none=True, level=level, **fields)


__all__ = [
    "LogContext",
    "BASE_LOGGER_NAME",
    "get_logger",
    "configure_logger",
    "log_event",
    "normalized_log_event",
    "REQUIRED_NORMALIZED_KEYS",
]
