"""Unified configuration layer for the Gemini provider.

Sources are merged in a predictable order (later wins):
    1. Built-in defaults
    2. Optional JSON config file pointed to by ``GEMINI_PROVIDERS_CONFIG_FILE``
    3. Environment variables (``GEMINI_MODEL``, ``GEMINI_BASE_URL``,
       ``GEMINI_COMPLETIONS_PATH``, ``GEMINI_TEMPERATURE``,
       ``GEMINI_EMBEDDING_MODEL``, ``GEMINI_EMBEDDING_DIMENSIONS``)
    4. API key from ``GEMINI_API_KEY`` or its alias ``GOOGLE_API_KEY`` (only
       when none was set above)
    5. In-code overrides passed to :func:`get_provider_config`

External config file structure::

    {
      "gemini": {
        "model": "gemini-2.0-flash",
        "temperature": 0.2,
        "headers": {"x-goog-user-project": "my-project"}
      }
    }

Public API
----------
* get_provider_config(provider: str, overrides: dict | None = None) -> dict
* get_model(provider: str) -> str | None
* reset_config_cache()
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Optional
import json
import logging
import os

from .env import resolve_provider_key
from .defaults import (
    GEMINI_DEFAULT_BASE_URL,
    GEMINI_DEFAULT_COMPLETIONS_PATH,
    GEMINI_DEFAULT_EMBEDDING_MODEL,
    GEMINI_DEFAULT_MODEL,
    GEMINI_DEFAULT_TEMPERATURE,
)

CONFIG_FILE_ENV = "GEMINI_PROVIDERS_CONFIG_FILE"

_logger = logging.getLogger("gemini_providers.config")


# -------------------- Defaults --------------------

DEFAULTS: Dict[str, Dict[str, Any]] = {
    "gemini": {
        "model": GEMINI_DEFAULT_MODEL,
        "base_url": GEMINI_DEFAULT_BASE_URL,
        "completions_path": GEMINI_DEFAULT_COMPLETIONS_PATH,
        "temperature": GEMINI_DEFAULT_TEMPERATURE,
        "embedding_model": GEMINI_DEFAULT_EMBEDDING_MODEL,
    },
}


# field -> (env suffix, parser)
ENV_FIELD_MAP: Dict[str, tuple[str, Callable[[str], Any]]] = {
    "model": ("MODEL", str),
    "base_url": ("BASE_URL", str),
    "completions_path": ("COMPLETIONS_PATH", str),
    "temperature": ("TEMPERATURE", float),
    "embedding_model": ("EMBEDDING_MODEL", str),
    "embedding_dimensions": ("EMBEDDING_DIMENSIONS", int),
}


_FILE_CACHE: Optional[Dict[str, Any]] = None


def reset_config_cache() -> None:
    """Forget the parsed config file (tests and hot reload)."""
    global _FILE_CACHE
    _FILE_CACHE = None


def _load_external_config() -> Dict[str, Any]:
    global _FILE_CACHE
    if _FILE_CACHE is not None:
        return _FILE_CACHE
    path = os.getenv(CONFIG_FILE_ENV)
    if not path or not Path(path).exists():
        _FILE_CACHE = {}
        return _FILE_CACHE
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        _logger.warning("ignoring unreadable config file %s: %s", path, exc)
        data = {}
    if not isinstance(data, dict):
        data = {}
    _FILE_CACHE = data
    return data


def _env_overrides(provider: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    prefix = provider.upper()
    for field, (suffix, parse) in ENV_FIELD_MAP.items():
        val = os.getenv(f"{prefix}_{suffix}")
        if val is None or not val.strip():
            continue
        try:
            out[field] = parse(val.strip())
        except ValueError:
            _logger.warning("ignoring invalid %s_%s=%r", prefix, suffix, val)
    return out


def get_provider_config(provider: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return merged configuration for a provider.

    Merge order (later wins): defaults -> config file -> env vars -> env key -> overrides.
    ``None`` values in ``overrides`` are ignored.
    """
    name = (provider or "").lower().strip()
    cfg: Dict[str, Any] = {}

    cfg |= DEFAULTS.get(name, {})

    file_cfg = _load_external_config().get(name)
    if isinstance(file_cfg, dict):
        cfg |= file_cfg

    cfg |= _env_overrides(name)

    if not cfg.get("api_key"):
        key, _env_name = resolve_provider_key(name)
        if key:
            cfg["api_key"] = key

    if overrides:
        cfg |= {k: v for k, v in overrides.items() if v is not None}

    return cfg


def get_model(provider: str) -> Optional[str]:
    return get_provider_config(provider).get("model")


__all__ = [
    "CONFIG_FILE_ENV",
    "get_provider_config",
    "get_model",
    "reset_config_cache",
    "DEFAULTS",
]
