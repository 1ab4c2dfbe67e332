"""Pytest configuration for the provider test suite.

Isolates every test from the developer's environment (Gemini env vars and the
config file cache) and closes pooled HTTP clients after the session.
"""

from __future__ import annotations

import logging
from typing import Iterator, List

import pytest

_GEMINI_ENV = (
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_BASE_URL",
    "GEMINI_COMPLETIONS_PATH",
    "GEMINI_TEMPERATURE",
    "GEMINI_EMBEDDING_MODEL",
    "GEMINI_EMBEDDING_DIMENSIONS",
    "GEMINI_PROVIDERS_CONFIG_FILE",
    "GEMINI_PROVIDERS_LOG_LEVEL",
    "GEMINI_TIMEOUT_START_SECONDS",
    "GEMINI_TIMEOUT_STREAM_SECONDS",
    "GEMINI_TIMEOUT_HTTP_SECONDS",
    "GEMINI_TIMEOUT_OVERALL_SECONDS",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear Gemini env vars and the parsed config file for each test."""
    from gemini_providers.config import reset_config_cache

    for name in _GEMINI_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture()
def log_records() -> Iterator[List[logging.LogRecord]]:
    """Capture records reaching the package base logger."""
    records: List[logging.LogRecord] = []
    handler = logging.Handler(level=logging.DEBUG)
    handler.emit = lambda record: records.append(record)  # type: ignore[method-assign]
    base = logging.getLogger("gemini_providers")
    base.addHandler(handler)
    try:
        yield records
    finally:
        base.removeHandler(handler)


@pytest.fixture(scope="session", autouse=True)
def close_http_clients_after_session() -> Iterator[None]:
    from gemini_providers.base.http import close_all_clients

    yield
    close_all_clients()
