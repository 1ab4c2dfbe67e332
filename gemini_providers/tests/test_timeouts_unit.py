"""Timeout configuration and the start-phase guard."""
from __future__ import annotations

import threading
import time

import pytest

from gemini_providers.base.timeouts import TimeoutConfig, get_timeout_config, operation_timeout


def test_defaults():
    cfg = get_timeout_config()
    assert cfg == TimeoutConfig()  # nosec B101 - asserts are appropriate in unit tests
    assert cfg.overall_timeout_seconds is None  # nosec B101 - asserts are appropriate in unit tests


def test_env_overrides_and_invalid_values(monkeypatch):
    monkeypatch.setenv("GEMINI_TIMEOUT_STREAM_SECONDS", "5")
    monkeypatch.setenv("GEMINI_TIMEOUT_START_SECONDS", "-1")
    monkeypatch.setenv("GEMINI_TIMEOUT_OVERALL_SECONDS", "soon")
    cfg = get_timeout_config()
    assert cfg.stream_timeout_seconds == 5.0  # nosec B101 - asserts are appropriate in unit tests
    assert cfg.start_timeout_seconds == TimeoutConfig().start_timeout_seconds  # nosec B101 - asserts are appropriate in unit tests
    assert cfg.overall_timeout_seconds is None  # nosec B101 - asserts are appropriate in unit tests
    assert cfg.stream_timeout().read == 5.0  # nosec B101 - asserts are appropriate in unit tests


def test_operation_timeout_interrupts_main_thread():
    with pytest.raises(TimeoutError):
        with operation_timeout(0.05):
            time.sleep(1.0)


def test_operation_timeout_disabled_for_none():
    with operation_timeout(None):
        pass
    with operation_timeout(0):
        pass


def test_operation_timeout_in_worker_thread_raises_after_block():
    errors = []

    def work():
        try:
            with operation_timeout(0.05):
                time.sleep(0.2)
        except TimeoutError as exc:
            errors.append(exc)

    worker = threading.Thread(target=work)
    worker.start()
    worker.join()
    assert len(errors) == 1  # nosec B101 - asserts are appropriate in unit tests
