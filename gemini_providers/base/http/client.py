"""Shared HTTP client pool.

Purpose:
    Reuse ``httpx.Client`` instances across calls so connection pooling and
    TLS sessions are shared. Clients are keyed by ``(base_url, purpose)``:
    ``"chat"`` clients use the single-shot timeout, ``"stream"`` clients use
    the per-chunk read timeout from :func:`get_timeout_config`.

Lifecycle:
    All pooled clients are closed at interpreter exit; tests may call
    :func:`close_all_clients` directly.
"""

from __future__ import annotations

import atexit
import threading
from typing import Dict, Optional, Tuple

import httpx

from ..timeouts import get_timeout_config

_CLIENTS: Dict[Tuple[Optional[str], str], httpx.Client] = {}
_LOCK = threading.RLock()


def get_httpx_client(base_url: Optional[str], purpose: str) -> httpx.Client:
    """Return a pooled ``httpx.Client`` for ``base_url`` and ``purpose``.

    Thread-safe; the first request for a key creates the client.
    """
    key = (base_url, purpose)
    with _LOCK:
        client = _CLIENTS.get(key)
        if client is not None and not client.is_closed:
            return client
        cfg = get_timeout_config()
        timeout = cfg.stream_timeout() if purpose == "stream" else cfg.http_timeout()
        client = httpx.Client(base_url=base_url or "", timeout=timeout)
        _CLIENTS[key] = client
        return client


def close_all_clients() -> None:
    """Close and forget every pooled client."""
    with _LOCK:
        clients = list(_CLIENTS.values())
        _CLIENTS.clear()
    for c in clients:
        try:
            c.close()
        except Exception:  # nosec B110 - shutdown path, nothing to recover
            pass


atexit.register(close_all_clients)

__all__ = ["get_httpx_client", "close_all_clients"]
