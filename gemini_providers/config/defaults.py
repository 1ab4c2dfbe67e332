"""gemini_providers.config.defaults
================================

Central place for small, stable default values. They can be overridden via
environment variables or the external config file, and provide sensible
fallbacks for local development and tests.

Only plain constants live here (no I/O, no package imports) so any module can
import this one without creating a cycle.
"""

from __future__ import annotations

# ---- Gemini endpoint ----
GEMINI_PROVIDER_NAME = "gemini"
GEMINI_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
# Path prefix before "/{model}:generateContent" (and ":embedContent").
GEMINI_DEFAULT_COMPLETIONS_PATH = "/v1beta/models"

# ---- Model defaults ----
GEMINI_DEFAULT_MODEL = "gemini-2.0-flash"
GEMINI_DEFAULT_TEMPERATURE = 0.7

# ---- Embeddings ----
GEMINI_DEFAULT_EMBEDDING_MODEL = "gemini-embedding-exp-03-07"
# batchEmbedContents accepts at most this many requests per call.
GEMINI_MAX_EMBEDDING_BATCH = 100

# ---- Retry ----
GEMINI_DEFAULT_MAX_ATTEMPTS = 3
GEMINI_DEFAULT_RETRY_DELAY_BASE = 2.0

__all__ = [
    "GEMINI_PROVIDER_NAME",
    "GEMINI_DEFAULT_BASE_URL",
    "GEMINI_DEFAULT_COMPLETIONS_PATH",
    "GEMINI_DEFAULT_MODEL",
    "GEMINI_DEFAULT_TEMPERATURE",
    "GEMINI_DEFAULT_EMBEDDING_MODEL",
    "GEMINI_MAX_EMBEDDING_BATCH",
    "GEMINI_DEFAULT_MAX_ATTEMPTS",
    "GEMINI_DEFAULT_RETRY_DELAY_BASE",
]
