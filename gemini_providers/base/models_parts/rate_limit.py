"""
Rate-limit information read from response headers.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional

_HEADER_FIELDS = {
    "x-ratelimit-limit-requests": "requests_limit",
    "x-ratelimit-remaining-requests": "requests_remaining",
    "x-ratelimit-limit-tokens": "tokens_limit",
    "x-ratelimit-remaining-tokens": "tokens_remaining",
}


@dataclass(frozen=True)
class RateLimit:
    """Request and token quotas; ``None`` for anything the provider did not send."""

    requests_limit: Optional[int] = None
    requests_remaining: Optional[int] = None
    tokens_limit: Optional[int] = None
    tokens_remaining: Optional[int] = None
    retry_after: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str] | None) -> Optional["RateLimit"]:
        """Parse the ``x-ratelimit-*`` headers; ``None`` when none is present.

        Header lookup is case-insensitive. Non-integer values are ignored.
        """
        if not headers:
            return None
        lowered = {k.lower(): v for k, v in headers.items()}
        values: Dict[str, Any] = {}
        for header, attr in _HEADER_FIELDS.items():
            raw = lowered.get(header)
            if raw is None:
                continue
            try:
                values[attr] = int(raw)
            except ValueError:
                continue
        if "retry-after" in lowered:
            values["retry_after"] = lowered["retry-after"]
        return cls(**values) if values else None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["RateLimit"]
