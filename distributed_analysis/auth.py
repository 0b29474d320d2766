"""auth.py — Optional internal API key check for the Lambda bridge.

Optional:
    COORDINATION_INTERNAL_API_KEY — enables X-Coordination-Internal-Key header auth
    COORDINATION_INTERNAL_API_KEY_PREVIOUS — rollover key accepted during rotation
    COORDINATION_INTERNAL_API_KEYS — comma-separated allowlist (active + rollover)

When no key is configured every request is accepted; the function is then
expected to sit behind IAM-authorized invocation.
"""
from __future__ import annotations

import hmac
import os
from typing import Any, Dict, Optional

from distributed_analysis.http_utils import _error

__all__ = ["INTERNAL_API_KEYS", "_authenticate", "_normalize_api_keys"]


def _normalize_api_keys(*raw_values: str) -> tuple[str, ...]:
    """Return deduplicated, non-empty key values from scalar/csv env sources."""
    keys: list[str] = []
    seen: set[str] = set()
    for raw in raw_values:
        if not raw:
            continue
        for part in str(raw).split(","):
            key = part.strip()
            if not key or key in seen:
                continue
            seen.add(key)
            keys.append(key)
    return tuple(keys)


INTERNAL_API_KEYS: tuple[str, ...] = _normalize_api_keys(
    os.environ.get("COORDINATION_INTERNAL_API_KEYS", ""),
    os.environ.get("COORDINATION_INTERNAL_API_KEY", ""),
    os.environ.get("COORDINATION_INTERNAL_API_KEY_PREVIOUS", ""),
)


def _authenticate(event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return None when the request may proceed, else a 401 response."""
    if not INTERNAL_API_KEYS:
        return None
    headers = {str(k).lower(): v for k, v in (event.get("headers") or {}).items()}
    presented = str(headers.get("x-coordination-internal-key") or "")
    if presented and any(hmac.compare_digest(presented, key) for key in INTERNAL_API_KEYS):
        return None
    return _error(401, "Authentication required.")
