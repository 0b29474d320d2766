"""errors.py — Coordination error taxonomy."""
from __future__ import annotations

__all__ = [
    "CoordinationError",
    "CoordinationTimeoutError",
    "StoreError",
    "ValidationError",
]


class CoordinationError(RuntimeError):
    """Base class for every failure surfaced by the handshake."""


class ValidationError(CoordinationError, ValueError):
    """Raised for missing or invalid input, before any store access."""


class StoreError(CoordinationError):
    """Raised when the backing store fails (connectivity, permission, marshalling)."""


class CoordinationTimeoutError(CoordinationError, TimeoutError):
    """Raised when the publish or poll deadline elapses."""
