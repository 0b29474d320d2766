"""deadline.py — Run a blocking store call under a deadline.

The call runs on a single-use worker thread. When the deadline fires first the
caller gets a CoordinationTimeoutError and the worker is abandoned; its result,
if it ever arrives, is discarded.

Abandoned workers are not daemon threads: concurrent.futures joins them at
interpreter exit. A short-lived process (the CLI) whose call timed out can
therefore linger after reporting the timeout until the hung botocore call
gives up, bounded by the client connect (5s) and read (10s) timeouts.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, TypeVar

from distributed_analysis.errors import CoordinationTimeoutError

__all__ = ["_call_with_deadline"]

T = TypeVar("T")


def _call_with_deadline(fn: Callable[..., T], *args: Any, timeout: float, timeout_message: str) -> T:
    if timeout <= 0:
        raise CoordinationTimeoutError(timeout_message)
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="coordination-call")
    try:
        future = pool.submit(fn, *args)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise CoordinationTimeoutError(timeout_message) from exc
    finally:
        pool.shutdown(wait=False)
