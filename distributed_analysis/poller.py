"""poller.py — Waits for the external actor to set the verdict on a coordination record.

The record is read immediately and then once per poll interval. The cadence
is constant so operators can predict the read load on the shared table. Any
store error ends the session; "record missing" and "Result unset/NULL" are
the only not-ready states.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from distributed_analysis.config import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_TIMEOUT_SECONDS,
    _resolve_seconds,
)
from distributed_analysis.deadline import _call_with_deadline
from distributed_analysis.errors import CoordinationTimeoutError, StoreError, ValidationError
from distributed_analysis.record import _extract_verdict, _record_key
from distributed_analysis.serialization import _emit_structured_observability
from distributed_analysis.store import CoordinationStore

__all__ = ["TIMEOUT_MESSAGE", "VerdictPoller"]

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "verdict not found before timeout"


class VerdictPoller:
    def __init__(
        self,
        store: CoordinationStore,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self._clock = clock
        self._sleep = sleep

    def await_verdict(
        self,
        run_id: str,
        cluster_id: str = "",
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
    ) -> str:
        """Block until a verdict appears and return it verbatim.

        Raises:
            ValidationError: empty run_id or a negative interval/timeout.
            StoreError: the first failed read.
            CoordinationTimeoutError: no verdict before ``poll_timeout`` elapsed.
        """
        if not run_id:
            raise ValidationError("analysis run UID is required")
        interval = _resolve_seconds(poll_interval, DEFAULT_POLL_INTERVAL_SECONDS, "poll_interval")
        timeout = _resolve_seconds(poll_timeout, DEFAULT_POLL_TIMEOUT_SECONDS, "poll_timeout")
        key = _record_key(run_id, cluster_id)

        started = self._clock()
        deadline = started + timeout
        reads = 0
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            reads += 1
            try:
                item = _call_with_deadline(self.store.get, key, timeout=remaining, timeout_message=TIMEOUT_MESSAGE)
            except CoordinationTimeoutError:
                break
            except StoreError:
                _emit_structured_observability(
                    component="poller",
                    event="verdict_read_failed",
                    run_id=run_id,
                    cluster_id=cluster_id,
                    latency_ms=int((self._clock() - started) * 1000),
                    error_code="StoreError",
                    extra={"reads": reads},
                )
                raise

            verdict = _extract_verdict(item)
            if verdict is not None:
                _emit_structured_observability(
                    component="poller",
                    event="verdict_received",
                    run_id=run_id,
                    cluster_id=cluster_id,
                    latency_ms=int((self._clock() - started) * 1000),
                    extra={"reads": reads, "verdict": verdict},
                )
                return verdict

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            logger.debug("Result not yet available for %s, polling again in %gs...", run_id, interval)
            self._sleep(min(interval, remaining))

        _emit_structured_observability(
            component="poller",
            event="verdict_timeout",
            run_id=run_id,
            cluster_id=cluster_id,
            latency_ms=int((self._clock() - started) * 1000),
            error_code="CoordinationTimeoutError",
            extra={"reads": reads},
        )
        raise CoordinationTimeoutError(TIMEOUT_MESSAGE)
