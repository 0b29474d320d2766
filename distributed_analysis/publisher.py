"""publisher.py — Writes the coordination record for one analysis attempt.

External systems in other clusters/accounts read this record, perform their
validation, and write the ``Result`` attribute back for the poller to pick up.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from distributed_analysis.config import PUBLISH_TIMEOUT_SECONDS
from distributed_analysis.deadline import _call_with_deadline
from distributed_analysis.errors import CoordinationTimeoutError, StoreError, ValidationError
from distributed_analysis.record import CoordinationRecord
from distributed_analysis.serialization import _emit_structured_observability, _now_z
from distributed_analysis.store import CoordinationStore

__all__ = ["RequestPublisher"]

logger = logging.getLogger(__name__)


class RequestPublisher:
    def __init__(
        self,
        store: CoordinationStore,
        *,
        timeout_seconds: float = PUBLISH_TIMEOUT_SECONDS,
        now: Callable[[], str] = _now_z,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValidationError(f"publish timeout must be positive, got {timeout_seconds!r}")
        self.store = store
        self.timeout_seconds = timeout_seconds
        self._now = now

    def build_record(
        self,
        run_id: str,
        template_name: str,
        cluster_id: str = "",
        namespace: str = "",
    ) -> CoordinationRecord:
        if not run_id:
            raise ValidationError("analysis run UID is required")
        if not template_name:
            raise ValidationError("analysis_template is required")
        return CoordinationRecord(
            run_id=run_id,
            template_name=template_name,
            cluster_id=cluster_id or "",
            namespace=namespace or "",
            created_at=self._now(),
        )

    def publish(
        self,
        run_id: str,
        template_name: str,
        cluster_id: str = "",
        namespace: Optional[str] = "",
    ) -> CoordinationRecord:
        """Upsert the coordination record once, under the publish deadline."""
        record = self.build_record(run_id, template_name, cluster_id, namespace or "")
        started = time.monotonic()
        try:
            _call_with_deadline(
                self.store.put,
                record.key(),
                record.attributes(),
                timeout=self.timeout_seconds,
                timeout_message=f"publish timeout: record {run_id} not written within {self.timeout_seconds:g}s",
            )
        except (StoreError, CoordinationTimeoutError) as exc:
            _emit_structured_observability(
                component="publisher",
                event="publish_failed",
                run_id=run_id,
                cluster_id=record.cluster_id,
                latency_ms=int((time.monotonic() - started) * 1000),
                error_code=type(exc).__name__,
            )
            raise

        logger.debug(
            "Wrote coordination record: AnalysisRunUid=%s, AnalysisTemplate=%s, ClusterID=%s, Namespace=%s",
            run_id,
            template_name,
            record.cluster_id,
            record.namespace,
        )
        _emit_structured_observability(
            component="publisher",
            event="record_published",
            run_id=run_id,
            cluster_id=record.cluster_id,
            latency_ms=int((time.monotonic() - started) * 1000),
            extra={"analysis_template": template_name, "namespace": record.namespace},
        )
        return record
