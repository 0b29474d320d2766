"""plugin.py — Argo Rollouts metric plugin adapter.

RpcPlugin sequences publish -> await verdict -> outcome mapping for one
AnalysisRun measurement. It only talks to the store through the factory it is
given, so the handshake can be exercised without AWS or the rollouts host.

Lifecycle hooks other than ``run`` are pass-through: the record is left in
the table for the external actor and is never cleaned up here.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from distributed_analysis.config import PUBLISH_TIMEOUT_SECONDS, PluginConfig
from distributed_analysis.errors import CoordinationError, ValidationError
from distributed_analysis.outcome import map_verdict
from distributed_analysis.poller import VerdictPoller
from distributed_analysis.publisher import RequestPublisher
from distributed_analysis.serialization import _now_z
from distributed_analysis.store import CoordinationStore, _build_dynamodb_store

__all__ = [
    "PHASE_ERROR",
    "PHASE_SUCCESSFUL",
    "PROVIDER_TYPE",
    "Measurement",
    "RpcError",
    "RpcPlugin",
    "_analysis_run_uid",
]

logger = logging.getLogger(__name__)

PHASE_SUCCESSFUL = "Successful"
PHASE_ERROR = "Error"
PROVIDER_TYPE = "RpcPlugin"

_MEASUREMENT_KEYS = (
    ("phase", "phase"),
    ("value", "value"),
    ("message", "message"),
    ("started_at", "startedAt"),
    ("finished_at", "finishedAt"),
)


@dataclass
class Measurement:
    phase: str = ""
    value: str = ""
    message: str = ""
    started_at: str = ""
    finished_at: str = ""

    def mark_error(self, exc: BaseException, finished_at: str) -> "Measurement":
        self.phase = PHASE_ERROR
        self.message = str(exc)
        self.finished_at = finished_at
        return self

    def to_dict(self) -> Dict[str, str]:
        return {wire: getattr(self, attr) for attr, wire in _MEASUREMENT_KEYS if getattr(self, attr)}

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "Measurement":
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ValidationError(f"measurement must be a JSON object, got {type(raw).__name__}")
        return cls(**{attr: str(raw.get(wire) or "") for attr, wire in _MEASUREMENT_KEYS})


@dataclass
class RpcError:
    error_string: str = ""

    def has_error(self) -> bool:
        return bool(self.error_string)

    def to_dict(self) -> Dict[str, str]:
        return {"ErrorString": self.error_string}


def _analysis_run_uid(analysis_run: Optional[Mapping[str, Any]]) -> str:
    """UID of the AnalysisRun object; accepts the full object or its metadata."""
    if not isinstance(analysis_run, Mapping):
        return ""
    metadata = analysis_run.get("metadata")
    if isinstance(metadata, Mapping) and metadata.get("uid"):
        return str(metadata["uid"])
    return str(analysis_run.get("uid") or "")


StoreFactory = Callable[[PluginConfig], CoordinationStore]


class RpcPlugin:
    def __init__(
        self,
        store_factory: StoreFactory = _build_dynamodb_store,
        *,
        publish_timeout_seconds: float = PUBLISH_TIMEOUT_SECONDS,
        poller_factory: Callable[[CoordinationStore], VerdictPoller] = VerdictPoller,
        now: Callable[[], str] = _now_z,
    ) -> None:
        self.store_factory = store_factory
        self.publish_timeout_seconds = publish_timeout_seconds
        self.poller_factory = poller_factory
        self._now = now

    def init_plugin(self) -> RpcError:
        return RpcError()

    def run(self, analysis_run: Optional[Mapping[str, Any]], metric: Mapping[str, Any]) -> Measurement:
        measurement = Measurement(started_at=self._now())
        run_uid = _analysis_run_uid(analysis_run)
        try:
            return self._run(run_uid, metric, measurement)
        except CoordinationError as exc:
            logger.warning("Measurement for %s failed: %s", run_uid or "<unknown>", exc)
            return measurement.mark_error(exc, self._now())

    def _run(
        self,
        run_uid: str,
        metric: Mapping[str, Any],
        measurement: Measurement,
    ) -> Measurement:
        cfg = PluginConfig.from_metric(metric).with_defaults()
        cfg.validate()

        if not run_uid:
            raise ValidationError("analysis run UID is required")

        store = self.store_factory(cfg)
        publisher = RequestPublisher(store, timeout_seconds=self.publish_timeout_seconds, now=self._now)
        publisher.publish(run_uid, cfg.analysis_template, cfg.cluster_id, cfg.namespace)

        verdict = self.poller_factory(store).await_verdict(
            run_uid,
            cfg.cluster_id,
            poll_interval=cfg.poll_interval,
            poll_timeout=cfg.poll_timeout,
        )
        outcome = map_verdict(verdict)

        measurement.value = (
            f"analysis_template={cfg.analysis_template},cluster_id={cfg.cluster_id},"
            f"namespace={cfg.namespace},analysis_run_uid={run_uid},result={verdict}"
        )
        if outcome.passed:
            measurement.phase = PHASE_SUCCESSFUL
        else:
            measurement.phase = PHASE_ERROR
            measurement.message = outcome.message
        measurement.finished_at = self._now()
        return measurement

    def resume(self, analysis_run: Any, metric: Any, measurement: Measurement) -> Measurement:
        return measurement

    def terminate(self, analysis_run: Any, metric: Any, measurement: Measurement) -> Measurement:
        return measurement

    def garbage_collect(self, analysis_run: Any, metric: Any, limit: int) -> RpcError:
        return RpcError()

    def type(self) -> str:
        return PROVIDER_TYPE

    def get_metadata(self, metric: Mapping[str, Any]) -> Dict[str, str]:
        """Report the configured table/region; malformed config yields no metadata."""
        try:
            cfg = PluginConfig.from_metric(metric)
        except ValidationError:
            return {}
        return cfg.metadata()
