"""config.py — Environment defaults, constants and plugin configuration parsing."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from distributed_analysis.errors import ValidationError

__all__ = [
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "DEFAULT_POLL_TIMEOUT_SECONDS",
    "DEFAULT_REGION",
    "DEFAULT_TABLE_NAME",
    "DYNAMODB_ENDPOINT_URL",
    "LOG_LEVEL",
    "PASSED_VERDICT",
    "PLUGIN_NAME",
    "PUBLISH_TIMEOUT_SECONDS",
    "PluginConfig",
    "_configure_logging",
    "_resolve_seconds",
]

# ---------------------------------------------------------------------------
# Environment defaults
# ---------------------------------------------------------------------------

DEFAULT_TABLE_NAME = os.environ.get("COORDINATION_TABLE", "KargoArgoRolloutsIntegration")
DEFAULT_REGION = os.environ.get("DYNAMODB_REGION", "ap-southeast-2")
DYNAMODB_ENDPOINT_URL = os.environ.get("DYNAMODB_ENDPOINT_URL", "")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# ---------------------------------------------------------------------------
# Protocol constants
# ---------------------------------------------------------------------------

PLUGIN_NAME = "block/rollouts-plugin-distributed-analysis-runs"
PASSED_VERDICT = "Passed"
DEFAULT_POLL_INTERVAL_SECONDS = 5
DEFAULT_POLL_TIMEOUT_SECONDS = 300
PUBLISH_TIMEOUT_SECONDS = 30

_STRING_FIELDS = ("table_name", "region", "endpoint_url", "cluster_id", "analysis_template", "namespace")
_SECONDS_FIELDS = ("poll_interval", "poll_timeout")


def _configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Set the root logger level for entry points (Lambda handler, CLI)."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s %(message)s")
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    return root


def _resolve_seconds(value: Optional[float], default: float, name: str) -> float:
    """Apply the zero/unset default and reject negative durations."""
    if value is None or value == 0:
        return float(default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number of seconds, got {value!r}")
    if value < 0:
        raise ValidationError(f"{name} must be positive, got {value!r}")
    return float(value)


@dataclass
class PluginConfig:
    table_name: str = ""
    region: str = ""
    endpoint_url: str = ""
    cluster_id: str = ""
    analysis_template: str = ""
    namespace: str = ""
    poll_interval: float = 0
    poll_timeout: float = 0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "PluginConfig":
        """Build a config from the plugin's JSON object. Unknown keys are ignored."""
        if not isinstance(raw, Mapping):
            raise ValidationError(f"plugin config must be a JSON object, got {type(raw).__name__}")
        kwargs: Dict[str, Any] = {}
        for name in _STRING_FIELDS:
            value = raw.get(name)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ValidationError(f"{name} must be a string, got {value!r}")
            kwargs[name] = value
        for name in _SECONDS_FIELDS:
            value = raw.get(name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"{name} must be a number of seconds, got {value!r}")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_metric(cls, metric: Mapping[str, Any]) -> "PluginConfig":
        """Extract the config block registered under PLUGIN_NAME from a metric definition."""
        if not isinstance(metric, Mapping):
            raise ValidationError("metric must be a JSON object")
        provider = metric.get("provider")
        plugins = provider.get("plugin") if isinstance(provider, Mapping) else None
        raw = plugins.get(PLUGIN_NAME) if isinstance(plugins, Mapping) else None
        if raw is None:
            raise ValidationError(f"metric provider has no '{PLUGIN_NAME}' plugin config")
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValidationError(f"invalid plugin config JSON: {exc}") from exc
        return cls.from_mapping(raw)

    def with_defaults(self) -> "PluginConfig":
        """Return a copy with the table, region, endpoint and poll defaults filled in."""
        return PluginConfig(
            table_name=self.table_name or DEFAULT_TABLE_NAME,
            region=self.region or DEFAULT_REGION,
            endpoint_url=self.endpoint_url or DYNAMODB_ENDPOINT_URL,
            cluster_id=self.cluster_id,
            analysis_template=self.analysis_template,
            namespace=self.namespace,
            poll_interval=_resolve_seconds(self.poll_interval, DEFAULT_POLL_INTERVAL_SECONDS, "poll_interval"),
            poll_timeout=_resolve_seconds(self.poll_timeout, DEFAULT_POLL_TIMEOUT_SECONDS, "poll_timeout"),
        )

    def validate(self) -> None:
        if not self.analysis_template:
            raise ValidationError("analysis_template is required")

    def metadata(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        if self.table_name:
            out["DynamoDBTable"] = self.table_name
        if self.region:
            out["AWSRegion"] = self.region
        return out
