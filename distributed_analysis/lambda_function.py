"""lambda_function.py — Lambda bridge exposing the metric plugin over API Gateway.

Routes (via API Gateway proxy):
    POST /api/v1/analysis/run              — Publish + await verdict, returns a measurement
    POST /api/v1/analysis/resume           — Pass-through of the given measurement
    POST /api/v1/analysis/terminate        — Pass-through of the given measurement
    POST /api/v1/analysis/garbage-collect  — No-op
    POST /api/v1/analysis/metadata         — Configured table/region for a metric
    GET  /api/v1/analysis/type             — Provider type
    OPTIONS /api/v1/analysis/*             — CORS preflight

Request bodies carry the rollouts objects as JSON:
    {"analysisRun": {...}, "metric": {...}, "measurement": {...}, "limit": 10}

Environment variables:
    COORDINATION_TABLE      default: KargoArgoRolloutsIntegration
    DYNAMODB_REGION         default: ap-southeast-2
    DYNAMODB_ENDPOINT_URL   optional alternate endpoint
    LOG_LEVEL               default: INFO
    COORDINATION_INTERNAL_API_KEY(S)  optional internal key auth

The run route blocks for up to publish timeout + poll_timeout; size the
function timeout accordingly.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict

from distributed_analysis.auth import _authenticate
from distributed_analysis.config import LOG_LEVEL
from distributed_analysis.errors import ValidationError
from distributed_analysis.http_utils import _error, _parse_body, _path_method, _response
from distributed_analysis.plugin import Measurement, RpcPlugin

logger = logging.getLogger()
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

_ROUTE_PATTERN = re.compile(r"/api/v1/analysis/(?P<action>[a-z-]+)/?$")

_plugin = RpcPlugin()


def _handle_run(body: Dict[str, Any]) -> Dict[str, Any]:
    measurement = _plugin.run(body.get("analysisRun"), body.get("metric") or {})
    return _response(200, measurement.to_dict())


def _handle_resume(body: Dict[str, Any]) -> Dict[str, Any]:
    measurement = _plugin.resume(
        body.get("analysisRun"), body.get("metric"), Measurement.from_dict(body.get("measurement"))
    )
    return _response(200, measurement.to_dict())


def _handle_terminate(body: Dict[str, Any]) -> Dict[str, Any]:
    measurement = _plugin.terminate(
        body.get("analysisRun"), body.get("metric"), Measurement.from_dict(body.get("measurement"))
    )
    return _response(200, measurement.to_dict())


def _handle_garbage_collect(body: Dict[str, Any]) -> Dict[str, Any]:
    limit = body.get("limit") or 0
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(f"limit must be an integer, got {limit!r}")
    return _response(200, _plugin.garbage_collect(body.get("analysisRun"), body.get("metric"), limit).to_dict())


def _handle_metadata(body: Dict[str, Any]) -> Dict[str, Any]:
    return _response(200, _plugin.get_metadata(body.get("metric") or {}))


_POST_ROUTES = {
    "run": _handle_run,
    "resume": _handle_resume,
    "terminate": _handle_terminate,
    "garbage-collect": _handle_garbage_collect,
    "metadata": _handle_metadata,
}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Main Lambda entry point."""
    method, path = _path_method(event)
    logger.info("distributed_analysis: %s %s", method, path)

    if method == "OPTIONS":
        return _response(204, "")

    auth_error = _authenticate(event)
    if auth_error:
        return auth_error

    match = _ROUTE_PATTERN.search(path)
    action = match.group("action") if match else ""

    if method == "GET" and action == "type":
        return _response(200, {"type": _plugin.type()})

    if method != "POST" or action not in _POST_ROUTES:
        return _error(404, f"Route not found: {method} {path}")

    body = _parse_body(event)
    if not isinstance(body, dict):
        return _error(400, "Request body must be a JSON object.")

    try:
        return _POST_ROUTES[action](body)
    except ValidationError as exc:
        return _error(400, str(exc))
