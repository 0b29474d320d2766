from __future__ import annotations

import json

import pytest

import distributed_analysis.auth as auth_mod
from distributed_analysis import lambda_function as mod
from distributed_analysis.config import PLUGIN_NAME
from distributed_analysis.plugin import RpcPlugin
from distributed_analysis.poller import VerdictPoller

ANALYSIS_RUN = {"metadata": {"uid": "abc-123"}}
METRIC = {
    "name": "distributed",
    "provider": {
        "plugin": {
            PLUGIN_NAME: {
                "analysis_template": "canary-check",
                "table_name": "tbl",
                "region": "eu-west-1",
                "poll_interval": 1,
                "poll_timeout": 3,
            }
        }
    },
}


def _event(method, path, body=None, headers=None):
    event = {"requestContext": {"http": {"method": method, "path": path}}, "headers": headers or {}}
    if body is not None:
        event["body"] = body if isinstance(body, str) else json.dumps(body)
    return event


@pytest.fixture(autouse=True)
def plugin(monkeypatch, store, clock):
    monkeypatch.setattr(auth_mod, "INTERNAL_API_KEYS", ())
    p = RpcPlugin(
        store_factory=lambda cfg: store,
        poller_factory=lambda s: VerdictPoller(s, clock=clock, sleep=clock.sleep),
        now=lambda: "2026-10-16T00:00:00Z",
    )
    monkeypatch.setattr(mod, "_plugin", p)
    return p


def test_run_returns_successful_measurement(store):
    store.on_get = lambda calls: store.set_attribute({"AnalysisRunUid": "abc-123"}, "Result", "Passed")

    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/run", {"analysisRun": ANALYSIS_RUN, "metric": METRIC}), None)

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["phase"] == "Successful"
    assert body["startedAt"] == "2026-10-16T00:00:00Z"
    assert "result=Passed" in body["value"]


def test_run_failure_is_measurement_not_http_error():
    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/run", {"analysisRun": {}, "metric": METRIC}), None)

    assert resp["statusCode"] == 200
    assert json.loads(resp["body"]) == {
        "phase": "Error",
        "message": "analysis run UID is required",
        "startedAt": "2026-10-16T00:00:00Z",
        "finishedAt": "2026-10-16T00:00:00Z",
    }


def test_resume_and_terminate_pass_measurement_through():
    measurement = {"phase": "Successful", "value": "v", "startedAt": "a", "finishedAt": "b"}
    for action in ("resume", "terminate"):
        resp = mod.lambda_handler(
            _event("POST", f"/api/v1/analysis/{action}", {"analysisRun": ANALYSIS_RUN, "metric": METRIC, "measurement": measurement}),
            None,
        )
        assert resp["statusCode"] == 200
        assert json.loads(resp["body"]) == measurement


def test_garbage_collect():
    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/garbage-collect", {"limit": 5}), None)
    assert json.loads(resp["body"]) == {"ErrorString": ""}


def test_garbage_collect_rejects_bad_limit():
    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/garbage-collect", {"limit": "five"}), None)
    assert resp["statusCode"] == 400


def test_metadata():
    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/metadata", {"metric": METRIC}), None)
    assert json.loads(resp["body"]) == {"DynamoDBTable": "tbl", "AWSRegion": "eu-west-1"}


def test_type():
    resp = mod.lambda_handler(_event("GET", "/api/v1/analysis/type"), None)
    assert json.loads(resp["body"]) == {"type": "RpcPlugin"}


def test_options_preflight():
    assert mod.lambda_handler(_event("OPTIONS", "/api/v1/analysis/run"), None)["statusCode"] == 204


def test_unknown_route_404():
    assert mod.lambda_handler(_event("POST", "/api/v1/analysis/delete", {}), None)["statusCode"] == 404
    assert mod.lambda_handler(_event("GET", "/api/v1/analysis/run"), None)["statusCode"] == 404


def test_malformed_body_400():
    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/run", "{nope"), None)
    assert resp["statusCode"] == 400


def test_internal_key_required_when_configured(monkeypatch):
    monkeypatch.setattr(auth_mod, "INTERNAL_API_KEYS", ("secret",))

    denied = mod.lambda_handler(_event("GET", "/api/v1/analysis/type"), None)
    allowed = mod.lambda_handler(_event("GET", "/api/v1/analysis/type", headers={"x-coordination-internal-key": "secret"}), None)

    assert denied["statusCode"] == 401
    assert allowed["statusCode"] == 200


def test_run_with_non_object_metadata_is_error_measurement(store):
    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/run", {"analysisRun": {"metadata": "oops"}, "metric": {}}), None)

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["phase"] == "Error"
    assert store.put_calls == 0


def test_run_store_failure_is_error_measurement(store):
    store.fail_with = "AccessDeniedException: not authorized"

    resp = mod.lambda_handler(_event("POST", "/api/v1/analysis/run", {"analysisRun": ANALYSIS_RUN, "metric": METRIC}), None)

    assert resp["statusCode"] == 200
    body = json.loads(resp["body"])
    assert body["phase"] == "Error"
    assert "AccessDeniedException" in body["message"]


@pytest.mark.parametrize("action", ["resume", "terminate"])
def test_non_object_measurement_400(action):
    resp = mod.lambda_handler(_event("POST", f"/api/v1/analysis/{action}", {"measurement": "oops"}), None)

    assert resp["statusCode"] == 400
    assert "measurement must be a JSON object" in json.loads(resp["body"])["error"]
