"""Unit tests for the shared helpers: serialization, AWS clients, HTTP envelope, auth, errors."""

from __future__ import annotations

import json
import logging
import unittest
from unittest.mock import MagicMock, patch

import distributed_analysis.auth as auth_mod
import distributed_analysis.aws_clients as clients
from distributed_analysis.auth import _authenticate, _normalize_api_keys
from distributed_analysis.aws_clients import _get_ddb
from distributed_analysis.errors import (
    CoordinationError,
    CoordinationTimeoutError,
    StoreError,
    ValidationError,
)
from distributed_analysis.http_utils import _error, _parse_body, _path_method, _response
from distributed_analysis.serialization import (
    _deserialize,
    _emit_structured_observability,
    _now_z,
    _serialize,
)


class SerializationTests(unittest.TestCase):
    def test_serialize_string(self):
        self.assertEqual(_serialize("hello"), {"S": "hello"})

    def test_serialize_none_is_null(self):
        self.assertEqual(_serialize(None), {"NULL": True})

    def test_serialize_float(self):
        self.assertEqual(_serialize(3.14)["N"], "3.14")

    def test_deserialize_item(self):
        item = {"AnalysisRunUid": {"S": "abc"}, "Result": {"NULL": True}, "count": {"N": "42"}}
        result = _deserialize(item)
        self.assertEqual(result["AnalysisRunUid"], "abc")
        self.assertIsNone(result["Result"])
        self.assertEqual(result["count"], 42)

    def test_now_z_format(self):
        self.assertRegex(_now_z(), r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")

    def test_module_exports(self):
        import distributed_analysis.serialization as ser

        self.assertEqual(
            sorted(ser.__all__),
            ["_deserialize", "_emit_structured_observability", "_now_z", "_serialize"],
        )
        self.assertFalse(hasattr(ser, "_serialize_item"))
        self.assertFalse(hasattr(ser, "_unix_now"))

    def test_structured_observability_line(self):
        with self.assertLogs("distributed_analysis.serialization", level=logging.INFO) as captured:
            _emit_structured_observability(component="poller", event="verdict_received", run_id="abc", latency_ms=-5)
        line = captured.records[0].getMessage()
        self.assertTrue(line.startswith("[OBSERVABILITY] "))
        payload = json.loads(line[len("[OBSERVABILITY] "):])
        self.assertEqual(payload["event"], "verdict_received")
        self.assertEqual(payload["run_id"], "abc")
        self.assertEqual(payload["latency_ms"], 0)


class AwsClientTests(unittest.TestCase):
    def setUp(self):
        clients._ddb_clients.clear()

    def tearDown(self):
        clients._ddb_clients.clear()

    @patch("distributed_analysis.aws_clients.boto3")
    def test_get_ddb_cached_per_region(self, mock_boto3):
        mock_boto3.client.side_effect = lambda *args, **kwargs: MagicMock()

        first = _get_ddb("eu-west-1")
        second = _get_ddb("eu-west-1")
        other = _get_ddb("us-east-1")

        self.assertIs(first, second)
        self.assertIsNot(first, other)
        self.assertEqual(mock_boto3.client.call_count, 2)

    @patch("distributed_analysis.aws_clients.boto3")
    def test_get_ddb_single_attempt_and_endpoint(self, mock_boto3):
        _get_ddb("eu-west-1", "http://localhost:8000")

        args, kwargs = mock_boto3.client.call_args
        self.assertEqual(args, ("dynamodb",))
        self.assertEqual(kwargs["region_name"], "eu-west-1")
        self.assertEqual(kwargs["endpoint_url"], "http://localhost:8000")
        self.assertEqual(kwargs["config"].retries["max_attempts"], 1)

    @patch("distributed_analysis.aws_clients.boto3")
    def test_get_ddb_defaults_region(self, mock_boto3):
        _get_ddb()
        self.assertEqual(mock_boto3.client.call_args.kwargs["region_name"], clients.DEFAULT_REGION)
        self.assertNotIn("endpoint_url", mock_boto3.client.call_args.kwargs)


class HttpUtilsTests(unittest.TestCase):
    def test_response_format(self):
        resp = _response(200, {"phase": "Successful"})
        self.assertEqual(resp["statusCode"], 200)
        self.assertEqual(resp["headers"]["Content-Type"], "application/json")
        self.assertEqual(json.loads(resp["body"]), {"phase": "Successful"})

    def test_error_format(self):
        body = json.loads(_error(400, "bad input", field="metric")["body"])
        self.assertEqual(body, {"success": False, "error": "bad input", "field": "metric"})

    def test_parse_body_base64(self):
        import base64

        raw = base64.b64encode(b'{"key": "b64"}').decode()
        self.assertEqual(_parse_body({"body": raw, "isBase64Encoded": True}), {"key": "b64"})

    def test_parse_body_malformed(self):
        self.assertIsNone(_parse_body({"body": "{not json"}))

    def test_path_method(self):
        event = {"requestContext": {"http": {"method": "post", "path": "/api/v1/analysis/run"}}}
        self.assertEqual(_path_method(event), ("POST", "/api/v1/analysis/run"))


class AuthTests(unittest.TestCase):
    def setUp(self):
        self._orig = auth_mod.INTERNAL_API_KEYS

    def tearDown(self):
        auth_mod.INTERNAL_API_KEYS = self._orig

    def test_normalize_api_keys(self):
        self.assertEqual(_normalize_api_keys("a, b", "", "b,c"), ("a", "b", "c"))

    def test_no_keys_configured_allows(self):
        auth_mod.INTERNAL_API_KEYS = ()
        self.assertIsNone(_authenticate({"headers": {}}))

    def test_rollover_key_accepted_case_insensitive_header(self):
        auth_mod.INTERNAL_API_KEYS = ("active", "previous")
        self.assertIsNone(_authenticate({"headers": {"X-Coordination-Internal-Key": "previous"}}))

    def test_wrong_key_rejected(self):
        auth_mod.INTERNAL_API_KEYS = ("active",)
        resp = _authenticate({"headers": {"x-coordination-internal-key": "nope"}})
        self.assertEqual(resp["statusCode"], 401)


class ErrorTaxonomyTests(unittest.TestCase):
    def test_hierarchy(self):
        self.assertTrue(issubclass(ValidationError, CoordinationError))
        self.assertTrue(issubclass(ValidationError, ValueError))
        self.assertTrue(issubclass(StoreError, CoordinationError))
        self.assertTrue(issubclass(CoordinationTimeoutError, TimeoutError))
        self.assertTrue(issubclass(CoordinationTimeoutError, CoordinationError))


if __name__ == "__main__":
    unittest.main()
