"""aws_clients.py — Cached DynamoDB clients keyed by region and endpoint.

Clients are created on first use and reused for later analysis runs that
target the same region/endpoint. The client makes a single attempt per call:
the handshake performs no retries of its own and relies on the host to rerun
the whole analysis step.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import boto3
from botocore.config import Config

from distributed_analysis.config import DEFAULT_REGION

__all__ = [
    "CLIENT_CONNECT_TIMEOUT_SECONDS",
    "CLIENT_READ_TIMEOUT_SECONDS",
    "_ddb_clients",
    "_get_ddb",
]

CLIENT_CONNECT_TIMEOUT_SECONDS = 5
CLIENT_READ_TIMEOUT_SECONDS = 10

_ddb_clients: Dict[Tuple[str, str], Any] = {}


def _get_ddb(region: Optional[str] = None, endpoint_url: Optional[str] = None):
    """Get (or create) the DynamoDB client for a region/endpoint pair."""
    key = (region or DEFAULT_REGION, endpoint_url or "")
    client = _ddb_clients.get(key)
    if client is None:
        kwargs: Dict[str, Any] = {
            "region_name": key[0],
            "config": Config(
                retries={"max_attempts": 1, "mode": "standard"},
                connect_timeout=CLIENT_CONNECT_TIMEOUT_SECONDS,
                read_timeout=CLIENT_READ_TIMEOUT_SECONDS,
            ),
        }
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        client = boto3.client("dynamodb", **kwargs)
        _ddb_clients[key] = client
    return client
