"""store.py — Key-value store capability used by the handshake.

Two operations are all the protocol needs:

    put(key, attributes)  unconditional upsert of the given attributes
    get(key)              point lookup, None when the record does not exist

``put`` merges: attributes it does not name are left untouched, so the
publisher never clobbers a ``Result`` already written by the external actor.
"""
from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from distributed_analysis.aws_clients import _get_ddb
from distributed_analysis.config import PluginConfig
from distributed_analysis.errors import StoreError
from distributed_analysis.serialization import _deserialize, _serialize

__all__ = [
    "CoordinationStore",
    "DynamoDBStore",
    "InMemoryStore",
    "_build_dynamodb_store",
]

logger = logging.getLogger(__name__)


class CoordinationStore(Protocol):
    def put(self, key: Mapping[str, Any], attributes: Mapping[str, Any]) -> None:
        ...

    def get(self, key: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        ...


def _client_error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code") or "Unknown")


class DynamoDBStore:
    """CoordinationStore backed by a DynamoDB table via the low-level boto3 client."""

    def __init__(self, client: Any, table_name: str, *, consistent_read: bool = True) -> None:
        self.client = client
        self.table_name = table_name
        self.consistent_read = consistent_read

    def put(self, key: Mapping[str, Any], attributes: Mapping[str, Any]) -> None:
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments = []
        try:
            ser_key = {k: _serialize(v) for k, v in key.items()}
            for idx, (name, value) in enumerate(
                (n, v) for n, v in attributes.items() if n not in key
            ):
                names[f"#a{idx}"] = name
                values[f":v{idx}"] = _serialize(value)
                assignments.append(f"#a{idx} = :v{idx}")
        except (TypeError, ValueError) as exc:
            raise StoreError(f"failed to marshal item: {exc}") from exc

        request: Dict[str, Any] = {"TableName": self.table_name, "Key": ser_key}
        if assignments:
            request["UpdateExpression"] = "SET " + ", ".join(assignments)
            request["ExpressionAttributeNames"] = names
            request["ExpressionAttributeValues"] = values
        try:
            self.client.update_item(**request)
        except ClientError as exc:
            raise StoreError(
                f"failed to put item to DynamoDB table {self.table_name} ({_client_error_code(exc)}): {exc}"
            ) from exc
        except BotoCoreError as exc:
            raise StoreError(f"failed to put item to DynamoDB table {self.table_name}: {exc}") from exc

    def get(self, key: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            resp = self.client.get_item(
                TableName=self.table_name,
                Key={k: _serialize(v) for k, v in key.items()},
                ConsistentRead=self.consistent_read,
            )
        except ClientError as exc:
            raise StoreError(
                f"failed to read from DynamoDB table {self.table_name} ({_client_error_code(exc)}): {exc}"
            ) from exc
        except BotoCoreError as exc:
            raise StoreError(f"failed to read from DynamoDB table {self.table_name}: {exc}") from exc
        raw = resp.get("Item")
        if not raw:
            return None
        return _deserialize(raw)


def _build_dynamodb_store(cfg: PluginConfig) -> DynamoDBStore:
    """Store factory used by the plugin and CLI; cfg must already carry defaults."""
    try:
        client = _get_ddb(cfg.region, cfg.endpoint_url or None)
    except BotoCoreError as exc:
        raise StoreError(f"failed to load AWS config: {exc}") from exc
    return DynamoDBStore(client, cfg.table_name)


class InMemoryStore:
    """Thread-safe in-process CoordinationStore.

    Used for tests and dry runs. ``set_attribute`` plays the external verdict
    writer; ``fail_with`` makes the next calls raise a StoreError.
    """

    def __init__(self) -> None:
        self._items: Dict[Tuple[Tuple[str, Any], ...], Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.put_calls = 0
        self.get_calls = 0
        self.fail_with: Optional[str] = None
        self.on_get: Optional[Callable[[int], None]] = None

    @staticmethod
    def _index(key: Mapping[str, Any]) -> Tuple[Tuple[str, Any], ...]:
        return tuple(sorted(key.items()))

    def put(self, key: Mapping[str, Any], attributes: Mapping[str, Any]) -> None:
        with self._lock:
            self.put_calls += 1
            if self.fail_with:
                raise StoreError(self.fail_with)
            item = self._items.setdefault(self._index(key), dict(key))
            item.update(copy.deepcopy(dict(attributes)))

    def get(self, key: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            self.get_calls += 1
            calls = self.get_calls
        if self.on_get is not None:
            self.on_get(calls)
        with self._lock:
            if self.fail_with:
                raise StoreError(self.fail_with)
            item = self._items.get(self._index(key))
            return copy.deepcopy(item) if item is not None else None

    def set_attribute(self, key: Mapping[str, Any], name: str, value: Any) -> None:
        with self._lock:
            item = self._items.setdefault(self._index(key), dict(key))
            item[name] = value

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
