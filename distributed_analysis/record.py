"""record.py — The coordination record and its DynamoDB attribute layout.

Attribute names are PascalCase to match the table schema shared with the
external verdict writers:

    AnalysisRunUid    partition key, one per analysis attempt
    ClusterID         origin cluster; part of the key when non-empty
    AnalysisTemplate  validation being coordinated
    Namespace         reference only
    Timestamp         RFC 3339, set by the publisher
    Result            verdict, written by the external actor
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "ATTR_CLUSTER_ID",
    "ATTR_NAMESPACE",
    "ATTR_RESULT",
    "ATTR_RUN_UID",
    "ATTR_TEMPLATE",
    "ATTR_TIMESTAMP",
    "CoordinationRecord",
    "_extract_verdict",
    "_record_key",
]

logger = logging.getLogger(__name__)

ATTR_RUN_UID = "AnalysisRunUid"
ATTR_CLUSTER_ID = "ClusterID"
ATTR_TEMPLATE = "AnalysisTemplate"
ATTR_NAMESPACE = "Namespace"
ATTR_TIMESTAMP = "Timestamp"
ATTR_RESULT = "Result"


def _record_key(run_id: str, cluster_id: str = "") -> Dict[str, str]:
    key = {ATTR_RUN_UID: run_id}
    if cluster_id:
        key[ATTR_CLUSTER_ID] = cluster_id
    return key


def _extract_verdict(item: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Return the terminal verdict, or None while the record is not ready.

    A missing record, a missing ``Result``, an explicit NULL and an empty
    string are all "not ready".
    """
    if not item:
        return None
    value = item.get(ATTR_RESULT)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        logger.warning("Ignoring non-string %s attribute: %r", ATTR_RESULT, value)
        return None
    return value


@dataclass
class CoordinationRecord:
    run_id: str
    template_name: str
    cluster_id: str = ""
    namespace: str = ""
    created_at: str = ""
    result: Optional[str] = None

    @property
    def origin_cluster_id(self) -> str:
        return self.cluster_id

    def key(self) -> Dict[str, str]:
        return _record_key(self.run_id, self.cluster_id)

    def attributes(self) -> Dict[str, Any]:
        """Identity attributes written by the publisher. Never includes Result."""
        return {
            ATTR_TEMPLATE: self.template_name,
            ATTR_CLUSTER_ID: self.cluster_id,
            ATTR_NAMESPACE: self.namespace,
            ATTR_TIMESTAMP: self.created_at,
        }

    def to_item(self) -> Dict[str, Any]:
        item: Dict[str, Any] = {ATTR_RUN_UID: self.run_id}
        item.update(self.attributes())
        if self.result is not None:
            item[ATTR_RESULT] = self.result
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "CoordinationRecord":
        result = item.get(ATTR_RESULT)
        return cls(
            run_id=str(item.get(ATTR_RUN_UID) or ""),
            template_name=str(item.get(ATTR_TEMPLATE) or ""),
            cluster_id=str(item.get(ATTR_CLUSTER_ID) or ""),
            namespace=str(item.get(ATTR_NAMESPACE) or ""),
            created_at=str(item.get(ATTR_TIMESTAMP) or ""),
            result=result if isinstance(result, str) else None,
        )
