"""JSON-backed repositories for entitlement snapshots."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any, Mapping

from entitlement_recon.domain.models import EntitlementSnapshot
from entitlement_recon.domain.repositories import EntitlementSnapshotRepository
from entitlement_recon.infrastructure.parsing.payloads import (
    ensure_bytes,
    salesforce_snapshot,
    sml_snapshot,
)


def _as_source(source: BytesIO | Path | bytes | Mapping[str, Any]) -> bytes | Mapping[str, Any]:
    if isinstance(source, Mapping):
        return source
    return ensure_bytes(source)


class SalesforceRequestRepository(EntitlementSnapshotRepository):
    def __init__(self, source: BytesIO | Path | bytes | Mapping[str, Any], label: str = "salesforce") -> None:
        self._source = _as_source(source)
        self._label = label

    def load_snapshot(self) -> EntitlementSnapshot:
        return salesforce_snapshot(self._source, label=self._label)


class SmlTenantRepository(EntitlementSnapshotRepository):
    def __init__(self, source: BytesIO | Path | bytes | Mapping[str, Any], label: str = "sml") -> None:
        self._source = _as_source(source)
        self._label = label

    def load_snapshot(self) -> EntitlementSnapshot:
        return sml_snapshot(self._source, label=self._label)
