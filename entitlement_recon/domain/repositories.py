"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from typing import Protocol

from .models import EntitlementSnapshot


class EntitlementSnapshotRepository(Protocol):
    """Provides one side of a comparison as raw, already-decoded arrays."""

    def load_snapshot(self) -> EntitlementSnapshot:
        ...
