"""Application services orchestrating the reconciliation workflow."""
from __future__ import annotations

from dataclasses import dataclass

from entitlement_recon.domain.models import EntitlementSnapshot
from entitlement_recon.domain.repositories import EntitlementSnapshotRepository
from entitlement_recon.domain.results import ReconciliationReport
from entitlement_recon.domain.services import EntitlementReconciler


@dataclass(slots=True)
class ReconciliationContext:
    previous_repository: EntitlementSnapshotRepository
    current_repository: EntitlementSnapshotRepository
    reconciler: EntitlementReconciler


class ReconcileEntitlementsUseCase:
    def __init__(self, context: ReconciliationContext) -> None:
        self._context = context

    def execute(self) -> tuple[ReconciliationReport, EntitlementSnapshot, EntitlementSnapshot]:
        previous = self._context.previous_repository.load_snapshot()
        current = self._context.current_repository.load_snapshot()
        report = self._context.reconciler.reconcile(previous, current)
        return report, previous, current
