"""Entitlement reconciliation engine for PS requests and live SML state."""
from entitlement_recon.application.use_cases import ReconcileEntitlementsUseCase, ReconciliationContext
from entitlement_recon.domain.aggregation import IntervalAggregator, aggregate_runs
from entitlement_recon.domain.normalization import normalize_value, resolve_field
from entitlement_recon.domain.services import EntitlementReconciler, SnapshotDiffer, diff
from entitlement_recon.infrastructure.repositories.json_repositories import (
    SalesforceRequestRepository,
    SmlTenantRepository,
)

__all__ = [
    "ReconcileEntitlementsUseCase",
    "ReconciliationContext",
    "IntervalAggregator",
    "aggregate_runs",
    "normalize_value",
    "resolve_field",
    "EntitlementReconciler",
    "SnapshotDiffer",
    "diff",
    "SalesforceRequestRepository",
    "SmlTenantRepository",
]
