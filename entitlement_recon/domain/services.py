"""Domain services: snapshot differ and the three-stage reconciler."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Mapping, Sequence

from entitlement_recon.config import SETTINGS, Settings
from entitlement_recon.infrastructure.structlog_config import get_logger

from .aggregation import IntervalAggregator
from .models import (
    DATE_FIELDS,
    AggregatedRun,
    Category,
    DiffEntry,
    DiffStatus,
    EntitlementSnapshot,
    RawEntitlement,
    compared_fields,
)
from .normalization import AliasTable, normalize_records, normalize_value
from .results import CategoryComparison, ReconciliationReport, ReconciliationSummary

logger = get_logger(__name__)


def changed_fields(
    previous: AggregatedRun,
    current: AggregatedRun,
    attribute_fields: Sequence[str],
) -> tuple[str, ...]:
    """Names of attributes whose normalized values differ, in ``attribute_fields`` order."""
    changes: list[str] = []
    for name in attribute_fields:
        is_date = name in DATE_FIELDS
        if normalize_value(previous.value(name), is_date) != normalize_value(current.value(name), is_date):
            changes.append(name)
    return tuple(changes)


def diff(
    previous_runs: Iterable[AggregatedRun],
    current_runs: Iterable[AggregatedRun],
    attribute_fields: Sequence[str],
) -> list[DiffEntry]:
    """Classify every identity key seen in either snapshot.

    The output carries one entry per distinct key and is unordered; callers
    sort before display. Empty input on either side is valid.
    """
    previous_map = _to_map(previous_runs, side="previous")
    current_map = _to_map(current_runs, side="current")

    entries: list[DiffEntry] = []
    for key, previous in previous_map.items():
        current = current_map.get(key)
        if current is None:
            entries.append(
                DiffEntry(
                    identity_key=key,
                    product_code=previous.product_code,
                    status=DiffStatus.REMOVED,
                    previous=previous,
                    current=None,
                )
            )
            continue
        changes = changed_fields(previous, current, attribute_fields)
        entries.append(
            DiffEntry(
                identity_key=key,
                product_code=previous.product_code,
                status=DiffStatus.UPDATED if changes else DiffStatus.UNCHANGED,
                previous=previous,
                current=current,
                changed_fields=changes,
            )
        )

    for key, current in current_map.items():
        if key not in previous_map:
            entries.append(
                DiffEntry(
                    identity_key=key,
                    product_code=current.product_code,
                    status=DiffStatus.ADDED,
                    previous=None,
                    current=current,
                )
            )
    return entries


def _to_map(runs: Iterable[AggregatedRun], side: str) -> Mapping[str, AggregatedRun]:
    mapping: dict[str, AggregatedRun] = {}
    for run in runs:
        if run.identity_key in mapping:
            # Overlapping ranges leave several runs per key; the last one is compared.
            logger.warning("duplicate identity key in snapshot", side=side, identity_key=run.identity_key)
        mapping[run.identity_key] = run
    return mapping


class SnapshotDiffer:
    """Compares aggregated run sets using the attribute list of a category."""

    def compare(
        self,
        category: Category,
        previous_runs: Sequence[AggregatedRun],
        current_runs: Sequence[AggregatedRun],
    ) -> CategoryComparison:
        entries = diff(previous_runs, current_runs, compared_fields(category))
        return CategoryComparison(
            category=category,
            entries=tuple(entries),
            previous_runs=len(previous_runs),
            current_runs=len(current_runs),
        )


class EntitlementReconciler:
    """Runs normalizer, aggregator and differ for each entitlement category."""

    def __init__(self, settings: Settings | None = None, aliases: AliasTable | None = None) -> None:
        self._settings = settings or SETTINGS
        self._aliases = aliases
        self._aggregator = IntervalAggregator.from_settings(self._settings)
        self._differ = SnapshotDiffer()

    def aggregate(self, category: Category, records: Iterable[RawEntitlement]) -> list[AggregatedRun]:
        return self._aggregator.aggregate(normalize_records(records, category, self._aliases))

    def compare_category(
        self,
        category: Category,
        previous_records: Iterable[RawEntitlement],
        current_records: Iterable[RawEntitlement],
    ) -> CategoryComparison:
        previous_runs = self.aggregate(category, previous_records)
        current_runs = self.aggregate(category, current_records)
        return self._differ.compare(category, previous_runs, current_runs)

    def reconcile(self, previous: EntitlementSnapshot, current: EntitlementSnapshot) -> ReconciliationReport:
        comparisons = {
            category: self.compare_category(category, previous.records(category), current.records(category))
            for category in Category
        }
        summary = ReconciliationSummary.from_comparisons(
            comparisons.values(), generated_at=datetime.now(timezone.utc)
        )
        logger.debug(
            "reconciled entitlement snapshots",
            previous=previous.label,
            current=current.label,
            added=summary.added,
            removed=summary.removed,
            updated=summary.updated,
            unchanged=summary.unchanged,
        )
        return ReconciliationReport(
            previous_label=previous.label,
            current_label=current.label,
            summary=summary,
            comparisons=comparisons,
        )
