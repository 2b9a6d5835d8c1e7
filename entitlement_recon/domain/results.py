"""Domain-level results for entitlement reconciliation."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from .models import Category, DiffEntry, DiffStatus


@dataclass(frozen=True)
class CategoryComparison:
    category: Category
    entries: Sequence[DiffEntry] = field(default_factory=tuple)
    previous_runs: int = 0
    current_runs: int = 0

    def by_status(self, status: DiffStatus) -> tuple[DiffEntry, ...]:
        return tuple(entry for entry in self.entries if entry.status is status)

    @property
    def added(self) -> tuple[DiffEntry, ...]:
        return self.by_status(DiffStatus.ADDED)

    @property
    def removed(self) -> tuple[DiffEntry, ...]:
        return self.by_status(DiffStatus.REMOVED)

    @property
    def updated(self) -> tuple[DiffEntry, ...]:
        return self.by_status(DiffStatus.UPDATED)

    @property
    def unchanged(self) -> tuple[DiffEntry, ...]:
        return self.by_status(DiffStatus.UNCHANGED)

    def has_changes(self) -> bool:
        return any(entry.status is not DiffStatus.UNCHANGED for entry in self.entries)

    def counts(self) -> dict[DiffStatus, int]:
        return {status: len(self.by_status(status)) for status in DiffStatus}

    def sorted_entries(self) -> list[DiffEntry]:
        """Entries ordered for display: product code, then identity key."""
        return sorted(
            self.entries,
            key=lambda entry: (str(entry.product_code or ""), entry.identity_key),
        )


@dataclass(frozen=True)
class ReconciliationSummary:
    added: int
    removed: int
    updated: int
    unchanged: int
    generated_at: datetime

    @property
    def total(self) -> int:
        return self.added + self.removed + self.updated + self.unchanged

    @classmethod
    def from_comparisons(
        cls, comparisons: Iterable[CategoryComparison], generated_at: datetime
    ) -> "ReconciliationSummary":
        totals = {status: 0 for status in DiffStatus}
        for comparison in comparisons:
            for status, count in comparison.counts().items():
                totals[status] += count
        return cls(
            added=totals[DiffStatus.ADDED],
            removed=totals[DiffStatus.REMOVED],
            updated=totals[DiffStatus.UPDATED],
            unchanged=totals[DiffStatus.UNCHANGED],
            generated_at=generated_at,
        )


@dataclass(frozen=True)
class ReconciliationReport:
    previous_label: str
    current_label: str
    summary: ReconciliationSummary
    comparisons: Mapping[Category, CategoryComparison] = field(default_factory=dict)

    def comparison(self, category: Category) -> CategoryComparison:
        return self.comparisons.get(category) or CategoryComparison(category=category)

    def has_changes(self) -> bool:
        return any(comparison.has_changes() for comparison in self.comparisons.values())

    def iter_comparisons(self) -> Iterable[CategoryComparison]:
        for category in Category:
            yield self.comparison(category)
