"""Interval aggregator: collapse date-adjacent entitlement lines into runs."""
from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, Union

from entitlement_recon.config import (
    SENTINEL_MAX_DATE,
    SENTINEL_MIN_DATE,
    AbsentDatePolicy,
    Settings,
)
from entitlement_recon.domain.models import AggregatedRun, Entitlement
from entitlement_recon.infrastructure.structlog_config import get_logger

logger = get_logger(__name__)

Aggregatable = Union[Entitlement, AggregatedRun]

ONE_DAY = timedelta(days=1)


class IntervalAggregator:
    """Merges entitlements that share an identity key and tile the calendar.

    Two lines merge only when the later one starts exactly one day after the
    current run ends. Overlapping or identical ranges stay separate runs.
    Already-aggregated runs are accepted as input and keep their counts, so
    aggregating a run set twice is a no-op.
    """

    def __init__(
        self,
        absent_date_policy: AbsentDatePolicy = AbsentDatePolicy.SENTINEL,
        quantity_in_identity: bool = True,
        min_date: date = SENTINEL_MIN_DATE,
        max_date: date = SENTINEL_MAX_DATE,
    ) -> None:
        self._policy = absent_date_policy
        self._quantity_in_identity = quantity_in_identity
        self._min_date = min_date
        self._max_date = max_date

    @classmethod
    def from_settings(cls, settings: Settings) -> "IntervalAggregator":
        return cls(
            absent_date_policy=settings.absent_date_policy,
            quantity_in_identity=settings.quantity_in_identity,
            min_date=settings.sentinel_min_date,
            max_date=settings.sentinel_max_date,
        )

    def aggregate(self, items: Iterable[Aggregatable]) -> list[AggregatedRun]:
        groups: dict[str, list[Aggregatable]] = {}
        for item in items:
            key = self._identity_key(item)
            groups.setdefault(key, []).append(item)

        runs: list[AggregatedRun] = []
        for key, members in groups.items():
            runs.extend(self._aggregate_group(key, members))

        logger.debug("aggregated entitlement runs", groups=len(groups), runs=len(runs))
        return runs

    def _identity_key(self, item: Aggregatable) -> str:
        if isinstance(item, AggregatedRun):
            item = item.as_entitlement()
        return item.identity_key(self._quantity_in_identity)

    def _aggregate_group(self, key: str, members: list[Aggregatable]) -> list[AggregatedRun]:
        ordered = sorted(members, key=self._sort_key)
        runs: list[AggregatedRun] = []
        current = self._start_run(key, ordered[0])
        for item in ordered[1:]:
            if self._is_adjacent(current, item):
                current = replace(
                    current,
                    end_date=item.end_date,
                    merged_count=current.merged_count + _weight(item),
                )
            else:
                runs.append(current)
                current = self._start_run(key, item)
        runs.append(current)
        return runs

    def _sort_key(self, item: Aggregatable) -> tuple[date, date]:
        return (item.start_date or self._min_date, item.end_date or self._max_date)

    def _is_adjacent(self, run: AggregatedRun, item: Aggregatable) -> bool:
        if self._policy is AbsentDatePolicy.ISOLATE and None in (
            run.start_date,
            run.end_date,
            item.start_date,
            item.end_date,
        ):
            return False
        run_end = run.end_date or self._max_date
        item_start = item.start_date or self._min_date
        try:
            return run_end + ONE_DAY == item_start
        except OverflowError:
            return False

    @staticmethod
    def _start_run(key: str, item: Aggregatable) -> AggregatedRun:
        return AggregatedRun(
            identity_key=key,
            category=item.category,
            product_code=item.product_code,
            product_modifier=item.product_modifier,
            start_date=item.start_date,
            end_date=item.end_date,
            package_name=item.package_name,
            quantity=item.quantity,
            merged_count=_weight(item),
        )


def _weight(item: Aggregatable) -> int:
    return item.merged_count if isinstance(item, AggregatedRun) else 1


def aggregate_runs(
    items: Iterable[Aggregatable],
    absent_date_policy: AbsentDatePolicy = AbsentDatePolicy.SENTINEL,
    quantity_in_identity: bool = True,
) -> list[AggregatedRun]:
    """Convenience wrapper around :class:`IntervalAggregator`."""
    aggregator = IntervalAggregator(
        absent_date_policy=absent_date_policy,
        quantity_in_identity=quantity_in_identity,
    )
    return aggregator.aggregate(items)
