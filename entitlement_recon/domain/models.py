"""Domain models for the entitlement reconciliation pipeline.

These dataclasses capture the canonical entitlement shape shared by the
normalizer, the interval aggregator and the snapshot differ. Every field is a
normalized scalar or ``None`` (absent); instances are immutable.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Mapping, Sequence

from entitlement_recon.errors import UnknownCategoryError

RawEntitlement = Mapping[str, Any]
NormalizedValue = Any

DATE_FIELDS = ("start_date", "end_date")


class Category(str, Enum):
    MODELS = "models"
    DATA = "data"
    APPS = "apps"

    @property
    def payload_key(self) -> str:
        return _PAYLOAD_KEYS[self]

    @classmethod
    def parse(cls, name: object) -> "Category":
        if isinstance(name, Category):
            return name
        lookup = str(name).strip().lower() if name is not None else ""
        for category in cls:
            aliases = {category.value, category.value.rstrip("s"), category.payload_key.lower()}
            if lookup in aliases:
                return category
        raise UnknownCategoryError(name)


_PAYLOAD_KEYS = {
    Category.MODELS: "modelEntitlements",
    Category.DATA: "dataEntitlements",
    Category.APPS: "appEntitlements",
}


class DiffStatus(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def identity_fields(category: Category, quantity_in_identity: bool = True) -> tuple[str, ...]:
    """Non-date fields forming the identity key, in key order."""
    if category is Category.APPS:
        if quantity_in_identity:
            return ("product_code", "package_name", "quantity", "product_modifier")
        return ("product_code", "package_name", "product_modifier")
    return ("product_code", "product_modifier")


def compared_fields(category: Category) -> tuple[str, ...]:
    """Attribute fields compared for entries present on both sides."""
    if category is Category.APPS:
        return ("start_date", "end_date", "product_modifier", "package_name", "quantity")
    return ("start_date", "end_date", "product_modifier")


def format_key_part(value: NormalizedValue) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_identity_key(values: Sequence[NormalizedValue]) -> str:
    return "|".join(format_key_part(value) for value in values)


@dataclass(frozen=True)
class Entitlement:
    """Canonical entitlement line as produced by the field normalizer."""

    category: Category
    product_code: str | None
    product_modifier: str | None
    start_date: date | None
    end_date: date | None
    package_name: str | None = None
    quantity: NormalizedValue = None

    def identity_key(self, quantity_in_identity: bool = True) -> str:
        fields = identity_fields(self.category, quantity_in_identity)
        return build_identity_key([getattr(self, name) for name in fields])


@dataclass(frozen=True)
class AggregatedRun:
    """One or more date-adjacent entitlements sharing an identity key."""

    identity_key: str
    category: Category
    product_code: str | None
    product_modifier: str | None
    start_date: date | None
    end_date: date | None
    package_name: str | None = None
    quantity: NormalizedValue = None
    merged_count: int = 1

    def value(self, field_name: str) -> NormalizedValue:
        return getattr(self, field_name)

    def as_entitlement(self) -> Entitlement:
        return Entitlement(
            category=self.category,
            product_code=self.product_code,
            product_modifier=self.product_modifier,
            start_date=self.start_date,
            end_date=self.end_date,
            package_name=self.package_name,
            quantity=self.quantity,
        )


@dataclass(frozen=True)
class DiffEntry:
    """Classification of one identity key across two snapshots."""

    identity_key: str
    product_code: str | None
    status: DiffStatus
    previous: AggregatedRun | None
    current: AggregatedRun | None
    changed_fields: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EntitlementSnapshot:
    """Raw entitlement arrays for one side of a comparison."""

    label: str
    models: Sequence[RawEntitlement] = field(default_factory=tuple)
    data: Sequence[RawEntitlement] = field(default_factory=tuple)
    apps: Sequence[RawEntitlement] = field(default_factory=tuple)

    def records(self, category: Category) -> Sequence[RawEntitlement]:
        return getattr(self, category.value)

    def total(self) -> int:
        return sum(len(self.records(category)) for category in Category)

    @classmethod
    def empty(cls, label: str) -> "EntitlementSnapshot":
        return cls(label=label)
