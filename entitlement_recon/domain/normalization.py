"""Field normalizer: raw, schema-ambiguous records to canonical entitlements.

Source systems spell the same concept differently (``productCode``,
``product_code``, ``ProductCode``). Resolution is driven by an ordered alias
table per category and canonical field, so supporting a new source schema
means adding aliases, not code.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Iterable, Mapping, Sequence

from entitlement_recon.domain.models import (
    DATE_FIELDS,
    Category,
    Entitlement,
    NormalizedValue,
    RawEntitlement,
)
from entitlement_recon.infrastructure.structlog_config import get_logger

logger = get_logger(__name__)

AliasTable = Mapping[Category, Mapping[str, Sequence[str]]]

_PRODUCT_CODE = ("productCode", "product_code", "ProductCode")
_COMMON_ALIASES = {
    "product_modifier": ("productModifier", "product_modifier", "ProductModifier"),
    "start_date": ("startDate", "start_date", "StartDate"),
    "end_date": ("endDate", "end_date", "EndDate"),
}

DEFAULT_ALIASES: dict[Category, dict[str, tuple[str, ...]]] = {
    Category.MODELS: {
        "product_code": _PRODUCT_CODE,
        **_COMMON_ALIASES,
    },
    Category.DATA: {
        # Live-system data lines are sometimes labelled only by name.
        "product_code": _PRODUCT_CODE + ("name",),
        **_COMMON_ALIASES,
    },
    Category.APPS: {
        "product_code": _PRODUCT_CODE + ("name",),
        "package_name": ("packageName", "package_name", "PackageName"),
        "quantity": ("quantity", "Quantity"),
        **_COMMON_ALIASES,
    },
}

# Tried in order after ISO parsing.
DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%Y/%m/%d",
    "%d-%m-%Y",
    "%m/%d/%y",
    "%d/%m/%Y",
    "%Y%m%d",
)

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_date(value: object) -> date | None:
    """Parse ``value`` into a calendar date, discarding time of day."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is not None:
        return parse_date(parsed)

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_number(text: str) -> int | float | None:
    """Coerce a numeric string; ``None`` when it is not a finite number."""
    stripped = text.strip()
    if not _NUMERIC_RE.match(stripped):
        return None
    if _INTEGER_RE.match(stripped):
        return int(stripped)
    number = float(stripped)
    if not math.isfinite(number):
        return None
    if number.is_integer():
        return int(number)
    return number


def normalize_value(value: object, is_date: bool = False) -> NormalizedValue:
    """Normalize a field value for storage and comparison.

    Blank values become ``None``; dates become ``datetime.date`` (or ``None``
    when unparsable); numeric strings become numbers; other strings are
    trimmed. NaN and infinities are absent. Anything else passes through
    unchanged. Never raises.
    """
    if _is_blank(value):
        return None
    if is_date:
        return parse_date(value)
    if isinstance(value, str):
        number = parse_number(value)
        if number is not None:
            return number
        return value.strip()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _first_present(record: RawEntitlement, keys: Iterable[str]) -> object:
    for key in keys:
        value = record.get(key)
        if not _is_blank(value):
            return value
    return None


def resolve_field(
    record: RawEntitlement,
    category: Category,
    aliases: AliasTable | None = None,
) -> Entitlement:
    """Resolve ``record`` into the canonical shape for ``category``."""
    table = (aliases or DEFAULT_ALIASES)[category]
    if not isinstance(record, Mapping):
        record = {}

    values: dict[str, NormalizedValue] = {}
    for field_name, keys in table.items():
        raw = _first_present(record, keys)
        values[field_name] = normalize_value(raw, is_date=field_name in DATE_FIELDS)
    return Entitlement(category=category, **values)


def normalize_records(
    records: Iterable[object] | None,
    category: Category,
    aliases: AliasTable | None = None,
) -> list[Entitlement]:
    """Resolve every mapping in ``records``; anything else is skipped."""
    entitlements: list[Entitlement] = []
    skipped = 0
    for record in records or ():
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        entitlements.append(resolve_field(record, category, aliases))
    if skipped:
        logger.debug("skipped non-mapping entitlement records", category=category.value, skipped=skipped)
    return entitlements
