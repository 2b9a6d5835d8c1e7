"""Storage helpers for source-key alias overrides."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from entitlement_recon.config import DEFAULT_ALIAS_FILE
from entitlement_recon.domain.models import Category
from entitlement_recon.domain.normalization import DEFAULT_ALIASES
from entitlement_recon.errors import UnknownCategoryError
from entitlement_recon.infrastructure.structlog_config import get_logger

logger = get_logger(__name__)

AliasOverrides = dict[str, dict[str, list[str]]]


def _normalize_overrides(raw: Any) -> dict[Category, dict[str, list[str]]]:
    normalized: dict[Category, dict[str, list[str]]] = {}
    if not isinstance(raw, dict):
        return normalized
    for category_name, fields in raw.items():
        try:
            category = Category.parse(category_name)
        except UnknownCategoryError:
            logger.warning("ignoring aliases for unknown category", category=category_name)
            continue
        if not isinstance(fields, dict):
            continue
        for field_name, aliases in fields.items():
            if field_name not in DEFAULT_ALIASES[category]:
                logger.warning("ignoring aliases for unknown field", category=category.value, field=field_name)
                continue
            if isinstance(aliases, str):
                aliases = [aliases]
            if not isinstance(aliases, list):
                continue
            cleaned = [str(alias).strip() for alias in aliases if alias is not None and str(alias).strip()]
            if cleaned:
                normalized.setdefault(category, {})[field_name] = cleaned
    return normalized


def merge_aliases(overrides: dict[Category, dict[str, list[str]]]) -> dict[Category, dict[str, tuple[str, ...]]]:
    """Defaults with override aliases tried first, duplicates removed."""
    merged: dict[Category, dict[str, tuple[str, ...]]] = {}
    for category, fields in DEFAULT_ALIASES.items():
        extra = overrides.get(category, {})
        merged[category] = {
            field_name: tuple(dict.fromkeys([*extra.get(field_name, []), *defaults]))
            for field_name, defaults in fields.items()
        }
    return merged


def load_overrides(path: Path | None = None) -> dict[Category, dict[str, list[str]]]:
    """Only the aliases stored in the override file, without the defaults."""
    override_path = path or DEFAULT_ALIAS_FILE
    if not override_path.exists():
        return {}
    try:
        data = json.loads(override_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("alias override file is not valid JSON", path=str(override_path))
        return {}
    return _normalize_overrides(data)


def load_aliases(path: Path | None = None) -> dict[Category, dict[str, tuple[str, ...]]]:
    return merge_aliases(load_overrides(path))


def save_aliases(overrides: AliasOverrides, path: Path | None = None) -> dict[Category, dict[str, tuple[str, ...]]]:
    override_path = path or DEFAULT_ALIAS_FILE
    normalized = _normalize_overrides(overrides)
    serializable = {
        category.value: fields for category, fields in sorted(normalized.items(), key=lambda item: item[0].value)
    }
    override_path.write_text(
        json.dumps(serializable, ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )
    return merge_aliases(normalized)
