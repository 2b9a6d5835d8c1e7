from pathlib import Path
import json

from entitlement_recon.domain.models import Category
from entitlement_recon.domain.normalization import DEFAULT_ALIASES, resolve_field
from entitlement_recon.infrastructure.storage.alias_store import load_aliases, load_overrides, save_aliases


def test_save_and_load_aliases(tmp_path: Path):
    path = tmp_path / "alias_overrides.json"
    merged = save_aliases({"models": {"product_code": [" sku ", ""]}}, path=path)

    assert merged[Category.MODELS]["product_code"][0] == "sku"
    assert json.loads(path.read_text()) == {"models": {"product_code": ["sku"]}}

    loaded = load_aliases(path=path)
    assert loaded[Category.MODELS]["product_code"] == ("sku", *DEFAULT_ALIASES[Category.MODELS]["product_code"])
    assert loaded[Category.DATA] == DEFAULT_ALIASES[Category.DATA]


def test_loaded_aliases_drive_resolution(tmp_path: Path):
    path = tmp_path / "alias_overrides.json"
    save_aliases({"apps": {"quantity": "seats", "package_name": ["bundle"]}}, path=path)

    aliases = load_aliases(path=path)
    entitlement = resolve_field({"productCode": "A", "seats": "3", "bundle": "P2"}, Category.APPS, aliases)

    assert entitlement.quantity == 3
    assert entitlement.package_name == "P2"


def test_unknown_categories_and_fields_are_ignored(tmp_path: Path):
    path = tmp_path / "alias_overrides.json"
    path.write_text(
        json.dumps({"bundles": {"product_code": ["x"]}, "models": {"colour": ["c"], "end_date": ["expires"]}}),
        encoding="utf-8",
    )

    aliases = load_aliases(path=path)

    assert "colour" not in aliases[Category.MODELS]
    assert aliases[Category.MODELS]["end_date"][0] == "expires"


def test_missing_or_invalid_file_falls_back_to_defaults(tmp_path: Path):
    assert load_aliases(path=tmp_path / "absent.json") == DEFAULT_ALIASES

    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    assert load_aliases(path=broken) == DEFAULT_ALIASES


def test_overrides_exclude_defaults_and_can_be_cleared(tmp_path: Path):
    path = tmp_path / "alias_overrides.json"
    save_aliases({"data": {"product_code": ["feedCode"]}}, path=path)

    assert load_overrides(path=path) == {Category.DATA: {"product_code": ["feedCode"]}}

    save_aliases({}, path=path)

    assert load_overrides(path=path) == {}
    assert json.loads(path.read_text()) == {}
    assert load_aliases(path=path)[Category.DATA] == DEFAULT_ALIASES[Category.DATA]
    assert load_overrides(path=tmp_path / "absent.json") == {}
