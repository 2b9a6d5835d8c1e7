from pathlib import Path

import pytest

from entitlement_recon.config import (
    DEFAULT_ALIAS_FILE,
    SENTINEL_MAX_DATE,
    SENTINEL_MIN_DATE,
    AbsentDatePolicy,
    load_settings,
)
from entitlement_recon.domain.models import Category
from entitlement_recon.errors import ConfigurationError, UnknownCategoryError


def test_defaults_without_environment():
    settings = load_settings({})

    assert settings.absent_date_policy is AbsentDatePolicy.SENTINEL
    assert settings.quantity_in_identity is True
    assert settings.alias_file == DEFAULT_ALIAS_FILE
    assert settings.sentinel_min_date == SENTINEL_MIN_DATE
    assert settings.sentinel_max_date == SENTINEL_MAX_DATE


def test_environment_overrides():
    settings = load_settings(
        {
            "ENTITLEMENT_RECON_ABSENT_DATE_POLICY": " Isolate ",
            "ENTITLEMENT_RECON_QUANTITY_IN_IDENTITY": "no",
            "ENTITLEMENT_RECON_ALIAS_FILE": "/tmp/aliases.json",
            "ENTITLEMENT_RECON_LOG_LEVEL": "debug",
        }
    )

    assert settings.absent_date_policy is AbsentDatePolicy.ISOLATE
    assert settings.quantity_in_identity is False
    assert settings.alias_file == Path("/tmp/aliases.json")
    assert settings.log_level == "debug"


@pytest.mark.parametrize(
    "environ",
    [
        {"ENTITLEMENT_RECON_ABSENT_DATE_POLICY": "exclude-everything"},
        {"ENTITLEMENT_RECON_QUANTITY_IN_IDENTITY": "maybe"},
    ],
)
def test_invalid_overrides_raise(environ):
    with pytest.raises(ConfigurationError):
        load_settings(environ)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("models", Category.MODELS),
        ("Model", Category.MODELS),
        ("modelEntitlements", Category.MODELS),
        ("data", Category.DATA),
        ("dataEntitlements", Category.DATA),
        (" apps ", Category.APPS),
        ("app", Category.APPS),
        (Category.APPS, Category.APPS),
    ],
)
def test_category_parse(name, expected):
    assert Category.parse(name) is expected


def test_unknown_category_is_a_value_error():
    with pytest.raises(UnknownCategoryError) as excinfo:
        Category.parse("bundles")

    assert isinstance(excinfo.value, ValueError)
    assert excinfo.value.details == {"category": "bundles"}
