"""Central configuration for the entitlement reconciliation package."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Mapping

from entitlement_recon.errors import ConfigurationError

# Stand-ins used only for ordering and adjacency; never emitted.
SENTINEL_MIN_DATE = date(1900, 1, 1)
SENTINEL_MAX_DATE = date(2099, 12, 31)

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_ALIAS_FILE = BASE_DIR / "alias_overrides.json"

ENV_PREFIX = "ENTITLEMENT_RECON_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class AbsentDatePolicy(str, Enum):
    """How the aggregator treats records missing a start or end date."""

    SENTINEL = "sentinel"
    ISOLATE = "isolate"


@dataclass(slots=True, frozen=True)
class Settings:
    absent_date_policy: AbsentDatePolicy = AbsentDatePolicy.SENTINEL
    quantity_in_identity: bool = True
    sentinel_min_date: date = SENTINEL_MIN_DATE
    sentinel_max_date: date = SENTINEL_MAX_DATE
    alias_file: Path = DEFAULT_ALIAS_FILE
    log_level: str = "warning"


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}", {"variable": name})


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from ``ENTITLEMENT_RECON_*`` environment variables."""
    env = os.environ if environ is None else environ

    policy_name = env.get(f"{ENV_PREFIX}ABSENT_DATE_POLICY", AbsentDatePolicy.SENTINEL.value)
    try:
        policy = AbsentDatePolicy(policy_name.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(
            f"Unsupported absent date policy {policy_name!r}",
            {"allowed": [p.value for p in AbsentDatePolicy]},
        ) from exc

    quantity_raw = env.get(f"{ENV_PREFIX}QUANTITY_IN_IDENTITY")
    quantity_in_identity = True
    if quantity_raw is not None:
        quantity_in_identity = _parse_bool(f"{ENV_PREFIX}QUANTITY_IN_IDENTITY", quantity_raw)

    alias_raw = env.get(f"{ENV_PREFIX}ALIAS_FILE")
    alias_file = Path(alias_raw) if alias_raw else DEFAULT_ALIAS_FILE

    return Settings(
        absent_date_policy=policy,
        quantity_in_identity=quantity_in_identity,
        alias_file=alias_file,
        log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "warning"),
    )


SETTINGS = load_settings()
