"""Exception hierarchy for entitlement reconciliation entrypoints."""
from __future__ import annotations

from typing import Any


class ReconciliationError(Exception):
    """Base exception for the package."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class UnknownCategoryError(ReconciliationError, ValueError):
    """Raised when a free-form name does not map to models, data or apps."""

    def __init__(self, name: object) -> None:
        super().__init__(f"Unknown entitlement category: {name!r}", {"category": name})


class PayloadDecodeError(ReconciliationError):
    """Raised by strict payload decoding when the source is not valid JSON."""


class ConfigurationError(ReconciliationError):
    """Raised when environment overrides cannot be interpreted."""
