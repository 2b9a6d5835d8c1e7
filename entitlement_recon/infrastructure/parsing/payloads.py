"""Extraction of entitlement arrays from Salesforce and SML payloads."""
from __future__ import annotations

import json
import re
from io import BytesIO
from pathlib import Path
from typing import Any, Mapping, TypeVar

from entitlement_recon.domain.models import Category, EntitlementSnapshot
from entitlement_recon.errors import PayloadDecodeError
from entitlement_recon.infrastructure.structlog_config import get_logger

logger = get_logger(__name__)

PAYLOAD_FIELD = "Payload_Data__c"
ENTITLEMENTS_PATH = ("properties", "provisioningDetail", "entitlements")
SML_ENTITLEMENTS_PATH = ("extensionData",)

_PS_NUMBER_RE = re.compile(r"PS-(\d+)", re.IGNORECASE)

Source = BytesIO | Path | bytes | str
T = TypeVar("T")


def ensure_bytes(source: BytesIO | Path | bytes) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, Path):
        return source.read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def decode_payload(source: Source | Mapping[str, Any]) -> Mapping[str, Any]:
    """Decode JSON text into a mapping, raising :class:`PayloadDecodeError`."""
    if isinstance(source, Mapping):
        return source
    if not isinstance(source, (str, bytes, BytesIO, Path)):
        raise PayloadDecodeError("Unsupported payload type", {"type": type(source).__name__})
    try:
        text = source if isinstance(source, str) else ensure_bytes(source).decode("utf-8-sig")
        decoded = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PayloadDecodeError("Payload is not valid JSON", {"error": str(exc)}) from exc
    if not isinstance(decoded, Mapping):
        raise PayloadDecodeError("Payload must be a JSON object", {"type": type(decoded).__name__})
    return decoded


def _dig(payload: Mapping[str, Any], path: tuple[str, ...]) -> Mapping[str, Any]:
    node: Any = payload
    for key in path:
        if not isinstance(node, Mapping):
            return {}
        node = node.get(key)
    return node if isinstance(node, Mapping) else {}


def _entitlement_arrays(container: Mapping[str, Any]) -> dict[str, tuple[Any, ...]]:
    arrays: dict[str, tuple[Any, ...]] = {}
    for category in Category:
        values = container.get(category.payload_key)
        arrays[category.value] = tuple(values) if isinstance(values, list) else ()
    return arrays


def extract_ps_number(name: object) -> int:
    """``"PS-4280"`` -> ``4280``; ``0`` when no PS number is present."""
    match = _PS_NUMBER_RE.search(str(name or ""))
    return int(match.group(1)) if match else 0


def order_requests(first: T, second: T) -> tuple[T, T]:
    """Return ``(previous, current)``; the higher PS number is current."""
    if extract_ps_number(_request_name(first)) > extract_ps_number(_request_name(second)):
        return second, first
    return first, second


def _request_name(request: object) -> object:
    return request.get("Name") if isinstance(request, Mapping) else None


def salesforce_snapshot(request: Source | Mapping[str, Any], label: str = "salesforce") -> EntitlementSnapshot:
    """Snapshot from a PS request record (or its bare payload).

    Undecodable payloads yield an empty snapshot instead of an error.
    """
    try:
        record = decode_payload(request)
        label = str(record.get("Name") or label)
        payload: Any = record
        if PAYLOAD_FIELD in record:
            raw = record.get(PAYLOAD_FIELD)
            payload = decode_payload(raw) if raw else {}
    except PayloadDecodeError as exc:
        logger.warning("could not decode salesforce payload", label=label, **exc.details)
        return EntitlementSnapshot.empty(label)
    return EntitlementSnapshot(label=label, **_entitlement_arrays(_dig(payload, ENTITLEMENTS_PATH)))


def sml_snapshot(response: Source | Mapping[str, Any], label: str = "sml") -> EntitlementSnapshot:
    """Snapshot from an SML tenant response (``extensionData`` arrays)."""
    try:
        payload = decode_payload(response)
    except PayloadDecodeError as exc:
        logger.warning("could not decode sml response", label=label, **exc.details)
        return EntitlementSnapshot.empty(label)
    label = str(payload.get("tenantName") or label)
    return EntitlementSnapshot(label=label, **_entitlement_arrays(_dig(payload, SML_ENTITLEMENTS_PATH)))
