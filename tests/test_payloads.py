import json
from io import BytesIO
from pathlib import Path

import pytest
from structlog.testing import capture_logs

from entitlement_recon.domain.models import Category
from entitlement_recon.errors import PayloadDecodeError
from entitlement_recon.infrastructure.parsing.payloads import (
    decode_payload,
    extract_ps_number,
    order_requests,
    salesforce_snapshot,
    sml_snapshot,
)
from entitlement_recon.infrastructure.repositories.json_repositories import (
    SalesforceRequestRepository,
    SmlTenantRepository,
)


def make_request(name: str, models=(), data=(), apps=()) -> dict:
    payload = {
        "properties": {
            "provisioningDetail": {
                "entitlements": {
                    "modelEntitlements": list(models),
                    "dataEntitlements": list(data),
                    "appEntitlements": list(apps),
                }
            }
        }
    }
    return {"Name": name, "Payload_Data__c": json.dumps(payload)}


def test_salesforce_snapshot_from_request_record():
    request = make_request(
        "PS-4280",
        models=[{"productCode": "RI-RISKMODELER"}],
        apps=[{"productCode": "IC-DATABRIDGE", "packageName": "P5"}],
    )

    snapshot = salesforce_snapshot(request)

    assert snapshot.label == "PS-4280"
    assert snapshot.records(Category.MODELS) == ({"productCode": "RI-RISKMODELER"},)
    assert snapshot.records(Category.DATA) == ()
    assert len(snapshot.apps) == 1
    assert snapshot.total() == 2


def test_salesforce_snapshot_accepts_bare_payload_text():
    request = make_request("PS-1", data=[{"productCode": "DATA-EQ"}])
    payload_text = request["Payload_Data__c"]

    snapshot = salesforce_snapshot(payload_text, label="draft")

    assert snapshot.label == "draft"
    assert snapshot.data == ({"productCode": "DATA-EQ"},)


def test_invalid_payload_degrades_to_empty_snapshot():
    request = {"Name": "PS-9", "Payload_Data__c": "{not json"}

    with capture_logs() as logs:
        snapshot = salesforce_snapshot(request)

    assert snapshot.label == "PS-9"
    assert snapshot.total() == 0
    assert any(log["event"] == "could not decode salesforce payload" for log in logs)


def test_missing_payload_and_non_list_arrays_are_empty():
    assert salesforce_snapshot({"Name": "PS-10"}).total() == 0
    assert salesforce_snapshot({"Name": "PS-11", "Payload_Data__c": ""}).total() == 0

    odd = {"properties": {"provisioningDetail": {"entitlements": {"modelEntitlements": "oops"}}}}
    assert salesforce_snapshot(odd).models == ()


def test_sml_snapshot_reads_extension_data():
    response = {
        "tenantName": "acme-prod",
        "extensionData": {
            "modelEntitlements": [{"productCode": "RI-RISKMODELER"}],
            "appEntitlements": [{"name": "IC-DATABRIDGE"}],
        },
    }

    snapshot = sml_snapshot(json.dumps(response).encode("utf-8"))

    assert snapshot.label == "acme-prod"
    assert len(snapshot.models) == 1
    assert snapshot.data == ()
    assert len(snapshot.apps) == 1


def test_sml_snapshot_without_extension_data_or_json():
    assert sml_snapshot({"tenantName": "t"}).total() == 0
    with capture_logs() as logs:
        snapshot = sml_snapshot(b"\xff\xfe not json")
    assert snapshot.total() == 0
    assert snapshot.label == "sml"
    assert logs and logs[0]["log_level"] == "warning"


@pytest.mark.parametrize("source", ["[1, 2]", "{bad", b"", 42])
def test_decode_payload_rejects_non_objects(source):
    with pytest.raises(PayloadDecodeError):
        decode_payload(source)


def test_decode_payload_reads_paths_and_streams(tmp_path: Path):
    path = tmp_path / "request.json"
    path.write_text(json.dumps({"Name": "PS-1"}), encoding="utf-8")

    assert decode_payload(path) == {"Name": "PS-1"}
    assert decode_payload(BytesIO(b'{"Name": "PS-2"}')) == {"Name": "PS-2"}


@pytest.mark.parametrize(
    "name, expected",
    [("PS-4280", 4280), ("ps-12 renewal", 12), ("Request PS-7", 7), ("no number", 0), (None, 0)],
)
def test_extract_ps_number(name, expected):
    assert extract_ps_number(name) == expected


def test_order_requests_puts_higher_ps_number_last():
    older = {"Name": "PS-3"}
    newer = {"Name": "PS-5"}

    assert order_requests(newer, older) == (older, newer)
    assert order_requests(older, newer) == (older, newer)


def test_order_requests_tie_keeps_argument_order():
    first = {"Name": "PS-5", "id": 1}
    second = {"Name": "PS-5", "id": 2}

    assert order_requests(first, second) == (first, second)


def test_repositories_load_snapshots(tmp_path: Path):
    request_path = tmp_path / "ps.json"
    request_path.write_text(json.dumps(make_request("PS-20", models=[{"productCode": "A"}])), encoding="utf-8")

    salesforce = SalesforceRequestRepository(request_path).load_snapshot()
    sml = SmlTenantRepository({"extensionData": {"dataEntitlements": [{"name": "D"}]}}).load_snapshot()

    assert salesforce.label == "PS-20"
    assert salesforce.models == ({"productCode": "A"},)
    assert sml.data == ({"name": "D"},)
