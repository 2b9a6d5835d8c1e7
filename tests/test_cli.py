import csv
import json
from pathlib import Path

import pytest

from entitlement_recon.cli import main


def write_request(path: Path, name: str, models=(), apps=()) -> Path:
    payload = {
        "properties": {
            "provisioningDetail": {
                "entitlements": {"modelEntitlements": list(models), "appEntitlements": list(apps)}
            }
        }
    }
    path.write_text(json.dumps({"Name": name, "Payload_Data__c": json.dumps(payload)}), encoding="utf-8")
    return path


@pytest.fixture
def requests(tmp_path: Path) -> tuple[Path, Path]:
    newer = write_request(
        tmp_path / "newer.json",
        "PS-4280",
        models=[{"productCode": "RI-RISKMODELER", "startDate": "2025-01-01", "endDate": "2025-12-31"}],
        apps=[{"productCode": "IC-DATABRIDGE", "packageName": "P5", "quantity": 2}],
    )
    older = write_request(
        tmp_path / "older.json",
        "PS-4279",
        models=[{"productCode": "RI-RISKMODELER", "startDate": "2025-01-01", "endDate": "2025-06-30"}],
        apps=[{"productCode": "IC-DATABRIDGE", "packageName": "P5", "quantity": 1}],
    )
    return newer, older


def test_ps_mode_orders_requests_and_writes_csv(requests, tmp_path: Path, capsys):
    newer, older = requests
    csv_path = tmp_path / "diff.csv"
    xlsx_path = tmp_path / "diff.xlsx"

    exit_code = main(["--csv", str(csv_path), "--xlsx", str(xlsx_path), "ps", str(newer), str(older)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Previous: PS-4279" in out
    assert "Current: PS-4280" in out
    assert "Updated: 1" in out
    assert "- [models] updated RI-RISKMODELER (end_date)" in out
    assert "Added: 1" in out and "Removed: 1" in out
    rows = list(csv.DictReader(csv_path.read_text(encoding="utf-8").splitlines()))
    assert {row["status"] for row in rows} == {"updated", "added", "removed"}
    assert xlsx_path.read_bytes()[:2] == b"PK"


def test_quantity_as_attribute_flag(requests, capsys):
    newer, older = requests

    main(["--quantity-as-attribute", "ps", str(older), str(newer)])

    out = capsys.readouterr().out
    assert "Updated: 2" in out
    assert "- [apps] updated IC-DATABRIDGE (quantity)" in out


def test_fail_on_changes_sets_exit_status(requests, capsys):
    newer, older = requests

    assert main(["--fail-on-changes", "ps", str(older), str(newer)]) == 1
    assert main(["--fail-on-changes", "ps", str(older), str(older)]) == 0
    assert "No changes detected." in capsys.readouterr().out


def test_sml_mode_compares_request_with_tenant(requests, tmp_path: Path, capsys):
    newer, _older = requests
    tenant = tmp_path / "tenant.json"
    tenant.write_text(
        json.dumps(
            {
                "tenantName": "acme-prod",
                "extensionData": {
                    "modelEntitlements": [
                        {"productCode": "RI-RISKMODELER", "startDate": "2025-01-01", "endDate": "2025-06-30"},
                        {"productCode": "RI-RISKMODELER", "startDate": "2025-07-01", "endDate": "2025-12-31"},
                    ],
                    "appEntitlements": [{"name": "IC-DATABRIDGE", "packageName": "P5", "quantity": "2"}],
                },
            }
        ),
        encoding="utf-8",
    )

    exit_code = main(["sml", str(newer), str(tenant)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Current: acme-prod" in out
    assert "Unchanged: 2" in out
    assert "No changes detected." in out


def test_unreadable_request_is_treated_as_empty(requests, tmp_path: Path, capsys):
    newer, _older = requests
    broken = tmp_path / "broken.json"
    broken.write_text("{oops", encoding="utf-8")

    exit_code = main(["ps", str(broken), str(newer)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Added: 2" in out


@pytest.mark.parametrize("mode", ["ps", "sml"])
def test_missing_input_file_exits_with_usage_error(mode, requests, tmp_path: Path, capsys):
    newer, _older = requests
    missing = tmp_path / "missing.json"

    with pytest.raises(SystemExit) as excinfo:
        main([mode, str(newer), str(missing)])

    assert excinfo.value.code == 2
    assert f"input file not found: {missing}" in capsys.readouterr().err
