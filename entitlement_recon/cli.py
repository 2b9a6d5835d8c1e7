"""Command-line entrypoint for entitlement reconciliation."""
from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import Any

from entitlement_recon.application.use_cases import ReconcileEntitlementsUseCase, ReconciliationContext
from entitlement_recon.config import SETTINGS, AbsentDatePolicy, Settings
from entitlement_recon.domain.models import DiffStatus
from entitlement_recon.domain.services import EntitlementReconciler
from entitlement_recon.errors import PayloadDecodeError
from entitlement_recon.infrastructure.parsing.payloads import decode_payload, order_requests
from entitlement_recon.infrastructure.repositories.json_repositories import (
    SalesforceRequestRepository,
    SmlTenantRepository,
)
from entitlement_recon.infrastructure.storage.alias_store import load_aliases
from entitlement_recon.infrastructure.structlog_config import configure_logging
from entitlement_recon.presentation.diff_report import format_value, render_csv, write_report_excel


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare entitlement snapshots from PS requests and SML")
    parser.add_argument("--csv", type=Path, help="Write the diff rows to this CSV file")
    parser.add_argument("--xlsx", type=Path, help="Write a highlighted Excel workbook to this file")
    parser.add_argument("--aliases", type=Path, help="Alias override JSON file")
    parser.add_argument(
        "--isolate-absent-dates",
        action="store_true",
        help="Never merge records that miss a start or end date",
    )
    parser.add_argument(
        "--quantity-as-attribute",
        action="store_true",
        help="Compare app quantity as an attribute instead of part of the identity",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default from settings)")
    parser.add_argument(
        "--fail-on-changes",
        action="store_true",
        help="Exit with status 1 when any entitlement differs",
    )

    subparsers = parser.add_subparsers(dest="mode", required=True)
    ps = subparsers.add_parser("ps", help="Compare two PS request JSON files")
    ps.add_argument("first", type=Path)
    ps.add_argument("second", type=Path)
    sml = subparsers.add_parser("sml", help="Compare a PS request with an SML tenant response")
    sml.add_argument("request", type=Path)
    sml.add_argument("tenant", type=Path)

    args = parser.parse_args(argv)
    inputs = (args.first, args.second) if args.mode == "ps" else (args.request, args.tenant)
    for path in inputs:
        if not path.is_file():
            parser.error(f"input file not found: {path}")
    return args


def build_settings(args: argparse.Namespace, base: Settings = SETTINGS) -> Settings:
    changes: dict[str, object] = {}
    if args.isolate_absent_dates:
        changes["absent_date_policy"] = AbsentDatePolicy.ISOLATE
    if args.quantity_as_attribute:
        changes["quantity_in_identity"] = False
    if args.aliases:
        changes["alias_file"] = args.aliases
    if args.log_level:
        changes["log_level"] = args.log_level
    return dataclasses.replace(base, **changes)


def _ps_repositories(first: Path, second: Path) -> tuple[SalesforceRequestRepository, SalesforceRequestRepository]:
    sources: list[Any] = []
    for path in (first, second):
        try:
            sources.append(decode_payload(path))
        except PayloadDecodeError:
            # The repository turns an undecodable file into an empty snapshot.
            sources.append(path)
    previous, current = order_requests(sources[0], sources[1])
    return (
        SalesforceRequestRepository(previous, label="previous"),
        SalesforceRequestRepository(current, label="current"),
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = build_settings(args)
    configure_logging(settings.log_level, force=True)

    if args.mode == "ps":
        previous_repo, current_repo = _ps_repositories(args.first, args.second)
    else:
        previous_repo = SalesforceRequestRepository(args.request, label="salesforce")
        current_repo = SmlTenantRepository(args.tenant, label="sml")

    context = ReconciliationContext(
        previous_repository=previous_repo,
        current_repository=current_repo,
        reconciler=EntitlementReconciler(settings, aliases=load_aliases(settings.alias_file)),
    )
    report, _previous, _current = ReconcileEntitlementsUseCase(context).execute()

    print("Reconciliation Summary")
    print("======================")
    print(f"Previous: {report.previous_label}")
    print(f"Current: {report.current_label}")
    summary = report.summary
    print(f"Added: {summary.added}")
    print(f"Removed: {summary.removed}")
    print(f"Updated: {summary.updated}")
    print(f"Unchanged: {summary.unchanged}")

    if report.has_changes():
        print("\nChanges detected:")
        for comparison in report.iter_comparisons():
            for entry in comparison.sorted_entries():
                if entry.status is DiffStatus.UNCHANGED:
                    continue
                detail = f" ({', '.join(entry.changed_fields)})" if entry.changed_fields else ""
                print(f"- [{comparison.category.value}] {entry.status.value} {format_value(entry.product_code)}{detail}")
    else:
        print("\nNo changes detected.")

    if args.csv:
        args.csv.write_bytes(render_csv(report))
        print(f"\nWrote {args.csv}")

    if args.xlsx:
        write_report_excel(report, args.xlsx)
        print(f"Wrote {args.xlsx}")

    if args.fail_on_changes and report.has_changes():
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
