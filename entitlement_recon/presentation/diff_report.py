"""Diff report generators for entitlement reconciliation results."""
from __future__ import annotations

import html
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Sequence

import pandas as pd

from entitlement_recon.domain.models import AggregatedRun, DiffEntry, compared_fields
from entitlement_recon.domain.results import CategoryComparison, ReconciliationReport

ROW_COLUMNS = [
    "category",
    "product_code",
    "status",
    "changed_fields",
    "previous_start_date",
    "current_start_date",
    "previous_end_date",
    "current_end_date",
    "previous_product_modifier",
    "current_product_modifier",
    "previous_package_name",
    "current_package_name",
    "previous_quantity",
    "current_quantity",
    "previous_merged_count",
    "current_merged_count",
    "identity_key",
]


def format_value(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _side(run: AggregatedRun | None, field_name: str) -> str:
    return format_value(run.value(field_name)) if run else ""


def entries_to_rows(comparison: CategoryComparison) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    fields = compared_fields(comparison.category)
    for entry in comparison.sorted_entries():
        row = {
            "category": comparison.category.value,
            "product_code": format_value(entry.product_code),
            "status": entry.status.value,
            "changed_fields": ", ".join(entry.changed_fields),
        }
        for field_name in ("start_date", "end_date", "product_modifier", "package_name", "quantity"):
            present = field_name in fields
            row[f"previous_{field_name}"] = _side(entry.previous, field_name) if present else ""
            row[f"current_{field_name}"] = _side(entry.current, field_name) if present else ""
        row["previous_merged_count"] = str(entry.previous.merged_count) if entry.previous else ""
        row["current_merged_count"] = str(entry.current.merged_count) if entry.current else ""
        row["identity_key"] = entry.identity_key
        rows.append({column: row[column] for column in ROW_COLUMNS})
    return rows


def report_to_rows(report: ReconciliationReport) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for comparison in report.iter_comparisons():
        rows.extend(entries_to_rows(comparison))
    return rows


def report_to_dataframe(report: ReconciliationReport) -> pd.DataFrame:
    return pd.DataFrame(report_to_rows(report), columns=ROW_COLUMNS)


def render_csv(report: ReconciliationReport) -> bytes:
    return report_to_dataframe(report).to_csv(index=False).encode("utf-8")


def _entry_cells(entry: DiffEntry, fields: Sequence[str]) -> str:
    cells = [f"<td>{html.escape(format_value(entry.product_code))}</td>", f"<td>{entry.status.value}</td>"]
    changed = set(entry.changed_fields)
    for field_name in fields:
        previous = html.escape(_side(entry.previous, field_name))
        current = html.escape(_side(entry.current, field_name))
        if field_name in changed:
            cells.append(f'<td class="changed">{previous} &rarr; {current}</td>')
        else:
            cells.append(f"<td>{current or previous}</td>")
    return "".join(cells)


def render_html(report: ReconciliationReport) -> str:
    sections: list[str] = []
    for comparison in report.iter_comparisons():
        title = comparison.category.value.capitalize()
        if not comparison.entries:
            sections.append(f"<h3>{title}</h3><p>No {comparison.category.value} found in either snapshot.</p>")
            continue
        fields = compared_fields(comparison.category)
        header = "".join(f"<th>{col}</th>" for col in ("product_code", "status", *fields))
        body = "".join(
            f'<tr class="{entry.status.value}">{_entry_cells(entry, fields)}</tr>'
            for entry in comparison.sorted_entries()
        )
        sections.append(f"<h3>{title}</h3><table><thead><tr>{header}</tr></thead><tbody>{body}</tbody></table>")
    caption = (
        f"<p>{html.escape(report.previous_label)} &rarr; {html.escape(report.current_label)}</p>"
    )
    return caption + "".join(sections)


def write_report_excel(report: ReconciliationReport, out_path: Path | BytesIO) -> None:
    """One sheet per category; changed previous/current cells are highlighted."""
    with pd.ExcelWriter(out_path, engine="xlsxwriter") as writer:
        yellow = writer.book.add_format({"bg_color": "#FFFF00"})
        for comparison in report.iter_comparisons():
            sheet = comparison.category.value
            frame = pd.DataFrame(entries_to_rows(comparison), columns=ROW_COLUMNS)
            frame.to_excel(writer, sheet_name=sheet, index=False)
            worksheet = writer.sheets[sheet]
            for r, row in enumerate(frame.itertuples(index=False), start=1):
                changed = [name for name in row.changed_fields.split(", ") if name]
                for field_name in changed:
                    for side in ("previous", "current"):
                        column = f"{side}_{field_name}"
                        col_idx = ROW_COLUMNS.index(column)
                        worksheet.write(r, col_idx, getattr(row, column), yellow)


def render_excel(report: ReconciliationReport) -> bytes:
    buf = BytesIO()
    write_report_excel(report, buf)
    buf.seek(0)
    return buf.getvalue()
