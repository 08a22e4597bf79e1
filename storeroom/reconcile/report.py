"""
Report Generator - Format reconciliation state for people and spreadsheets.

Produces flat export rows, CSV and XLSX files, the console summary and the
one-line scan status.
"""

import csv
import io
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterable, Optional, TextIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .discrepancy import evaluate
from .models import (
    Classification,
    DiscrepancySummary,
    InventoryRecord,
    ScanResult,
    VerificationMode,
)
from .tracker import VerificationTracker

EXPORT_COLUMNS = [
    "primary_key",
    "alternate_key",
    "display_name",
    "category",
    "status",
    "unit_price",
    "expected_quantity",
    "verified",
    "actual_quantity",
    "difference",
    "classification",
]

UNVERIFIED_COLUMNS = [
    "display_name",
    "primary_key",
    "code",
    "expected_quantity",
    "unit_price",
    "line_value",
    "category",
    "status",
]

# Column widths (characters) for XLSX output
_WIDTHS = {
    "display_name": 50,
    "primary_key": 20,
    "alternate_key": 20,
    "code": 20,
    "category": 20,
    "status": 20,
    "classification": 15,
}


def export_rows(records: Iterable[InventoryRecord], tracker: VerificationTracker) -> list[dict]:
    """
    One flat dict per record: canonical fields plus verification outcome.

    Checklist sessions carry `verified`; count sessions carry
    `actual_quantity`, `difference` and `classification`. The other mode's
    columns are None.
    """
    rows = []
    checklist = tracker.mode is VerificationMode.CHECKLIST
    for record in records:
        row = {
            "primary_key": record.primary_key,
            "alternate_key": record.alternate_key or "",
            "display_name": record.display_name,
            "category": record.category,
            "status": record.status,
            "unit_price": record.unit_price,
            "expected_quantity": record.expected_quantity,
        }
        if checklist:
            row.update({
                "verified": tracker.is_verified(record),
                "actual_quantity": None,
                "difference": None,
                "classification": None,
            })
        else:
            line = evaluate(record, tracker.actual_quantity(record))
            row.update({
                "verified": None,
                "actual_quantity": line.actual_quantity,
                "difference": line.difference,
                "classification": line.classification.value,
            })
        rows.append(row)
    return rows


def describe_difference(classification: str, difference: Optional[int]) -> str:
    """Operator wording for a count outcome, e.g. "Deficit 2"."""
    if classification == Classification.MATCHED.value:
        return "Matched"
    if classification == Classification.SURPLUS.value:
        return f"Surplus {difference}"
    if classification == Classification.DEFICIT.value:
        return f"Deficit {abs(difference)}"
    return "Not counted"


def export_csv(rows: list[dict], output: TextIO | None = None) -> str:
    """
    Export rows to CSV format.

    Args:
        rows: Output of export_rows()
        output: Optional file handle to write to

    Returns:
        CSV string (also writes to output if provided)
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if v is None else v for k, v in row.items()})

    csv_content = buffer.getvalue()
    if output:
        output.write(csv_content)
    return csv_content


def _write_sheet(ws, columns: list[str], rows: list[dict]):
    ws.append(columns)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append([row.get(col) for col in columns])
    for col_idx, col in enumerate(columns, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = _WIDTHS.get(col, 15)
    ws.freeze_panes = "A2"


def export_xlsx(rows: list[dict], output: str | Path | BinaryIO) -> None:
    """Write a reconciliation result workbook (one sheet, one row per record)."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Reconciliation"

    sheet_rows = []
    for row in rows:
        sheet_row = dict(row)
        if row.get("classification") is not None:
            sheet_row["classification"] = describe_difference(row["classification"], row.get("difference"))
        sheet_rows.append(sheet_row)

    _write_sheet(ws, EXPORT_COLUMNS, sheet_rows)
    wb.save(output)


def unverified_rows(records: Iterable[InventoryRecord], tracker: VerificationTracker) -> list[dict]:
    """Checklist leftovers with their line value."""
    rows = []
    for record in records:
        if tracker.is_verified(record):
            continue
        rows.append({
            "display_name": record.display_name,
            "primary_key": record.primary_key,
            "code": record.code,
            "expected_quantity": record.expected_quantity,
            "unit_price": record.unit_price,
            "line_value": record.expected_quantity * record.unit_price,
            "category": record.category,
            "status": record.status,
        })
    return rows


def export_unverified_xlsx(
    records: Iterable[InventoryRecord],
    tracker: VerificationTracker,
    output: str | Path | BinaryIO,
) -> int:
    """
    Write the not-yet-verified items plus a TOTAL value row.

    Returns:
        Number of unverified items written (0 means nothing was written)
    """
    rows = unverified_rows(records, tracker)
    if not rows:
        return 0

    wb = Workbook()
    ws = wb.active
    ws.title = "Unverified"
    _write_sheet(ws, UNVERIFIED_COLUMNS, rows)

    total = sum(r["line_value"] for r in rows)
    total_row = [None] * len(UNVERIFIED_COLUMNS)
    total_row[0] = "TOTAL"
    total_row[UNVERIFIED_COLUMNS.index("line_value")] = total
    ws.append(total_row)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    wb.save(output)
    return len(rows)


def format_status(result: ScanResult) -> str:
    """Single status line shown after each scan."""
    prefix = "OK" if result.success else "MISS"
    return f"[{prefix}] {result.message}"


def format_console(summary: DiscrepancySummary, show_lines: bool = True) -> str:
    """
    Format a count summary for console display.

    Args:
        summary: Output of aggregate()
        show_lines: Whether to list the mismatched records

    Returns:
        Formatted string for console output
    """
    lines = []

    if show_lines and summary.mismatched:
        lines.append(f"\nMISMATCHES ({len(summary.mismatched)})")
        lines.append("-" * 70)
        lines.append(f"{'CODE':<20} {'NAME':<30} {'EXP':>5} {'ACT':>5} {'DIFF':>6}")
        lines.append("-" * 70)
        for line in summary.mismatched:
            rec = line.record
            lines.append(
                f"{rec.code[:20]:<20} {rec.display_name[:30]:<30} "
                f"{rec.expected_quantity:>5} {line.actual_quantity:>5} {line.difference:>+6}"
            )

    dash = summary.dashboard()
    lines.append("\n" + "=" * 70)
    lines.append("SUMMARY")
    lines.append(f"  Total expected: {dash['total_expected']}")
    lines.append(f"  Total actual:   {dash['total_actual']}")
    lines.append(f"  Matched:        {dash['matched']}")
    lines.append(f"  Mismatched:     {dash['mismatched']}")
    lines.append(f"  Not counted:    {summary.unclassified}")
    lines.append("=" * 70)

    return "\n".join(lines)


def generate_report_filename(prefix: str = "reconcile", extension: str = "xlsx") -> str:
    """
    Generate a dated filename for an export.

    Returns:
        Filename like "reconcile_2026-01-08.xlsx"
    """
    date_str = datetime.now().strftime("%Y-%m-%d")
    return f"{prefix}_{date_str}.{extension}"
