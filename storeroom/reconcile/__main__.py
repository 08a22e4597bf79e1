"""
CLI entry point for inventory reconciliation.

Usage:
    python -m storeroom.reconcile stock.xlsx --scans scans.txt
    python -m storeroom.reconcile stock.xlsx --scan A1 --scan A1 --output-xlsx result.xlsx
    python -m storeroom.reconcile stock.csv --mode checklist --verify A1 --output-unverified left.xlsx
"""

import argparse
import logging
import sys
from pathlib import Path

from .adapters import read_rows
from .config import load_config
from .models import VerificationMode
from .report import (
    export_csv,
    export_unverified_xlsx,
    export_xlsx,
    format_console,
    format_status,
)
from .session import ReconciliationSession


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reconcile",
        description="Inventory reconciliation - compare counted stock against a stock file",
    )

    parser.add_argument(
        "inventory",
        metavar="FILE",
        help="Stock file (CSV, JSON or XLSX)",
    )

    parser.add_argument(
        "--mode",
        choices=[m.value for m in VerificationMode],
        default=VerificationMode.COUNT.value,
        help="count: scan codes and compare quantities; checklist: tick items off",
    )

    parser.add_argument(
        "--scans",
        metavar="FILE",
        help="Text file with one scanned code per line (use - for stdin)",
    )

    parser.add_argument(
        "--scan",
        action="append",
        default=[],
        metavar="CODE",
        help="A scanned code; repeat for more scans",
    )

    parser.add_argument(
        "--verify",
        action="append",
        default=[],
        metavar="QUERY",
        help="Checklist mode: search and tick an item; repeatable",
    )

    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="Alias/category config (default: bundled reconcile_config.json)",
    )

    parser.add_argument("--output-csv", metavar="FILE", help="Output CSV file path")
    parser.add_argument("--output-xlsx", metavar="FILE", help="Output XLSX file path")
    parser.add_argument(
        "--output-unverified",
        metavar="FILE",
        help="Checklist mode: XLSX of items not yet ticked",
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress console output",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging",
    )

    return parser


def _read_scan_codes(args) -> list[str]:
    codes = list(args.scan)
    if args.scans:
        if args.scans == "-":
            lines = sys.stdin.read().splitlines()
        else:
            path = Path(args.scans)
            if not path.exists():
                raise FileNotFoundError(f"Scan file not found: {path}")
            lines = path.read_text(encoding="utf-8").splitlines()
        codes.extend(line for line in lines if line.strip())
    return codes


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        mode = VerificationMode(args.mode)
        session = ReconciliationSession(mode=mode, config=config)

        rows = read_rows(args.inventory)
        result = session.load(rows, source=Path(args.inventory).name)
        if result.is_empty:
            print(f"Error: {result.message} in {args.inventory}", file=sys.stderr)
            return 1
        if not args.quiet:
            print(result.message)

        if mode is VerificationMode.COUNT:
            for code in _read_scan_codes(args):
                session.enqueue_scan(code)
            for scan in session.drain_scans():
                if not args.quiet:
                    print(format_status(scan))
            if not args.quiet:
                print(format_console(session.summary()))
        else:
            for query in args.verify:
                found = session.search(query)
                if found.record is None:
                    if not args.quiet:
                        print(f"[MISS] Not found: {query}")
                    continue
                session.toggle(found.record)
                if not args.quiet:
                    print(f"[OK] Verified: {found.record.display_name}")
            if not args.quiet:
                tracker = session.tracker
                print(f"Verified {tracker.verified_count} of {len(session.records)} item(s)")

        if args.output_csv:
            with open(args.output_csv, "w", newline="", encoding="utf-8") as f:
                export_csv(session.export_rows(), output=f)
            if not args.quiet:
                print(f"\nCSV exported to: {args.output_csv}")

        if args.output_xlsx:
            export_xlsx(session.export_rows(), args.output_xlsx)
            if not args.quiet:
                print(f"XLSX exported to: {args.output_xlsx}")

        if args.output_unverified:
            if mode is not VerificationMode.CHECKLIST:
                print("Error: --output-unverified needs --mode checklist", file=sys.stderr)
                return 1
            written = export_unverified_xlsx(session.records, session.tracker, args.output_unverified)
            if not args.quiet:
                if written:
                    print(f"{written} unverified item(s) exported to: {args.output_unverified}")
                else:
                    print("All items verified, nothing to export")

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
