"""
Tests for the reconcile command line.

Run with: pytest storeroom/reconcile/tests/test_cli.py -v
"""

import csv
import json

import pytest
from openpyxl import load_workbook

from storeroom.reconcile.__main__ import build_parser, main


@pytest.fixture
def stock_file(tmp_path):
    path = tmp_path / "stock.json"
    path.write_text(json.dumps([
        {"product name": "TV 55", "product code": "A1", "quantity": 5, "price": 100},
        {"product name": "Phone", "product code": "B2", "serial": "IMEI9", "quantity": 3, "price": 50},
    ]))
    return path


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["stock.xlsx"])
        assert args.mode == "count"
        assert args.scan == []
        assert args.config is None

    def test_bad_mode(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["stock.xlsx", "--mode", "audit"])


class TestCountRun:
    def test_scans_and_summary(self, stock_file, tmp_path, capsys):
        scans = tmp_path / "scans.txt"
        scans.write_text("A1\nA1\n\nIMEI9\nIMEI9\nIMEI9\nZZ\n")

        assert main([str(stock_file), "--scans", str(scans)]) == 0

        out = capsys.readouterr().out
        assert "Loaded 2 record(s)" in out
        assert "[OK] Updated: TV 55 (2)" in out
        assert "[MISS] No match for code: ZZ" in out
        assert "Total expected: 8" in out
        assert "Total actual:   5" in out

    def test_csv_and_xlsx_output(self, stock_file, tmp_path):
        csv_path = tmp_path / "out.csv"
        xlsx_path = tmp_path / "out.xlsx"

        code = main([
            str(stock_file), "--scan", "B2", "--scan", "B2", "--scan", "B2",
            "--output-csv", str(csv_path), "--output-xlsx", str(xlsx_path), "-q",
        ])

        assert code == 0
        with open(csv_path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["classification"] for r in rows] == ["unclassified", "matched"]
        assert load_workbook(xlsx_path).active.max_row == 3

    def test_quiet(self, stock_file, capsys):
        assert main([str(stock_file), "--scan", "A1", "-q"]) == 0
        assert capsys.readouterr().out == ""


class TestChecklistRun:
    def test_verify_and_unverified_export(self, stock_file, tmp_path, capsys):
        left = tmp_path / "left.xlsx"

        code = main([
            str(stock_file), "--mode", "checklist",
            "--verify", "tv", "--verify", "nothing-here",
            "--output-unverified", str(left),
        ])

        assert code == 0
        out = capsys.readouterr().out
        assert "[OK] Verified: TV 55" in out
        assert "[MISS] Not found: nothing-here" in out
        assert "Verified 1 of 2 item(s)" in out

        ws = load_workbook(left).active
        assert ws[2][0].value == "Phone"
        assert ws[ws.max_row][0].value == "TOTAL"

    def test_unverified_needs_checklist(self, stock_file, tmp_path, capsys):
        code = main([str(stock_file), "--output-unverified", str(tmp_path / "x.xlsx")])
        assert code == 1
        assert "needs --mode checklist" in capsys.readouterr().err


class TestNumericInput:
    def test_infinite_quantity_loads_as_zero(self, tmp_path, capsys):
        path = tmp_path / "stock.json"
        path.write_text('[{"product name": "TV 55", "product code": "A1", "quantity": Infinity}]')
        assert main([str(path), "--scan", "A1"]) == 0
        assert "Total expected: 0" in capsys.readouterr().out


class TestErrors:
    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.csv")]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_unsupported_file(self, tmp_path, capsys):
        path = tmp_path / "stock.txt"
        path.write_text("x")
        assert main([str(path)]) == 1
        assert "Unsupported file format" in capsys.readouterr().err

    def test_no_valid_rows(self, tmp_path, capsys):
        path = tmp_path / "stock.csv"
        path.write_text("product code,quantity\nA1,3\n")
        assert main([str(path)]) == 1
        assert "No valid rows found" in capsys.readouterr().err

    def test_missing_scan_file(self, stock_file, tmp_path, capsys):
        assert main([str(stock_file), "--scans", str(tmp_path / "none.txt")]) == 1
        assert "Scan file not found" in capsys.readouterr().err
