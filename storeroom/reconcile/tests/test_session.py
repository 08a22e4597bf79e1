"""
Tests for the discrepancy aggregator and the reconciliation session.

Run with: pytest storeroom/reconcile/tests/test_session.py -v
"""

import pytest

from storeroom.reconcile.config import CategoryRule, Config
from storeroom.reconcile.discrepancy import aggregate, classify, evaluate
from storeroom.reconcile.models import (
    Classification,
    InventoryRecord,
    ModeError,
    StaleRecordError,
    VerificationMode,
)
from storeroom.reconcile.navigator import FilterSet
from storeroom.reconcile.session import IDLE_STATUS, ReconciliationSession
from storeroom.reconcile.tracker import VerificationTracker


@pytest.fixture
def config():
    return Config(category_rules=[CategoryRule(category="tivi", keywords=["tv"])])


@pytest.fixture
def two_rows():
    return [
        {"product name": "TV 55", "product code": "A1", "quantity": "5"},
        {"product name": "Phone", "product code": "B2", "quantity": "3"},
    ]


@pytest.fixture
def count_session(config, two_rows):
    session = ReconciliationSession(mode=VerificationMode.COUNT, config=config)
    session.load(two_rows)
    return session


@pytest.fixture
def checklist_session(config):
    session = ReconciliationSession(mode=VerificationMode.CHECKLIST, config=config)
    session.load([
        {"name": "TV 55", "product code": "A1", "serial": "S-1", "status": "New"},
        {"name": "Phone", "product code": "B2", "status": "New"},
        {"name": "TV 43", "product code": "C3", "status": "Demo"},
        {"name": "TV 32", "product code": "D4", "status": "New"},
    ])
    return session


class TestClassify:
    @pytest.mark.parametrize("expected,actual,classification", [
        (5, 5, Classification.MATCHED),
        (5, 7, Classification.SURPLUS),
        (5, 2, Classification.DEFICIT),
        (5, None, Classification.UNCLASSIFIED),
        (0, 0, Classification.MATCHED),
    ])
    def test_classify(self, expected, actual, classification):
        assert classify(expected, actual) is classification

    def test_evaluate_difference(self):
        record = InventoryRecord(position=0, primary_key="A1", display_name="TV", expected_quantity=5)
        assert evaluate(record, 3).difference == -2
        assert evaluate(record, None).difference is None


class TestAggregate:
    def test_reference_scenario(self, count_session):
        for _ in range(3):
            count_session.scan("A1")
        for _ in range(3):
            count_session.scan("B2")

        a1 = count_session.index.lookup_primary_key("A1")
        assert count_session.tracker.actual_quantity(a1) == 3

        summary = count_session.summary()
        assert summary.matched == 1
        assert summary.deficit == 1
        assert summary.surplus == 0
        assert summary.total_expected == 8
        assert summary.total_actual == 6
        assert [(l.record.primary_key, l.difference) for l in summary.mismatched] == [("A1", -2)]
        assert summary.mismatched[0].classification is Classification.DEFICIT

    def test_unobserved_records_not_in_totals(self, count_session):
        count_session.scan("B2")
        summary = count_session.summary()
        assert summary.total_expected == 8
        assert summary.total_actual == 1
        assert summary.unclassified == 1
        assert summary.deficit == 1

    def test_idempotent(self, count_session):
        count_session.scan("A1")
        count_session.set_actual_quantity(count_session.record_at(1), 9)
        assert count_session.summary() == count_session.summary()

    def test_does_not_mutate(self, count_session):
        before = count_session.tracker.snapshot()
        aggregate(count_session.records, count_session.tracker)
        assert dict(count_session.tracker.snapshot()) == dict(before)

    def test_mismatched_load_order(self):
        records = [
            InventoryRecord(position=i, primary_key=f"K{i}", display_name=f"Item {i}", expected_quantity=2)
            for i in range(4)
        ]
        tracker = VerificationTracker(records, VerificationMode.COUNT)
        tracker.set_actual_quantity(records[3], 5)
        tracker.set_actual_quantity(records[1], 0)
        tracker.set_actual_quantity(records[2], 2)
        summary = aggregate(records, tracker)
        assert [l.record.position for l in summary.mismatched] == [1, 3]
        assert (summary.surplus, summary.deficit, summary.matched) == (1, 1, 1)

    def test_empty(self):
        summary = aggregate([], VerificationTracker([], VerificationMode.COUNT))
        assert summary.dashboard() == {"total_expected": 0, "total_actual": 0, "matched": 0, "mismatched": 0}


class TestSessionLoad:
    def test_load_result(self, config, two_rows):
        session = ReconciliationSession(config=config)
        result = session.load(two_rows, source="stock.xlsx")
        assert not result.is_empty
        assert len(session.records) == 2
        assert session.generation.source == "stock.xlsx"
        assert session.records[0].category == "tivi"

    def test_reload_replaces_everything(self, count_session):
        count_session.scan("A1")
        count_session.search("xyz")
        old_generation = count_session.generation

        count_session.load([{"product name": "Speaker", "product code": "A1", "quantity": "1"}])

        assert count_session.generation.id != old_generation.id
        assert len(count_session.history) == 0
        assert count_session.last_scan_status == IDLE_STATUS
        record = count_session.record_at(0)
        assert record.display_name == "Speaker"
        assert count_session.tracker.actual_quantity(record) is None
        # the old generation is untouched and still self-consistent
        assert old_generation.tracker.actual_quantity(old_generation.records[0]) == 1

    def test_old_records_rejected_after_reload(self, count_session):
        old_record = count_session.record_at(0)
        count_session.load([{"product name": "Speaker", "product code": "Z9"}])
        with pytest.raises(StaleRecordError):
            count_session.set_actual_quantity(old_record, 2)

    def test_identical_reload_still_rejects_old_records(self, count_session, two_rows):
        old_record = count_session.record_at(0)
        count_session.load(two_rows)
        assert count_session.record_at(0) == old_record
        with pytest.raises(StaleRecordError):
            count_session.set_actual_quantity(old_record, 2)
        with pytest.raises(StaleRecordError):
            count_session.tracker.actual_quantity(old_record)

    def test_empty_load_discards_previous(self, count_session):
        result = count_session.load([{"product code": "X"}])
        assert result.is_empty
        assert result.message == "No valid rows found"
        assert count_session.records == []
        assert count_session.summary().total_expected == 0

    def test_reset(self, count_session):
        count_session.reset()
        assert count_session.records == []

    def test_record_at_missing(self, count_session):
        with pytest.raises(StaleRecordError):
            count_session.record_at(10)

    def test_duplicate_primary_key(self, config):
        session = ReconciliationSession(config=config)
        result = session.load([
            {"name": "First", "product code": "A1", "quantity": "1"},
            {"name": "Second", "product code": "A1", "quantity": "1"},
        ])
        assert session.search("A1").record.display_name == "First"
        assert [r.display_name for r in session.records] == ["First", "Second"]
        assert result.warnings[0].key == "A1"

    def test_default_config_is_bundled_file(self):
        session = ReconciliationSession()
        session.load([{"Tên sản phẩm": "Tivi Sony 50", "Mã sản phẩm": "'0099", "Số lượng": "2"}])
        record = session.record_at(0)
        assert record.primary_key == "0099"
        assert record.category == "tivi"
        assert record.expected_quantity == 2


class TestSessionSearch:
    def test_miss_recorded_in_history(self, count_session):
        result = count_session.search("xyz")
        assert not result.found
        entry = count_session.history.entries[0]
        assert entry.query == "xyz"
        assert entry.record is None

    def test_blank_search_not_recorded(self, count_session):
        count_session.search("   ")
        assert len(count_session.history) == 0

    def test_suggest_then_select(self, count_session):
        suggestions = count_session.suggest("ph")
        assert [r.primary_key for r in suggestions] == ["B2"]
        assert len(count_session.history) == 0
        count_session.select_suggestion(suggestions[0])
        assert count_session.history.entries[0].query == "Phone"

    def test_suggestion_settings(self, two_rows):
        config = Config()
        config.settings.suggestion_limit = 1
        session = ReconciliationSession(config=config)
        session.load(two_rows + [{"product name": "Phone case", "product code": "C3"}])
        assert len(session.suggest("ph")) == 1


class TestSessionScanning:
    def test_status_line(self, count_session):
        assert count_session.last_scan_status == IDLE_STATUS
        count_session.scan("A1")
        assert count_session.last_scan_status == "Updated: TV 55 (1)"
        count_session.scan("QQ")
        assert count_session.last_scan_status == "No match for code: QQ"

    def test_queued_scans_drain_in_order(self, count_session):
        for code in ["A1", "B2", "A1", "nope", "A1"]:
            count_session.enqueue_scan(code)
        assert count_session.pending_scans == 5

        results = count_session.drain_scans()

        assert count_session.pending_scans == 0
        assert [r.query for r in results] == ["A1", "B2", "A1", "nope", "A1"]
        assert [r.actual_quantity for r in results] == [1, 1, 2, None, 3]
        assert count_session.tracker.actual_quantity(count_session.record_at(0)) == 3

    def test_reload_drops_pending_scans(self, count_session, two_rows):
        count_session.enqueue_scan("A1")
        count_session.load(two_rows)
        assert count_session.pending_scans == 0
        assert count_session.drain_scans() == []

    def test_scan_in_checklist_session(self, checklist_session):
        with pytest.raises(ModeError):
            checklist_session.scan("A1")


class TestSessionChecklist:
    def test_toggle_returns_next(self, checklist_session):
        first = checklist_session.record_at(0)
        target = checklist_session.toggle(first)
        assert target.primary_key == "B2"

    def test_toggle_respects_filters(self, checklist_session):
        checklist_session.set_filters(FilterSet(status="New"))
        target = checklist_session.toggle(checklist_session.record_at(1))
        assert target.primary_key == "D4"

    def test_guided_sweep_wraps(self, checklist_session):
        checklist_session.set_filters(FilterSet(category="tivi"))
        visible = checklist_session.visible_records()
        assert [r.primary_key for r in visible] == ["A1", "C3", "D4"]

        assert checklist_session.toggle(visible[1]).primary_key == "D4"
        assert checklist_session.toggle(visible[2]).primary_key == "A1"
        assert checklist_session.toggle(visible[0]) is None

    def test_alternate_key_filter(self, checklist_session):
        checklist_session.set_filters(FilterSet(alternate_key="with"))
        assert [r.primary_key for r in checklist_session.visible_records()] == ["A1"]

    def test_facets(self, checklist_session):
        assert checklist_session.facets() == {"statuses": ["Demo", "New"], "categories": ["tivi"]}

    def test_reload_clears_filters(self, checklist_session):
        checklist_session.set_filters(FilterSet(status="Demo"))
        checklist_session.load([{"name": "TV 1", "product code": "Q"}])
        assert checklist_session.filters == FilterSet()

    def test_export_rows(self, checklist_session):
        checklist_session.toggle(checklist_session.record_at(2))
        rows = checklist_session.export_rows()
        assert [r["verified"] for r in rows] == [False, False, True, False]
        assert rows[0]["alternate_key"] == "S-1"
        assert rows[1]["alternate_key"] == ""
