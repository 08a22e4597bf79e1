"""
Reconciliation Session - Caller-owned state for one reconciliation run.

A session holds exactly one LoadGeneration (records + index + tracker).
Loading swaps in a brand new generation with a single assignment, so no
caller can ever see an index from one upload next to state from another.
"""

import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .config import Config, load_config
from .discrepancy import aggregate
from .index import KeyIndex, build_index
from .loader import load_records
from .models import (
    DiscrepancySummary,
    InventoryRecord,
    LoadResult,
    QueryResult,
    ScanResult,
    StaleRecordError,
    VerificationMode,
)
from .navigator import FilterSet, facets, filter_records, next_after_toggle
from .report import export_rows
from .resolver import (
    SUGGESTION_LIMIT,
    SUGGESTION_MIN_LENGTH,
    QueryHistory,
    resolve,
    suggest,
)
from .tracker import VerificationTracker

logger = logging.getLogger(__name__)

_generation_ids = itertools.count(1)

IDLE_STATUS = "Ready to scan..."


@dataclass(frozen=True)
class LoadGeneration:
    """One atomic snapshot of records, their index and verification state."""
    id: int
    index: KeyIndex
    tracker: VerificationTracker
    source: Optional[str] = None

    @property
    def records(self) -> list[InventoryRecord]:
        return self.index.records


class ReconciliationSession:
    """
    Explicit reconciliation state; no module-level globals.

    Args:
        mode: CHECKLIST or COUNT for the whole session
        config: Optional Config supplying aliases, category rules and
            suggestion settings
    """

    def __init__(self, mode: VerificationMode = VerificationMode.COUNT, config: Optional[Config] = None):
        self.mode = mode
        self.config = config or load_config()
        self.history = QueryHistory()
        self.filters = FilterSet()
        self.last_scan_status = IDLE_STATUS
        self._pending_scans: deque[str] = deque()
        self._generation = self._new_generation([])

    def _new_generation(self, records: list[InventoryRecord], source: Optional[str] = None) -> LoadGeneration:
        return LoadGeneration(
            id=next(_generation_ids),
            index=build_index(records),
            tracker=VerificationTracker(records, self.mode),
            source=source,
        )

    # ---- load generation -----------------------------------------------

    @property
    def generation(self) -> LoadGeneration:
        return self._generation

    @property
    def records(self) -> list[InventoryRecord]:
        return self._generation.records

    @property
    def index(self) -> KeyIndex:
        return self._generation.index

    @property
    def tracker(self) -> VerificationTracker:
        return self._generation.tracker

    def load(self, rows: Iterable[Mapping[str, Any]], source: Optional[str] = None) -> LoadResult:
        """
        Replace the whole generation with freshly loaded rows.

        History, filters, queued scans and scan status are reset along
        with it. An empty result still replaces the previous generation.
        """
        result = load_records(rows, self.config.aliases, self.config.category_rules)
        generation = self._new_generation(result.records, source=source)

        self._generation = generation
        self.history.clear()
        self.filters = FilterSet()
        self._pending_scans.clear()
        self.last_scan_status = IDLE_STATUS

        logger.info(f"Generation {generation.id} active: {result.message}")
        return result

    def reset(self):
        """Drop all records and state."""
        self.load([])

    def record_at(self, position: int) -> InventoryRecord:
        record = self.index.get(position)
        if record is None:
            raise StaleRecordError(f"No record at position {position}")
        return record

    # ---- search ----------------------------------------------------------

    def search(self, query: str) -> QueryResult:
        """Resolve a typed query and log it, hit or miss."""
        result = resolve(self.index, query)
        if result.query:
            self.history.record(result)
        return result

    def suggest(self, query: str) -> list[InventoryRecord]:
        settings = self.config.settings
        return suggest(
            self.index,
            query,
            limit=settings.suggestion_limit or SUGGESTION_LIMIT,
            min_length=settings.suggestion_min_length or SUGGESTION_MIN_LENGTH,
        )

    def select_suggestion(self, record: InventoryRecord):
        return self.history.record_selection(record)

    # ---- checklist mode ------------------------------------------------

    def toggle(self, record: InventoryRecord) -> Optional[InventoryRecord]:
        """Toggle a record and return the next record to focus, if any."""
        self.tracker.toggle_verified(record)
        return next_after_toggle(self.records, self.tracker, self.filters, record)

    def set_filters(self, filters: FilterSet):
        self.filters = filters

    def visible_records(self) -> list[InventoryRecord]:
        return filter_records(self.records, self.tracker, self.filters.predicates())

    def facets(self) -> dict[str, list[str]]:
        return facets(self.records)

    # ---- count mode ----------------------------------------------------

    def scan(self, query: str) -> ScanResult:
        """Process one scan to completion and update the status line."""
        result = self.tracker.record_scan(self.index, query)
        self.last_scan_status = result.message
        return result

    def enqueue_scan(self, query: str):
        """Queue a scan from a bursty input source; see drain_scans()."""
        self._pending_scans.append(query)

    @property
    def pending_scans(self) -> int:
        return len(self._pending_scans)

    def drain_scans(self) -> list[ScanResult]:
        """Process queued scans one at a time, oldest first."""
        results = []
        while self._pending_scans:
            results.append(self.scan(self._pending_scans.popleft()))
        return results

    def set_actual_quantity(self, record: InventoryRecord, value: Any) -> Optional[int]:
        return self.tracker.set_actual_quantity(record, value)

    def summary(self) -> DiscrepancySummary:
        return aggregate(self.records, self.tracker)

    # ---- export --------------------------------------------------------

    def export_rows(self) -> list[dict]:
        return export_rows(self.records, self.tracker)
