"""
Data models for the Inventory Reconciliation engine.

Records are frozen dataclasses: a load generation never changes once built.
Verification progress lives in the tracker, not on the records.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


UNCLASSIFIED = "unclassified"


class VerificationMode(Enum):
    """How a reconciliation session tracks progress."""
    CHECKLIST = "checklist"  # boolean verified flag per record
    COUNT = "count"          # accumulating actual quantity per record


class Classification(Enum):
    """Outcome of comparing actual against expected quantity."""
    MATCHED = "matched"
    SURPLUS = "surplus"
    DEFICIT = "deficit"
    UNCLASSIFIED = "unclassified"  # not yet observed


class MatchedBy(Enum):
    """Which index answered a query."""
    ALTERNATE_KEY = "alternate_key"
    PRIMARY_KEY = "primary_key"
    DISPLAY_NAME = "display_name"


class ReconcileError(Exception):
    """Base class for misuse of the engine (not operator events)."""


class ModeError(ReconcileError):
    """Operation does not belong to the session's verification mode."""


class StaleRecordError(ReconcileError):
    """Record does not belong to the current load generation."""


@dataclass(frozen=True)
class InventoryRecord:
    """
    A single normalized stock line.

    `position` is the zero-based load order and doubles as the record's
    identity inside one load generation.
    """
    position: int
    primary_key: str
    display_name: str
    expected_quantity: int = 0
    alternate_key: Optional[str] = None  # serial / IMEI, serialized items only
    category: str = UNCLASSIFIED
    unit_price: int = 0
    status: str = ""

    @property
    def has_alternate_key(self) -> bool:
        return bool(self.alternate_key)

    @property
    def code(self) -> str:
        """Best code to show an operator: alternate key when present."""
        return self.alternate_key or self.primary_key


@dataclass(frozen=True)
class DuplicateKey:
    """A key shared by several rows; only the first is reachable by lookup."""
    key: str
    kind: str                   # "primary_key" or "alternate_key"
    positions: tuple[int, ...]  # first entry wins the lookup

    @property
    def shadowed(self) -> tuple[int, ...]:
        return self.positions[1:]


@dataclass
class LoadResult:
    """Output of the record loader."""
    records: list[InventoryRecord] = field(default_factory=list)
    warnings: list[DuplicateKey] = field(default_factory=list)
    rows_seen: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def rows_dropped(self) -> int:
        return self.rows_seen - len(self.records)

    @property
    def message(self) -> str:
        if self.is_empty:
            return "No valid rows found"
        text = f"Loaded {len(self.records)} record(s)"
        if self.rows_dropped:
            text += f", skipped {self.rows_dropped} row(s) without a name"
        if self.warnings:
            keys = ", ".join(w.key for w in self.warnings)
            text += f"; duplicate keys: {keys}"
        return text


@dataclass(frozen=True)
class QueryResult:
    """Outcome of resolving one query. A miss is a normal result."""
    query: str
    record: Optional[InventoryRecord] = None
    matched_by: Optional[MatchedBy] = None

    @property
    def found(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class HistoryEntry:
    """One line of the query audit log."""
    query: str
    record: Optional[InventoryRecord] = None


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one scan event in count mode."""
    query: str
    record: Optional[InventoryRecord] = None
    actual_quantity: Optional[int] = None
    matched_by: Optional[MatchedBy] = None

    @property
    def success(self) -> bool:
        return self.record is not None

    @property
    def message(self) -> str:
        if self.record is not None:
            return f"Updated: {self.record.display_name} ({self.actual_quantity})"
        if not self.query:
            return "Empty scan"
        return f"No match for code: {self.query}"


@dataclass(frozen=True)
class DiscrepancyLine:
    """A record annotated with its count outcome."""
    record: InventoryRecord
    actual_quantity: Optional[int]
    difference: Optional[int]
    classification: Classification


@dataclass(frozen=True)
class DiscrepancySummary:
    """Aggregated count-mode statistics."""
    total_expected: int = 0
    total_actual: int = 0
    matched: int = 0
    surplus: int = 0
    deficit: int = 0
    unclassified: int = 0
    mismatched: tuple[DiscrepancyLine, ...] = ()

    @property
    def mismatched_count(self) -> int:
        return self.surplus + self.deficit

    def dashboard(self) -> dict:
        """The four numbers shown on the reconciliation dashboard."""
        return {
            "total_expected": self.total_expected,
            "total_actual": self.total_actual,
            "matched": self.matched,
            "mismatched": self.mismatched_count,
        }
