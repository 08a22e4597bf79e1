# Inventory reconciliation engine
# Consumes already-parsed rows; file reading lives in adapters.py

from .models import (
    InventoryRecord,
    VerificationMode,
    Classification,
    MatchedBy,
    LoadResult,
    DuplicateKey,
    QueryResult,
    ScanResult,
    HistoryEntry,
    DiscrepancyLine,
    DiscrepancySummary,
    ReconcileError,
    ModeError,
    StaleRecordError,
)
from .config import Config, FieldAliases, CategoryRule, load_config
from .loader import load_records
from .index import build_index, KeyIndex
from .resolver import resolve, suggest, normalize_query, QueryHistory
from .tracker import VerificationTracker
from .navigator import FilterSet, filter_records, next_unverified_target, next_after_toggle
from .discrepancy import aggregate, classify
from .session import ReconciliationSession
from .adapters import RowSource, FileRowSource, InMemoryRowSource, read_rows
from .report import export_rows, export_csv, export_xlsx, format_console, format_status

__version__ = "1.0.0"

__all__ = [
    # Models
    "InventoryRecord",
    "VerificationMode",
    "Classification",
    "MatchedBy",
    "LoadResult",
    "DuplicateKey",
    "QueryResult",
    "ScanResult",
    "HistoryEntry",
    "DiscrepancyLine",
    "DiscrepancySummary",
    "ReconcileError",
    "ModeError",
    "StaleRecordError",
    # Config
    "Config",
    "FieldAliases",
    "CategoryRule",
    "load_config",
    # Engine
    "load_records",
    "build_index",
    "KeyIndex",
    "resolve",
    "suggest",
    "normalize_query",
    "QueryHistory",
    "VerificationTracker",
    "FilterSet",
    "filter_records",
    "next_unverified_target",
    "next_after_toggle",
    "aggregate",
    "classify",
    "ReconciliationSession",
    # Adapters
    "RowSource",
    "FileRowSource",
    "InMemoryRowSource",
    "read_rows",
    # Report
    "export_rows",
    "export_csv",
    "export_xlsx",
    "format_console",
    "format_status",
]
