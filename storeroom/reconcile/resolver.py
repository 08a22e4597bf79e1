"""
Query Resolver - Turn typed or scanned text into a record.

Decision order (first hit wins):
| Step | Source                      | Used for scans? |
|------|-----------------------------|-----------------|
| 1    | exact alternate key         | yes             |
| 2    | exact primary key           | yes             |
| 3    | display name substring      | no              |

A miss is an ordinary QueryResult with no record.
"""

import logging
from typing import Optional

from .index import KeyIndex
from .loader import clean_identifier
from .models import HistoryEntry, InventoryRecord, MatchedBy, QueryResult

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 7
SUGGESTION_MIN_LENGTH = 2


def normalize_query(raw: Optional[str]) -> str:
    """Trim, drop a leading quote marker, lower-case."""
    return clean_identifier(raw).lower()


def resolve(index: KeyIndex, raw: Optional[str], allow_name_match: bool = True) -> QueryResult:
    """
    Resolve a query against the index.

    Args:
        index: Current load generation's index
        raw: Query as typed or scanned
        allow_name_match: False for scanner input, which is expected to be
            an exact code read

    Returns:
        QueryResult; `record` is None when nothing matched
    """
    query_text = (raw or "").strip()
    normalized = normalize_query(raw)
    if not normalized:
        return QueryResult(query=query_text)

    record = index.lookup_alternate_key(normalized)
    if record is not None:
        return QueryResult(query=query_text, record=record, matched_by=MatchedBy.ALTERNATE_KEY)

    record = index.lookup_primary_key(normalized)
    if record is not None:
        return QueryResult(query=query_text, record=record, matched_by=MatchedBy.PRIMARY_KEY)

    if allow_name_match:
        for candidate in index.iterate_all():
            if normalized in candidate.display_name.lower():
                return QueryResult(query=query_text, record=candidate, matched_by=MatchedBy.DISPLAY_NAME)

    logger.info(f"No match for query {query_text!r}")
    return QueryResult(query=query_text)


def suggest(
    index: KeyIndex,
    raw: Optional[str],
    limit: int = SUGGESTION_LIMIT,
    min_length: int = SUGGESTION_MIN_LENGTH,
) -> list[InventoryRecord]:
    """
    Display-name matches for partial input, in load order.

    Read-only: nothing is written to history.
    """
    normalized = normalize_query(raw)
    if len(normalized) < min_length:
        return []

    matches = []
    for record in index.iterate_all():
        if normalized in record.display_name.lower():
            matches.append(record)
            if len(matches) >= limit:
                break
    return matches


class QueryHistory:
    """Newest-first audit log of searches, including misses."""

    def __init__(self):
        self._entries: list[HistoryEntry] = []

    def record(self, result: QueryResult) -> HistoryEntry:
        entry = HistoryEntry(query=result.query, record=result.record)
        self._entries.insert(0, entry)
        return entry

    def record_selection(self, record: InventoryRecord) -> HistoryEntry:
        """Log a suggestion the operator picked; the name stands in for the query."""
        entry = HistoryEntry(query=record.display_name, record=record)
        self._entries.insert(0, entry)
        return entry

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def clear(self):
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)
