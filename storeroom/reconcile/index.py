"""
Key Index - Lookup structures over one load generation.

Two case-insensitive dictionaries are built once:
- by_alternate_key: serial / IMEI -> record
- by_primary_key: product code -> record

Duplicate policy is first occurrence wins. Later rows sharing a key stay in
`records` (filtering and iteration still see them) but an exact-key lookup
always lands on the first one. Collisions are kept in `duplicates` so the
caller can warn the operator.
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional

from .loader import find_duplicate_keys
from .models import DuplicateKey, InventoryRecord


@dataclass
class KeyIndex:
    """
    Indexed records for exact-key lookups.

    Attributes:
        records: All records in load order
        by_alternate_key: lower-cased alternate key -> first record
        by_primary_key: lower-cased primary key -> first record
        duplicates: Keys that more than one record tried to claim
    """
    records: list[InventoryRecord] = field(default_factory=list)
    by_alternate_key: dict[str, InventoryRecord] = field(default_factory=dict)
    by_primary_key: dict[str, InventoryRecord] = field(default_factory=dict)
    duplicates: list[DuplicateKey] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.records)

    def lookup_alternate_key(self, key: str) -> Optional[InventoryRecord]:
        """Look up a record by exact alternate key (case-insensitive)."""
        if not key:
            return None
        return self.by_alternate_key.get(key.lower())

    def lookup_primary_key(self, key: str) -> Optional[InventoryRecord]:
        """Look up a record by exact primary key (case-insensitive)."""
        if not key:
            return None
        return self.by_primary_key.get(key.lower())

    def iterate_all(self) -> Iterator[InventoryRecord]:
        """All records in original load order."""
        return iter(self.records)

    def get(self, position: int) -> Optional[InventoryRecord]:
        if 0 <= position < len(self.records):
            return self.records[position]
        return None


def build_index(records: list[InventoryRecord]) -> KeyIndex:
    """
    Build lookup index from loaded records.

    Args:
        records: Records from the loader, in load order

    Returns:
        KeyIndex with alternate-key and primary-key lookups
    """
    index = KeyIndex(records=list(records))

    for record in index.records:
        # setdefault keeps the first record for a key
        if record.alternate_key:
            index.by_alternate_key.setdefault(record.alternate_key.lower(), record)
        if record.primary_key:
            index.by_primary_key.setdefault(record.primary_key.lower(), record)

    index.duplicates = find_duplicate_keys(index.records)
    return index
