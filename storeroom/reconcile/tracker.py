"""
Verification Tracker - Per-record progress for one load generation.

Checklist mode keeps a verified flag per record. Count mode keeps an
observed quantity that starts as None (not yet seen) and grows by one per
successful scan. The mode is fixed when the tracker is created.
"""

import logging
import math
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .index import KeyIndex
from .models import (
    InventoryRecord,
    ModeError,
    ScanResult,
    StaleRecordError,
    VerificationMode,
)
from .resolver import resolve

logger = logging.getLogger(__name__)


def parse_quantity(value: Any) -> Optional[int]:
    """Parse a manually entered quantity; negatives, fractions and junk become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, int):
        return value if value >= 0 else None
    try:
        number = int(str(value).strip())
    except ValueError:
        return None
    return number if number >= 0 else None


class VerificationTracker:
    """
    Verification state keyed by record position.

    Args:
        records: The generation's records in load order
        mode: CHECKLIST or COUNT
    """

    def __init__(self, records: list[InventoryRecord], mode: VerificationMode):
        self.mode = mode
        self._records = list(records)
        self._verified: dict[int, bool] = {r.position: False for r in self._records}
        self._actual: dict[int, Optional[int]] = {r.position: None for r in self._records}

    def _require(self, mode: VerificationMode, operation: str):
        if self.mode is not mode:
            raise ModeError(f"{operation} needs {mode.value} mode, session is {self.mode.value}")

    def _check_record(self, record: InventoryRecord):
        pos = record.position
        if not (0 <= pos < len(self._records)) or self._records[pos] is not record:
            raise StaleRecordError(f"Record at position {pos} is not part of this load generation")

    # ---- checklist mode ------------------------------------------------

    def toggle_verified(self, record: InventoryRecord) -> bool:
        """Flip the verified flag. Returns the new value."""
        self._require(VerificationMode.CHECKLIST, "toggle_verified")
        self._check_record(record)
        new_value = not self._verified[record.position]
        self._verified[record.position] = new_value
        return new_value

    def is_verified(self, record: InventoryRecord) -> bool:
        self._check_record(record)
        return self._verified[record.position]

    @property
    def verified_count(self) -> int:
        return sum(1 for v in self._verified.values() if v)

    # ---- count mode ----------------------------------------------------

    def record_scan(self, index: KeyIndex, raw_query: Optional[str]) -> ScanResult:
        """
        Count one scanned unit.

        Only exact key matches count; name matching is off for scans.
        A miss leaves state untouched and is returned, not raised.
        """
        self._require(VerificationMode.COUNT, "record_scan")
        result = resolve(index, raw_query, allow_name_match=False)
        if result.record is None:
            logger.info(f"Scan miss: {result.query!r}")
            return ScanResult(query=result.query)

        record = result.record
        self._check_record(record)
        current = self._actual[record.position]
        new_value = (current or 0) + 1
        self._actual[record.position] = new_value
        logger.debug(f"Scan {result.query!r} -> {record.primary_key} now {new_value}")
        return ScanResult(
            query=result.query,
            record=record,
            actual_quantity=new_value,
            matched_by=result.matched_by,
        )

    def set_actual_quantity(self, record: InventoryRecord, value: Any) -> Optional[int]:
        """Replace the observed quantity outright (manual correction)."""
        self._require(VerificationMode.COUNT, "set_actual_quantity")
        self._check_record(record)
        parsed = parse_quantity(value)
        self._actual[record.position] = parsed
        return parsed

    def actual_quantity(self, record: InventoryRecord) -> Optional[int]:
        self._check_record(record)
        return self._actual[record.position]

    @property
    def counted_count(self) -> int:
        return sum(1 for v in self._actual.values() if v is not None)

    # ---- read-only views -----------------------------------------------

    def snapshot(self) -> Mapping[int, Any]:
        """Read-only copy of the state for the active mode."""
        if self.mode is VerificationMode.CHECKLIST:
            return MappingProxyType(dict(self._verified))
        return MappingProxyType(dict(self._actual))
