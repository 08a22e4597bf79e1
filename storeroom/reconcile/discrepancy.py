"""
Discrepancy Aggregator - Compare counted against expected quantities.

Pure functions over the records and a count-mode tracker; nothing here
mutates state, so calling aggregate() twice gives the same summary.
"""

from typing import Iterable, Optional

from .models import (
    Classification,
    DiscrepancyLine,
    DiscrepancySummary,
    InventoryRecord,
)
from .tracker import VerificationTracker


def classify(expected: int, actual: Optional[int]) -> Classification:
    if actual is None:
        return Classification.UNCLASSIFIED
    difference = actual - expected
    if difference == 0:
        return Classification.MATCHED
    if difference > 0:
        return Classification.SURPLUS
    return Classification.DEFICIT


def evaluate(record: InventoryRecord, actual: Optional[int]) -> DiscrepancyLine:
    """Annotate one record with its difference and classification."""
    difference = None if actual is None else actual - record.expected_quantity
    return DiscrepancyLine(
        record=record,
        actual_quantity=actual,
        difference=difference,
        classification=classify(record.expected_quantity, actual),
    )


def aggregate(
    records: Iterable[InventoryRecord],
    tracker: VerificationTracker,
) -> DiscrepancySummary:
    """
    Summarize a count session.

    Args:
        records: All records of the generation
        tracker: Count-mode tracker holding actual quantities

    Returns:
        DiscrepancySummary with totals, per-class counts and the mismatched
        lines in load order
    """
    counts = {c: 0 for c in Classification}
    total_expected = 0
    total_actual = 0
    mismatched = []

    for record in records:
        line = evaluate(record, tracker.actual_quantity(record))
        total_expected += record.expected_quantity
        if line.actual_quantity is not None:
            total_actual += line.actual_quantity
        counts[line.classification] += 1
        if line.classification in (Classification.SURPLUS, Classification.DEFICIT):
            mismatched.append(line)

    return DiscrepancySummary(
        total_expected=total_expected,
        total_actual=total_actual,
        matched=counts[Classification.MATCHED],
        surplus=counts[Classification.SURPLUS],
        deficit=counts[Classification.DEFICIT],
        unclassified=counts[Classification.UNCLASSIFIED],
        mismatched=tuple(mismatched),
    )
