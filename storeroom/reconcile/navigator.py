"""
Filter & Navigation - Visible subsets and the guided sweep.

Filters are predicates over (record, tracker), AND-ed together. After an
item is ticked, navigation looks forward through the visible list (wrapping
once) for the next unticked item, so an operator never has to search for
where to continue.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .models import UNCLASSIFIED, InventoryRecord
from .tracker import VerificationTracker

Predicate = Callable[[InventoryRecord, VerificationTracker], bool]

ALL = "all"


def has_alternate_key(wanted: bool = True) -> Predicate:
    def predicate(record, tracker):
        return record.has_alternate_key == wanted
    return predicate


def status_equals(status: str) -> Predicate:
    def predicate(record, tracker):
        return record.status == status
    return predicate


def category_equals(category: str) -> Predicate:
    def predicate(record, tracker):
        return record.category == category
    return predicate


def verified_equals(wanted: bool) -> Predicate:
    def predicate(record, tracker):
        return tracker.is_verified(record) == wanted
    return predicate


@dataclass(frozen=True)
class FilterSet:
    """
    Declarative filter selection as a UI would hold it.

    alternate_key is "all", "with" or "without"; status and category use
    "all" (or None) for no constraint.
    """
    alternate_key: str = ALL
    status: Optional[str] = ALL
    category: Optional[str] = ALL

    def __post_init__(self):
        if self.alternate_key not in (ALL, "with", "without"):
            raise ValueError(f"alternate_key filter must be all/with/without, got {self.alternate_key!r}")

    def predicates(self) -> list[Predicate]:
        result = []
        if self.alternate_key == "with":
            result.append(has_alternate_key(True))
        elif self.alternate_key == "without":
            result.append(has_alternate_key(False))
        if self.status not in (None, ALL):
            result.append(status_equals(self.status))
        if self.category not in (None, ALL):
            result.append(category_equals(self.category))
        return result


def filter_records(
    records: Iterable[InventoryRecord],
    tracker: VerificationTracker,
    predicates: Iterable[Predicate] = (),
) -> list[InventoryRecord]:
    """Records passing every predicate, in load order."""
    checks = list(predicates)
    return [r for r in records if all(check(r, tracker) for check in checks)]


def next_unverified_target(
    filtered: list[InventoryRecord],
    tracker: VerificationTracker,
    current_index: int,
) -> Optional[int]:
    """
    Index in `filtered` of the next unverified record after `current_index`.

    Searches forward, wraps to the start, and stops before coming back to
    `current_index`. Returns None when nothing else is left to verify.
    """
    size = len(filtered)
    if size == 0 or not (0 <= current_index < size):
        return None

    for step in range(1, size):
        candidate = (current_index + step) % size
        if not tracker.is_verified(filtered[candidate]):
            return candidate
    return None


def next_after_toggle(
    records: Iterable[InventoryRecord],
    tracker: VerificationTracker,
    filters: FilterSet,
    record: InventoryRecord,
) -> Optional[InventoryRecord]:
    """
    Record to focus after `record` was toggled.

    No-op (None) when the toggled record is outside the current filter.
    """
    visible = filter_records(records, tracker, filters.predicates())
    current = next(
        (i for i, candidate in enumerate(visible) if candidate.position == record.position),
        None,
    )
    if current is None:
        return None

    target = next_unverified_target(visible, tracker, current)
    return visible[target] if target is not None else None


def facets(records: Iterable[InventoryRecord]) -> dict[str, list[str]]:
    """Distinct statuses and categories for populating filter choices."""
    statuses = set()
    categories = set()
    for record in records:
        if record.status:
            statuses.add(record.status)
        if record.category and record.category != UNCLASSIFIED:
            categories.add(record.category)
    return {"statuses": sorted(statuses), "categories": sorted(categories)}
