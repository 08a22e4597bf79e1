"""
Record Loader - Normalize raw tabular rows into InventoryRecords.

Rows arrive as header -> raw value mappings from whatever read the
spreadsheet. Headers are matched through the alias table, never by
hard-coded column names.
"""

import logging
import math
import re
from collections import defaultdict
from typing import Any, Iterable, Mapping, Optional

from .config import CategoryRule, FieldAliases
from .models import UNCLASSIFIED, DuplicateKey, InventoryRecord, LoadResult

logger = logging.getLogger(__name__)

# Spreadsheets prefix numeric-looking text with a quote to keep it as text
QUOTE_MARKER = "'"

_NON_DIGIT = re.compile(r"\D")


def find_value(row: Mapping[str, Any], aliases: Iterable[str]) -> Any:
    """
    Return the row value for the first alias present in the row.

    Both alias and header are compared trimmed and lower-cased.
    Returns None when no alias matches.
    """
    normalized = {}
    for header, value in row.items():
        if header is None:
            continue
        normalized.setdefault(str(header).strip().lower(), value)

    for alias in aliases:
        key = alias.strip().lower()
        if key in normalized:
            return normalized[key]
    return None


def clean_identifier(value: Any) -> str:
    """Trim an identifier and drop a single leading quote marker."""
    if value is None:
        return ""
    text = str(value).strip()
    if text.startswith(QUOTE_MARKER):
        text = text[1:].strip()
    return text


def parse_int(value: Any) -> int:
    """
    Parse a formatted count like "1,250" into an int.

    Every non-digit character is dropped before conversion. Anything that
    leaves no digits behind parses as 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, float):
        # spreadsheet readers hand back 5.0 for a cell showing 5
        if not math.isfinite(value) or value < 0:
            return 0
        value = int(value)
    digits = _NON_DIGIT.sub("", str(value))
    if not digits:
        return 0
    return int(digits)


def derive_category(
    display_name: str,
    explicit: Any,
    rules: Iterable[CategoryRule],
) -> str:
    """Keyword rules on the name first, then the row's own category column."""
    lowered = display_name.lower().strip()
    if lowered:
        for rule in rules:
            if rule.matches(lowered):
                return rule.category

    explicit_text = str(explicit).strip() if explicit is not None else ""
    return explicit_text or UNCLASSIFIED


def normalize_row(
    row: Mapping[str, Any],
    position: int,
    aliases: FieldAliases,
    category_rules: Iterable[CategoryRule] = (),
) -> Optional[InventoryRecord]:
    """
    Build one InventoryRecord from a raw row.

    Returns None when the row has no display name.
    """
    name_value = find_value(row, aliases.display_name)
    display_name = str(name_value).strip() if name_value is not None else ""
    if not display_name:
        return None

    alternate_key = clean_identifier(find_value(row, aliases.alternate_key))
    status_value = find_value(row, aliases.status)

    return InventoryRecord(
        position=position,
        primary_key=clean_identifier(find_value(row, aliases.primary_key)),
        display_name=display_name,
        expected_quantity=parse_int(find_value(row, aliases.expected_quantity)),
        alternate_key=alternate_key or None,
        category=derive_category(
            display_name, find_value(row, aliases.category), category_rules
        ),
        unit_price=parse_int(find_value(row, aliases.unit_price)),
        status=str(status_value).strip() if status_value is not None else "",
    )


def find_duplicate_keys(records: Iterable[InventoryRecord]) -> list[DuplicateKey]:
    """List keys (case-insensitive) used by more than one record."""
    seen: dict[tuple[str, str], list[int]] = defaultdict(list)
    first_spelling: dict[tuple[str, str], str] = {}
    for record in records:
        for kind, key in (("primary_key", record.primary_key),
                          ("alternate_key", record.alternate_key)):
            if not key:
                continue
            slot = (kind, key.lower())
            first_spelling.setdefault(slot, key)
            seen[slot].append(record.position)

    return [
        DuplicateKey(key=first_spelling[slot], kind=slot[0], positions=tuple(positions))
        for slot, positions in seen.items()
        if len(positions) > 1
    ]


def load_records(
    rows: Iterable[Mapping[str, Any]],
    aliases: Optional[FieldAliases] = None,
    category_rules: Optional[Iterable[CategoryRule]] = None,
) -> LoadResult:
    """
    Normalize rows into a load generation's record list.

    Args:
        rows: Ordered header -> value mappings
        aliases: Header alias table (defaults to FieldAliases())
        category_rules: Keyword rules for deriving categories

    Returns:
        LoadResult. An empty result is how "no valid rows" is reported;
        it is never raised.
    """
    aliases = aliases or FieldAliases()
    rules = list(category_rules or [])

    records: list[InventoryRecord] = []
    rows_seen = 0
    for row_num, row in enumerate(rows):
        rows_seen += 1
        record = normalize_row(row, len(records), aliases, rules)
        if record is None:
            logger.debug(f"Skipping row {row_num}: no display name")
            continue
        records.append(record)

    warnings = find_duplicate_keys(records)
    result = LoadResult(records=records, warnings=warnings, rows_seen=rows_seen)

    if result.is_empty:
        logger.warning(f"No valid rows found in {rows_seen} row(s)")
        return result

    logger.info(f"Loaded {len(records)} record(s) from {rows_seen} row(s)")
    if warnings:
        logger.warning(
            "Duplicate keys, first occurrence wins: "
            + ", ".join(f"{w.kind}={w.key} at {list(w.positions)}" for w in warnings)
        )
    return result
