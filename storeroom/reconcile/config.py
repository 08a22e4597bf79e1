"""
Configuration for the reconciliation engine.

Holds the column alias table and the category keyword rules.
Config is declarative JSON - edit the file, not the code.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_CONFIG_PATH = Path(__file__).parent / "reconcile_config.json"

# Canonical fields the loader understands, in resolution order
CANONICAL_FIELDS = (
    "display_name",
    "primary_key",
    "alternate_key",
    "expected_quantity",
    "unit_price",
    "status",
    "category",
)


@dataclass
class FieldAliases:
    """
    Header aliases per canonical field.

    Lookups are case-insensitive and whitespace-trimmed; the first alias
    that matches a row's header wins.
    """
    display_name: list[str] = field(default_factory=lambda: ["product name", "name"])
    primary_key: list[str] = field(default_factory=lambda: ["product code", "SKU code"])
    alternate_key: list[str] = field(default_factory=lambda: ["serial", "IMEI_1"])
    expected_quantity: list[str] = field(default_factory=lambda: ["quantity"])
    unit_price: list[str] = field(default_factory=lambda: ["price", "sale price"])
    status: list[str] = field(default_factory=lambda: ["status"])
    category: list[str] = field(default_factory=lambda: ["category"])

    def for_field(self, name: str) -> list[str]:
        if name not in CANONICAL_FIELDS:
            raise KeyError(f"Unknown canonical field: {name}")
        return getattr(self, name)


@dataclass
class CategoryRule:
    """Assigns `category` when the lower-cased name hits a keyword or pattern."""
    category: str
    keywords: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)

    _compiled: list[re.Pattern] = field(default_factory=list, repr=False, compare=False)

    def __post_init__(self):
        self.keywords = [k.lower() for k in self.keywords]
        self._compiled = [re.compile(p, re.IGNORECASE) for p in self.patterns]

    def matches(self, lowered_name: str) -> bool:
        if any(p.search(lowered_name) for p in self._compiled):
            return True
        return any(k in lowered_name for k in self.keywords)


@dataclass
class ReconcileSettings:
    """Tunables for query suggestions."""
    suggestion_limit: int = 7
    suggestion_min_length: int = 2


@dataclass
class Config:
    """Full configuration for the reconciliation engine."""
    aliases: FieldAliases = field(default_factory=FieldAliases)
    category_rules: list[CategoryRule] = field(default_factory=list)
    settings: ReconcileSettings = field(default_factory=ReconcileSettings)


def load_config(config_path: Optional[str | Path] = None) -> Config:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to a reconcile config; defaults to the bundled
            reconcile_config.json

    Returns:
        Config with aliases, category rules and settings. Fields missing
        from the file keep their built-in defaults.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    alias_data = data.get("aliases", {})
    unknown = set(alias_data) - set(CANONICAL_FIELDS)
    if unknown:
        raise ValueError(f"Unknown alias fields in {path}: {sorted(unknown)}")
    aliases = FieldAliases(**{name: list(values) for name, values in alias_data.items()})

    rules = [
        CategoryRule(
            category=rule["category"],
            keywords=rule.get("keywords", []),
            patterns=rule.get("patterns", []),
        )
        for rule in data.get("categories", [])
    ]

    settings_data = data.get("settings", {})
    settings = ReconcileSettings(
        suggestion_limit=int(settings_data.get("suggestion_limit", 7)),
        suggestion_min_length=int(settings_data.get("suggestion_min_length", 2)),
    )

    return Config(aliases=aliases, category_rules=rules, settings=settings)
