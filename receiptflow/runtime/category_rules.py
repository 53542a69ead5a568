"""Runtime loader for keyword categorization rules and known merchants."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from receiptflow.domain.categorization import CategoryKeywordTable
from receiptflow.runtime.paths import get_paths


def _rules_path(config_path: str | None) -> Path:
    if config_path is not None:
        return Path(config_path)
    paths = get_paths()
    if paths.category_rules.exists():
        return paths.category_rules
    return paths.default_category_rules


def _load_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Category rules file not found: {path}")
    with open(path, "rb") as f:
        return tomllib.load(f)


@lru_cache(maxsize=4)
def load_category_keyword_table(config_path: str | None = None) -> CategoryKeywordTable:
    """
    Load the ordered category keyword table from TOML.

    Args:
        config_path: Optional TOML path override. If None, uses config/category_keywords.toml
            when present, otherwise the bundled defaults.

    Returns:
        Tuple of (category, lower-cased keywords) pairs preserving file order.
    """
    path = _rules_path(config_path)
    config = _load_toml(path)

    table: list[tuple[str, tuple[str, ...]]] = []
    for rule in config.get("categories", []):
        name = str(rule.get("name", "")).strip()
        keywords = tuple(str(kw).strip().lower() for kw in rule.get("keywords", []) if str(kw).strip())
        if name and keywords:
            table.append((name, keywords))

    if not table:
        raise ValueError(f"No valid category rules found in {path}")

    return tuple(table)


@lru_cache(maxsize=4)
def load_known_merchants(config_path: str | None = None) -> tuple[str, ...]:
    """Load known merchant names from the same rules file, preserving file order."""
    config = _load_toml(_rules_path(config_path))
    return tuple(str(name).strip() for name in config.get("known_merchants", []) if str(name).strip())
