"""Centralized path management for receiptflow.

This module provides a single source of truth for project paths: rule
configuration, stored receipt images, and the default SQLite database.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _get_project_root() -> Path:
    """Determine the project root directory.

    RECEIPTFLOW_HOME wins when set; otherwise the current working directory.
    """
    override = os.environ.get("RECEIPTFLOW_HOME")
    if override:
        return Path(override).expanduser()
    return Path.cwd()


@dataclass
class ProjectPaths:
    """Container for all project-related paths, computed relative to the project root."""

    root: Path = field(default_factory=_get_project_root)

    def __post_init__(self) -> None:
        self.root = self.root.resolve()

    # --- Source code paths ---
    @property
    def src(self) -> Path:
        """receiptflow package directory."""
        return Path(__file__).resolve().parents[1]

    @property
    def default_category_rules(self) -> Path:
        """Bundled keyword categorization rules."""
        return self.src / "receipt" / "rules" / "category_keywords.toml"

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        """Configuration directory (config/)."""
        return self.root / "config"

    @property
    def category_rules(self) -> Path:
        """Project-level override for the keyword categorization rules."""
        return self.config / "category_keywords.toml"

    # --- Data paths ---
    @property
    def data(self) -> Path:
        """Local data directory (data/)."""
        return self.root / "data"

    @property
    def database(self) -> Path:
        """Default SQLite database file."""
        return self.data / "receiptflow.sqlite3"

    @property
    def receipts_images(self) -> Path:
        """Uploaded receipt images, one sub-directory per user."""
        return self.root / "receipts" / "images"

    def ensure_data_directories(self) -> None:
        """Create data and image directories if they don't exist."""
        self.data.mkdir(parents=True, exist_ok=True)
        self.receipts_images.mkdir(parents=True, exist_ok=True)


_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance."""
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def reset_paths() -> None:
    """Drop the singleton so the next get_paths() re-reads RECEIPTFLOW_HOME. Useful for testing."""
    global _paths
    _paths = None
