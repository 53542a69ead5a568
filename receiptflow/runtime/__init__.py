"""Runtime infrastructure for receiptflow.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- Environment settings via get_settings()
- Category rule loading via load_category_keyword_table(), load_known_merchants()

Usage:
    from receiptflow.runtime import get_logger, get_paths, get_settings

    logger = get_logger(__name__)
    paths = get_paths()
    print(paths.root, paths.database)
"""

from receiptflow.runtime.category_rules import load_category_keyword_table, load_known_merchants
from receiptflow.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    set_log_level,
)
from receiptflow.runtime.paths import ProjectPaths, get_paths, reset_paths
from receiptflow.runtime.settings import Settings, get_settings, load_settings, reset_settings

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Rules
    "load_category_keyword_table",
    "load_known_merchants",
    # Paths
    "get_paths",
    "reset_paths",
    "ProjectPaths",
    # Settings
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
