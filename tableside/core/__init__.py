"""
Core module initialization.
Exports configuration and logging utilities.
"""

from tableside.core.config import (
    ArchiveBackend,
    EnvironmentMode,
    Settings,
    get_logger,
    get_settings,
    setup_logging,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "get_logger",
    "Settings",
    "EnvironmentMode",
    "ArchiveBackend",
]
