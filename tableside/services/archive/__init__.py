"""
Archive Sink Factory

Provides a single entry point for obtaining the archive sink that
finalized orders are written to.

Usage:
    from tableside.services.archive import get_archive_sink

    sink = get_archive_sink()
    result = await sink.archive(order)

Backend Switching:
    - ARCHIVE_BACKEND=none     → NullArchiveSink (nothing persisted)
    - ARCHIVE_BACKEND=database → DatabaseArchiveSink (DATABASE_URL)
    - ARCHIVE_BACKEND=excel    → ExcelArchiveSink (DATA_DIRECTORY/EXCEL_FILENAME)
"""

import logging
from functools import lru_cache

from tableside.core.config import ArchiveBackend, get_settings
from tableside.services.archive.base import ArchiveResult, BaseArchiveSink
from tableside.services.archive.database import DatabaseArchiveSink
from tableside.services.archive.excel import ExcelArchiveSink
from tableside.services.archive.null import NullArchiveSink

logger = logging.getLogger(__name__)


@lru_cache()
def get_archive_sink() -> BaseArchiveSink:
    """
    Get the configured archive sink instance.

    The instance is cached so every request shares one engine / lock file.

    Returns:
        BaseArchiveSink: Configured archive sink
    """
    settings = get_settings()

    if settings.archive_backend == ArchiveBackend.DATABASE:
        logger.info("Archive Sink: Using DatabaseArchiveSink")
        return DatabaseArchiveSink(settings.database_url)
    if settings.archive_backend == ArchiveBackend.EXCEL:
        logger.info("Archive Sink: Using ExcelArchiveSink")
        return ExcelArchiveSink()

    logger.info("Archive Sink: Using NullArchiveSink (archival disabled)")
    return NullArchiveSink()


def reset_archive_sink() -> None:
    """
    Clear the cached archive sink instance.

    The next call to get_archive_sink() will create a new instance.
    """
    get_archive_sink.cache_clear()
    logger.debug("Archive sink cache cleared")


__all__ = [
    "get_archive_sink",
    "reset_archive_sink",
    "ArchiveResult",
    "BaseArchiveSink",
    "NullArchiveSink",
    "DatabaseArchiveSink",
    "ExcelArchiveSink",
]
