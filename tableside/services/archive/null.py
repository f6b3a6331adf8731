"""
Disabled Archive Sink

Used when no archive backend is configured: finalized orders are
acknowledged and dropped.
"""

import logging

from tableside.domain import Order
from tableside.services.archive.base import ArchiveResult, BaseArchiveSink

logger = logging.getLogger(__name__)


class NullArchiveSink(BaseArchiveSink):
    """Archive sink that stores nothing."""

    @property
    def provider_name(self) -> str:
        return "none"

    async def archive(self, order: Order) -> ArchiveResult:
        logger.debug(f"Archive disabled, order #{order.order_number} not persisted")
        return ArchiveResult(success=True, provider="none", skipped=True)

    async def health_check(self) -> bool:
        return True
