"""
Archive Sink Abstract Base Class

Defines the interface contract for everything that persists finalized
orders. The order core only ever calls ``archive()``; whether the order
lands in a database, a workbook or nowhere is decided by configuration.

Design Pattern: Strategy Pattern
    - The finalize workflow stays agnostic of the storage used
    - A disabled sink keeps the workflow identical when archival is off
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from tableside.domain import Order


@dataclass
class ArchiveResult:
    """
    Standardized result from an archive write.

    Attributes:
        success: Whether the order was persisted (or intentionally skipped)
        provider: Sink that handled the write
        reference: Storage reference of the written record, if any
        error_message: Error description if the write failed
        skipped: True when the sink is disabled and wrote nothing
    """
    success: bool
    provider: str = "unknown"
    reference: Optional[str] = None
    error_message: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "provider": self.provider,
            "reference": self.reference,
            "error_message": self.error_message,
            "skipped": self.skipped,
        }


class BaseArchiveSink(ABC):
    """Abstract base class for finalized-order archives."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def archive(self, order: Order) -> ArchiveResult:
        """Persist one finished order."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check storage connectivity."""
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None
