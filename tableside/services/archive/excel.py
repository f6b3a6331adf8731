"""
Excel Archive Sink with Concurrency Control

Appends finalized orders to a workbook. The workbook is rewritten on
every append, so writers are serialized with a file lock and the
blocking pandas/openpyxl work runs in a worker thread.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from tableside.core.config import get_settings
from tableside.domain import Order
from tableside.services.archive.base import ArchiveResult, BaseArchiveSink

logger = logging.getLogger(__name__)


class ExcelArchiveSink(BaseArchiveSink):
    """Thread-safe Excel archive."""

    ORDER_COLUMNS = [
        "order_id",
        "order_number",
        "table_id",
        "total_price",
        "status",
        "note",
        "items",
        "item_count",
        "created_at",
        "archived_at",
    ]

    def __init__(
        self,
        data_directory: Optional[str] = None,
        filename: Optional[str] = None,
        lock_timeout: Optional[int] = None,
    ):
        settings = get_settings()
        self.data_dir = Path(data_directory or settings.data_directory)
        self.file_path = self.data_dir / (filename or settings.excel_filename)
        self.lock_path = self.data_dir / f"{self.file_path.name}.lock"
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.excel_lock_timeout
        logger.info(f"ExcelArchiveSink initialized ({self.file_path})")

    @property
    def provider_name(self) -> str:
        return "excel"

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    def _load_or_create_df(self) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if self.file_path.exists():
            return pd.read_excel(self.file_path, engine="openpyxl")
        return pd.DataFrame(columns=self.ORDER_COLUMNS)

    def _append_row(self, order: Order) -> ArchiveResult:
        self._ensure_data_dir()

        try:
            lock = FileLock(str(self.lock_path), timeout=self.lock_timeout)

            with lock:
                logger.debug(f"Lock acquired for Order #{order.order_number}")

                df = self._load_or_create_df()

                new_row = {
                    "order_id": order.id,
                    "order_number": order.order_number,
                    "table_id": order.table_id,
                    "total_price": float(order.total_price),
                    "status": order.status.name,
                    "note": order.note,
                    "items": json.dumps(order.to_dict()["items"]),
                    "item_count": order.item_count,
                    "created_at": order.created_at.isoformat(),
                    "archived_at": datetime.now(timezone.utc).isoformat(),
                }

                if df.empty:
                    df = pd.DataFrame([new_row], columns=self.ORDER_COLUMNS)
                else:
                    df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(self.file_path), index=False, engine="openpyxl")

            logger.info(f"Order #{order.order_number} ({order.id}) archived to Excel")
            return ArchiveResult(success=True, provider="excel", reference=str(self.file_path))

        except Timeout:
            logger.error(f"Lock timeout for Order #{order.order_number}")
            return ArchiveResult(
                success=False,
                provider="excel",
                error_message=f"Lock timeout ({self.lock_timeout}s)",
            )

        except (OSError, ValueError) as e:
            logger.exception(f"Error archiving Order #{order.order_number}")
            return ArchiveResult(success=False, provider="excel", error_message=str(e))

    async def archive(self, order: Order) -> ArchiveResult:
        return await asyncio.to_thread(self._append_row, order)

    def read_all(self) -> list[dict[str, Any]]:
        """Get all archived orders from the workbook."""
        if not self.file_path.exists():
            return []
        df = pd.read_excel(self.file_path, engine="openpyxl", dtype={"order_id": str, "note": str})
        df["note"] = df["note"].fillna("")
        return df.to_dict("records")

    async def health_check(self) -> bool:
        try:
            self._ensure_data_dir()
        except OSError as e:
            logger.error(f"Excel archive directory unavailable: {e}")
            return False
        return True

    def clear(self) -> bool:
        """Delete the workbook and its lock file."""
        try:
            for f in (self.file_path, self.lock_path):
                if f.exists():
                    f.unlink()
            logger.info("Excel archive cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing Excel archive: {e}")
            return False
