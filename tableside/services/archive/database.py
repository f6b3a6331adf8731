"""
Database Archive Sink

Writes finalized orders to the ``finished_orders`` table through an async
SQLAlchemy engine. SQLite (aiosqlite) is the default; any async URL such as
``postgresql+psycopg://...`` works in production.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from tableside.core.config import get_settings
from tableside.database import build_engine, build_session_maker, init_db
from tableside.domain import Order
from tableside.models import FinishedOrder
from tableside.services.archive.base import ArchiveResult, BaseArchiveSink

logger = logging.getLogger(__name__)


class DatabaseArchiveSink(BaseArchiveSink):
    """Archive sink backed by a SQL database."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or get_settings().database_url
        self.engine = build_engine(self.database_url)
        self.session_maker = build_session_maker(self.engine)
        self._schema_ready = False

        # SQLite will not create missing parent directories
        url = self.engine.url
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"DatabaseArchiveSink initialized ({self.engine.url.get_backend_name()})")

    @property
    def provider_name(self) -> str:
        return "database"

    async def _ensure_schema(self) -> None:
        if not self._schema_ready:
            await init_db(self.engine)
            self._schema_ready = True

    async def archive(self, order: Order) -> ArchiveResult:
        """Insert one row for the finished order."""
        try:
            await self._ensure_schema()

            async with self.session_maker() as session:
                session.add(FinishedOrder(
                    id=order.id,
                    order_number=order.order_number,
                    table_id=order.table_id,
                    total_price=order.total_price,
                    status=order.status.name,
                    note=order.note,
                    items=json.dumps(order.to_dict()["items"]),
                    item_count=order.item_count,
                    created_at=order.created_at,
                ))
                await session.commit()

            logger.info(f"Order #{order.order_number} ({order.id}) archived to database")
            return ArchiveResult(success=True, provider="database", reference=order.id)

        except SQLAlchemyError as e:
            logger.error(f"Database archive failed for order {order.id}: {e}")
            return ArchiveResult(success=False, provider="database", error_message=str(e))

    async def fetch_all(self) -> list[dict[str, Any]]:
        """Return every archived order, oldest first."""
        await self._ensure_schema()
        async with self.session_maker() as session:
            result = await session.execute(
                select(FinishedOrder).order_by(FinishedOrder.archived_at, FinishedOrder.order_number)
            )
            return [
                {
                    "id": row.id,
                    "order_number": row.order_number,
                    "table_id": row.table_id,
                    "total_price": row.total_price,
                    "status": row.status,
                    "note": row.note,
                    "items": json.loads(row.items),
                    "item_count": row.item_count,
                    "created_at": row.created_at,
                }
                for row in result.scalars().all()
            ]

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.engine.dispose()
