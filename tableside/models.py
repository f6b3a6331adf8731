"""
SQLAlchemy Database Models

Archive table for finalized orders. Active orders never touch the
database; a row is written once, when an order is finalized.
"""

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func

from tableside.database import Base


class FinishedOrder(Base):
    """
    One finalized order, as it looked when it left the active store.
    """
    __tablename__ = "finished_orders"

    # Primary Key (the order's own id)
    id = Column(String(36), primary_key=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    order_number = Column(Integer, nullable=False)
    table_id = Column(Integer, nullable=False, index=True)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False)
    note = Column(Text, nullable=False, default="")
    items = Column(Text, nullable=False)  # JSON string of ordered items
    item_count = Column(Integer, nullable=False, default=0)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), nullable=False)
    archived_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<FinishedOrder #{self.order_number} - table {self.table_id} - {self.status}>"
