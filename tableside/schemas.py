"""
Pydantic Schemas for Request/Response Validation

Field names are snake_case in Python and camelCase on the wire
(``tableId``, ``totalPrice``...). Requests accept both spellings.

Schemas only check JSON types; the order rules themselves (non-negative
table id, non-empty item names...) are enforced by the order store so
that every client gets the same envelope messages.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from tableside.domain import OrderDetails, OrderItem, OrderStatus


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _status_name(value: Any) -> Any:
    if isinstance(value, OrderStatus):
        return value.name
    return value


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderItemIn(CamelModel):
    """Single item to attach to an order."""
    id: Union[int, str] = Field(..., examples=["12"])
    name: str = Field(default="", examples=["Pizza Margherita"])
    amount: int = Field(default=1, examples=[2])

    def to_entity(self) -> OrderItem:
        return OrderItem(id=self.id, name=self.name, amount=self.amount)


class PlaceOrderRequest(CamelModel):
    """Request schema for creating a new order."""
    table_id: int = Field(default=0, examples=[4])
    total_price: Decimal = Field(default=Decimal("0"), examples=[42.5])
    note: str = Field(default="", examples=["No onions on the burger"])


class OrderDetailsRequest(CamelModel):
    """Replacement values for table, price and status (note optional)."""
    table_id: int = Field(..., examples=[4])
    total_price: Decimal = Field(..., examples=[42.5])
    status: Union[int, str] = Field(default=OrderStatus.PLACED.name, examples=["PROCESSING"])
    note: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Union[int, str]) -> str:
        return OrderStatus.parse(v).name

    def to_details(self) -> OrderDetails:
        return OrderDetails(
            table_id=self.table_id,
            total_price=self.total_price,
            status=OrderStatus.parse(self.status),
            note=self.note,
        )


class StatusUpdateRequest(CamelModel):
    """Status given by name ("READY") or value (2)."""
    status: Union[int, str] = Field(..., examples=["READY"])


class PriceUpdateRequest(CamelModel):
    total_price: Decimal = Field(..., examples=[19.99])


class TableUpdateRequest(CamelModel):
    table_id: int = Field(..., examples=[7])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderItemResponse(CamelModel):
    """Response schema for a single order item."""
    id: str
    name: str
    amount: int


class OrderResponse(CamelModel):
    """Response schema for a single order."""
    id: str
    order_number: int
    table_id: int
    total_price: Decimal
    status: str
    items: List[OrderItemResponse]
    item_count: int
    note: str
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return _status_name(v)

    @field_serializer("total_price")
    def serialize_total_price(self, value: Decimal) -> float:
        return float(value)


class EnvelopeResponse(CamelModel):
    """Every order endpoint answers with this envelope."""
    successful: bool
    message: str = ""
    error_kind: Optional[str] = None
    data: Any = None


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(CamelModel):
    """Health check response."""
    status: str
    active_orders: int
    archive_backend: str
    archive_status: str
    timestamp: datetime
