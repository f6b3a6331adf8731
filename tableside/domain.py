"""
Domain Entities

Order and OrderItem records held by the in-memory order store.
Entities only normalise their own fields (type coercion, note truncation);
the business rules live in the store, which reports violations through
result envelopes instead of exceptions.
"""

import enum
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

# The summed amount of all items in one order may not exceed this value.
MAX_ITEMS = 255

# Notes longer than this are truncated, never rejected.
MAX_NOTE_LENGTH = 1024

ORDER_NUMBER_MAX = 999


class OrderStatus(int, enum.Enum):
    """Order status workflow: PLACED -> PROCESSING -> READY -> DONE."""
    PLACED = 0
    PROCESSING = 1
    READY = 2
    DONE = 3

    @classmethod
    def parse(cls, value: Union["OrderStatus", int, str]) -> "OrderStatus":
        """
        Resolve a status from its enum member, integer value or name.

        Names are matched case-insensitively.

        Raises:
            ValueError: If the value names no status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid order status: {value!r}")
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return cls(int(text))
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f"Invalid order status: {value!r}")


class OrderNumberSequence:
    """Thread-safe display number counter that rolls over after ``maximum``."""

    def __init__(self, maximum: int = ORDER_NUMBER_MAX):
        self._lock = threading.Lock()
        self._maximum = maximum
        self._last = 0

    @property
    def maximum(self) -> int:
        return self._maximum

    def configure(self, maximum: int) -> None:
        if maximum < 1:
            raise ValueError("Order number maximum must be at least 1")
        with self._lock:
            self._maximum = maximum
            if self._last > maximum:
                self._last = 0

    def reset(self) -> None:
        with self._lock:
            self._last = 0

    def next(self) -> int:
        with self._lock:
            self._last = 1 if self._last >= self._maximum else self._last + 1
            return self._last


order_numbers = OrderNumberSequence()


def truncate_note(note: Optional[str]) -> str:
    if not note:
        return ""
    return note[:MAX_NOTE_LENGTH]


def _new_order_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OrderItem:
    """
    A single line of an order.

    - id: text identifier, unique within its order (integers are stored as text)
    - name: display name
    - amount: quantity ordered
    """

    id: str
    name: str
    amount: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.id, int) and not isinstance(self.id, bool):
            self.id = str(self.id)


@dataclass
class Order:
    """
    An active restaurant order.

    ``id``, ``created_at`` and ``order_number`` are fixed once the order is
    constructed; everything else is mutated in place by the store.
    """

    table_id: int = 0
    total_price: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.PLACED
    items: list[OrderItem] = field(default_factory=list)
    note: str = ""
    id: str = field(default_factory=_new_order_id)
    created_at: datetime = field(default_factory=_utcnow)
    order_number: int = field(default_factory=lambda: order_numbers.next())

    _IMMUTABLE = ("id", "created_at", "order_number")

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        self.total_price = Decimal(str(self.total_price))
        self.status = OrderStatus.parse(self.status)

    def __setattr__(self, name: str, value) -> None:
        if name in self._IMMUTABLE and name in self.__dict__:
            raise AttributeError(f"Order.{name} cannot be changed after creation")
        if name == "note":
            value = truncate_note(value)
        super().__setattr__(name, value)

    @property
    def item_count(self) -> int:
        """Sum of the amounts of all items."""
        return sum(item.amount for item in self.items)

    def find_item(self, item_id: Union[str, int]) -> Optional[OrderItem]:
        item_id = str(item_id)
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def remove_item(self, item_id: Union[str, int]) -> bool:
        item = self.find_item(item_id)
        if item is None:
            return False
        self.items.remove(item)
        return True

    def to_dict(self) -> dict:
        """Plain representation used by archive sinks."""
        return {
            "id": self.id,
            "order_number": self.order_number,
            "table_id": self.table_id,
            "total_price": str(self.total_price),
            "status": self.status.name,
            "note": self.note,
            "created_at": self.created_at.isoformat(),
            "items": [
                {"id": item.id, "name": item.name, "amount": item.amount}
                for item in self.items
            ],
        }


@dataclass
class OrderDetails:
    """Replacement values for the editable scalar fields of an order."""

    table_id: int = 0
    total_price: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.PLACED
    note: Optional[str] = None

    def __post_init__(self) -> None:
        self.total_price = Decimal(str(self.total_price))
        self.status = OrderStatus.parse(self.status)
