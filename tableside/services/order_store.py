"""
In-Memory Order Store with Concurrency Control

Holds every active order of the process and implements the validated
query and mutation operations on them.

Each public method runs its lookup-then-mutate sequence inside one
critical section guarded by a single re-entrant lock, so concurrent
request handlers can never interleave (e.g. two creates for the same id).
No method performs I/O while holding the lock.

Validation, lookup misses and id collisions never raise: they are
reported through ``Result`` envelopes tagged with an ``ErrorKind``.
"""

import logging
import threading
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Union

from tableside.domain import (
    MAX_ITEMS,
    Order,
    OrderDetails,
    OrderItem,
    OrderStatus,
)
from tableside.result import ErrorKind, Result

logger = logging.getLogger(__name__)

PAGE_SIZE = 10

ORDER_NOT_FOUND = "Order not found."
ITEM_NOT_FOUND = "Item not found."
ORDER_FINALIZING = "Order is already being finalized."


def _is_integer_text(text: str) -> bool:
    try:
        int(text)
    except ValueError:
        return False
    return True


def as_decimal(value) -> Optional[Decimal]:
    """Coerce a price to Decimal; None when it is not a finite number."""
    if isinstance(value, bool):
        return None
    try:
        price = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return price if price.is_finite() else None


def table_id_problems(table_id) -> list[str]:
    if isinstance(table_id, bool) or not isinstance(table_id, int):
        return ["Table ID must be an integer."]
    if table_id < 0:
        return ["Table ID must be a non-negative integer."]
    return []


def price_problems(total_price) -> list[str]:
    price = as_decimal(total_price)
    if price is None:
        return ["Total price must be a finite decimal."]
    if price < 0:
        return ["Total price cannot be negative."]
    return []


def item_problems(item: OrderItem) -> list[str]:
    """Return every rule the item violates (empty when valid)."""
    problems = []
    item_id = str(item.id).strip() if item.id is not None else ""
    label = f"Item '{item_id}'" if item_id else "Item"

    if not item_id:
        problems.append("Item ID cannot be empty.")
    elif _is_integer_text(item_id) and int(item_id) < 0:
        problems.append(f"{label}: ID must be a non-negative integer.")

    if not isinstance(item.name, str) or not item.name.strip():
        problems.append(f"{label}: name cannot be empty.")

    if isinstance(item.amount, bool) or not isinstance(item.amount, int):
        problems.append(f"{label}: amount must be an integer.")
    elif item.amount < 1:
        problems.append(f"{label}: amount must be at least 1.")

    return problems


class OrderStore:
    """
    Process-wide collection of active orders.

    Orders are kept in a dict keyed by id; insertion order is the listing
    order. One instance is created per application and injected into the
    request layer.
    """

    def __init__(
        self,
        page_size: int = PAGE_SIZE,
        max_items: int = MAX_ITEMS,
        enforce_item_cap: bool = True,
    ):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self.max_items = max_items
        self.enforce_item_cap = enforce_item_cap

        self._orders: dict[str, Order] = {}
        self._finalizing: set[str] = set()
        self._lock = threading.RLock()

    # -------------------- inspection --------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        with self._lock:
            return order_id in self._orders

    @property
    def orders(self) -> list[Order]:
        """Snapshot of all active orders in insertion order."""
        with self._lock:
            return list(self._orders.values())

    def _editable(self, order_id: str) -> Result[Order]:
        """
        Look up an order that may still be changed. Caller holds the lock.

        Orders claimed for finalization are DONE and frozen until removed.
        """
        order = self._orders.get(order_id)
        if order is None:
            return Result.fail(ErrorKind.NOT_FOUND, ORDER_NOT_FOUND)
        if order_id in self._finalizing:
            return Result.fail(ErrorKind.CONFLICT, ORDER_FINALIZING)
        return Result.ok(order)

    # -------------------- orders --------------------

    def add_order(self, order: Order) -> Result[Order]:
        """
        Register a new order.

        Every violated rule is reported at once, joined into one message.
        Nothing is stored unless the order is valid and its id is free.
        """
        if not isinstance(order, Order):
            raise TypeError(f"Expected Order, got {type(order).__name__}")

        problems = table_id_problems(order.table_id) + price_problems(order.total_price)

        with self._lock:
            duplicate = order.id in self._orders
            if duplicate:
                problems.append("Order already exists.")

            if problems:
                kind = ErrorKind.CONFLICT if duplicate and len(problems) == 1 else ErrorKind.VALIDATION
                logger.info(f"Rejected order {order.id}: {' '.join(problems)}")
                return Result.fail(kind, " ".join(problems))

            self._orders[order.id] = order

        logger.info(
            f"Order #{order.order_number} ({order.id}) placed for table {order.table_id}"
        )
        return Result.ok(order)

    def delete_order(self, order_id: str) -> bool:
        """Remove an order; returns False when there was nothing to remove."""
        with self._lock:
            order = self._orders.pop(order_id, None)
            self._finalizing.discard(order_id)

        if order is None:
            logger.debug(f"Delete ignored, order {order_id} not found")
            return False

        logger.info(f"Order #{order.order_number} ({order_id}) removed")
        return True

    def get_order(self, order_id: str) -> Result[Order]:
        with self._lock:
            order = self._orders.get(order_id)
        if order is None:
            return Result.fail(ErrorKind.NOT_FOUND, ORDER_NOT_FOUND)
        return Result.ok(order)

    def get_order_subset(
        self,
        status: Optional[OrderStatus] = None,
        page: int = 1,
    ) -> Result[list[Order]]:
        """
        Return one page of active orders, optionally filtered by status.

        Pages are 1-indexed; any page below 1 is treated as page 1.
        An empty page is still a successful result.
        """
        page = max(1, int(page))
        start = (page - 1) * self.page_size

        with self._lock:
            matching = [
                o for o in self._orders.values()
                if status is None or o.status == status
            ]

        subset = matching[start:start + self.page_size]
        if not subset:
            scope = "orders" if status is None else f"{OrderStatus(status).name} orders"
            return Result.ok([], f"No {scope} found on page {page}.")
        return Result.ok(subset)

    def update_order_details(self, order_id: str, details: OrderDetails) -> Result[Order]:
        """
        Overwrite table, price and status (and the note, when given).

        The new values are validated before the order is looked up.
        Items are never touched.
        """
        problems = table_id_problems(details.table_id) + price_problems(details.total_price)
        if problems:
            return Result.fail(ErrorKind.VALIDATION, " ".join(problems))

        with self._lock:
            found = self._editable(order_id)
            if not found.successful:
                return found
            order = found.data

            order.table_id = details.table_id
            order.total_price = as_decimal(details.total_price)
            order.status = OrderStatus.parse(details.status)
            if details.note is not None:
                order.note = details.note

        logger.info(
            f"Order #{order.order_number} updated: table={order.table_id} "
            f"price={order.total_price} status={order.status.name}"
        )
        return Result.ok(order)

    def set_status(self, order_id: str, status: Union[OrderStatus, int, str]) -> Result[Order]:
        try:
            status = OrderStatus.parse(status)
        except ValueError:
            return Result.fail(ErrorKind.VALIDATION, "Status is not valid.")

        with self._lock:
            found = self._editable(order_id)
            if not found.successful:
                return found
            order = found.data
            order.status = status

        logger.info(f"Order #{order.order_number} status -> {status.name}")
        return Result.ok(order)

    def set_price(self, order_id: str, total_price: Decimal) -> Result[Order]:
        problems = price_problems(total_price)
        if problems:
            return Result.fail(ErrorKind.VALIDATION, " ".join(problems))
        total_price = as_decimal(total_price)

        with self._lock:
            found = self._editable(order_id)
            if not found.successful:
                return found
            order = found.data
            order.total_price = total_price

        logger.info(f"Order #{order.order_number} price -> {total_price}")
        return Result.ok(order)

    def set_table(self, order_id: str, table_id: int) -> Result[Order]:
        problems = table_id_problems(table_id)
        if problems:
            return Result.fail(ErrorKind.VALIDATION, " ".join(problems))

        with self._lock:
            found = self._editable(order_id)
            if not found.successful:
                return found
            order = found.data
            order.table_id = table_id

        logger.info(f"Order #{order.order_number} moved to table {table_id}")
        return Result.ok(order)

    # -------------------- items --------------------

    def add_items_to_order(self, order_id: str, items: Iterable[OrderItem]) -> Result[Order]:
        """
        Attach a batch of items to an order.

        The batch is validated as a whole first: one invalid item rejects
        every item and nothing changes. Items whose id is already present
        (in the order or earlier in the batch) are skipped and reported in
        the message; the remaining items are appended.
        """
        items = list(items)
        for item in items:
            if not isinstance(item, OrderItem):
                raise TypeError(f"Expected OrderItem, got {type(item).__name__}")

        problems = [p for item in items for p in item_problems(item)]
        if problems:
            return Result.fail(ErrorKind.VALIDATION, " ".join(problems))

        with self._lock:
            found = self._editable(order_id)
            if not found.successful:
                return found
            order = found.data

            seen = {existing.id for existing in order.items}
            accepted: list[tuple[str, OrderItem]] = []
            skipped: list[str] = []
            for item in items:
                key = str(item.id).strip()
                if key in seen:
                    skipped.append(f"Item '{key}' already exists and was skipped.")
                    continue
                seen.add(key)
                accepted.append((key, item))

            if self.enforce_item_cap:
                proposed = order.item_count + sum(item.amount for _, item in accepted)
                if proposed > self.max_items:
                    return Result.fail(
                        ErrorKind.VALIDATION,
                        f"Maximum number of items in order has been reached "
                        f"({proposed} > {self.max_items}).",
                    )

            for key, item in accepted:
                item.id = key
                order.items.append(item)

        logger.info(
            f"Order #{order.order_number}: added {len(accepted)} item(s), skipped {len(skipped)}"
        )
        return Result.ok(order, " ".join(skipped))

    def get_item_from_order(self, order_id: str, item_id: Union[str, int]) -> Result[OrderItem]:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return Result.fail(ErrorKind.NOT_FOUND, ORDER_NOT_FOUND)
            item = order.find_item(item_id)

        if item is None:
            return Result.fail(ErrorKind.NOT_FOUND, ITEM_NOT_FOUND)
        return Result.ok(item)

    def delete_item_from_order(self, order_id: str, item_id: Union[str, int]) -> Result[Order]:
        with self._lock:
            found = self._editable(order_id)
            if not found.successful:
                return found
            order = found.data
            if not order.remove_item(item_id):
                return Result.fail(ErrorKind.NOT_FOUND, ITEM_NOT_FOUND)

        logger.info(f"Order #{order.order_number}: item '{item_id}' removed")
        return Result.ok(order)

    # -------------------- finalization --------------------

    def claim_for_finalize(self, order_id: str) -> Result[Order]:
        """
        Mark an order DONE and reserve it for a single finalize run.

        Until ``complete_finalize`` removes it, every further change to the
        order (including a second claim) fails with CONFLICT, so the sink
        always receives the DONE order as it was claimed.
        """
        with self._lock:
            found = self._editable(order_id)
            if not found.successful:
                return found
            order = found.data
            self._finalizing.add(order_id)
            order.status = OrderStatus.DONE
        return Result.ok(order)

    def complete_finalize(self, order_id: str) -> bool:
        """Drop a finalized order from the active store."""
        return self.delete_order(order_id)
