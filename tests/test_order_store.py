"""
Tests for the in-memory order store.
"""

import copy
import threading
from decimal import Decimal

import pytest

from tableside.domain import MAX_NOTE_LENGTH, Order, OrderDetails, OrderItem, OrderStatus
from tableside.result import ErrorKind
from tableside.services.order_store import ITEM_NOT_FOUND, ORDER_NOT_FOUND, OrderStore


def fill(store, count, status=OrderStatus.PLACED):
    orders = [Order(id=str(i), status=status) for i in range(1, count + 1)]
    for o in orders:
        assert store.add_order(o).successful
    return orders


# =============================================================================
# ADD / GET / DELETE ORDER
# =============================================================================

class TestAddOrder:
    def test_valid_order_is_retrievable_unchanged(self, store, order):
        snapshot = copy.deepcopy(order)
        result = store.add_order(order)

        assert result.successful
        assert result.message == ""
        assert result.data is order

        fetched = store.get_order(order.id)
        assert fetched.successful
        assert fetched.data == snapshot

    def test_duplicate_id_conflicts(self, store, placed_order):
        twin = Order(id=placed_order.id, table_id=9)
        result = store.add_order(twin)

        assert not result.successful
        assert result.error_kind is ErrorKind.CONFLICT
        assert result.message == "Order already exists."
        assert len(store) == 1
        assert store.get_order(placed_order.id).data is placed_order

    def test_duplicate_id_with_invalid_fields_still_fails(self, store, placed_order):
        result = store.add_order(Order(id=placed_order.id, table_id=-1))

        assert not result.successful
        assert result.error_kind is ErrorKind.VALIDATION
        assert "Order already exists." in result.message
        assert len(store) == 1

    def test_all_problems_reported_at_once(self, store):
        result = store.add_order(Order(table_id=-2, total_price="-1"))

        assert not result.successful
        assert result.error_kind is ErrorKind.VALIDATION
        assert "Table ID must be a non-negative integer." in result.message
        assert "Total price cannot be negative." in result.message
        assert len(store) == 0

    @pytest.mark.parametrize("price", ["NaN", "Infinity"])
    def test_non_finite_price_rejected(self, store, price):
        result = store.add_order(Order(total_price=price))
        assert result.error_kind is ErrorKind.VALIDATION
        assert result.message == "Total price must be a finite decimal."

    def test_zero_values_are_valid(self, store):
        assert store.add_order(Order(table_id=0, total_price=0)).successful

    def test_rejects_non_order(self, store):
        with pytest.raises(TypeError):
            store.add_order({"table_id": 1})

    def test_long_note_truncated(self, store):
        order = Order(note="n" * 2000)
        store.add_order(order)
        assert len(store.get_order(order.id).data.note) == MAX_NOTE_LENGTH


class TestGetAndDeleteOrder:
    def test_get_missing(self, store):
        result = store.get_order("nope")
        assert not result.successful
        assert result.data is None
        assert result.message == ORDER_NOT_FOUND
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_delete(self, store, placed_order):
        assert store.delete_order(placed_order.id) is True
        assert placed_order.id not in store
        assert not store.get_order(placed_order.id).successful

    def test_delete_missing_is_noop(self, store, placed_order):
        assert store.delete_order("missing") is False
        assert len(store) == 1


# =============================================================================
# PAGINATION
# =============================================================================

class TestGetOrderSubset:
    def test_empty_store(self, store):
        result = store.get_order_subset(None, 1)
        assert result.successful
        assert result.data == []
        assert result.message == "No orders found on page 1."

    def test_second_page_of_placed(self, store):
        fill(store, 20)
        result = store.get_order_subset(OrderStatus.PLACED, 2)

        assert result.successful
        assert [o.id for o in result.data] == [str(i) for i in range(11, 21)]

    @pytest.mark.parametrize("page", [0, -1, -100])
    def test_page_below_one_clamped(self, store, page):
        fill(store, 12)
        first = store.get_order_subset(None, 1)
        clamped = store.get_order_subset(None, page)
        assert [o.id for o in clamped.data] == [o.id for o in first.data]
        assert len(clamped.data) == 10

    def test_filters_by_status(self, store):
        orders = fill(store, 5)
        orders[1].status = OrderStatus.READY
        orders[3].status = OrderStatus.READY

        result = store.get_order_subset(OrderStatus.READY)
        assert [o.id for o in result.data] == ["2", "4"]

    def test_no_matches_is_informational(self, store):
        fill(store, 3)
        result = store.get_order_subset(OrderStatus.DONE, 1)
        assert result.successful
        assert result.data == []
        assert result.message == "No DONE orders found on page 1."

    def test_page_past_end(self, store):
        fill(store, 3)
        result = store.get_order_subset(None, 2)
        assert result.successful
        assert result.data == []

    def test_insertion_order_preserved(self, store):
        ids = ["c", "a", "b"]
        for i in ids:
            store.add_order(Order(id=i))
        assert [o.id for o in store.get_order_subset().data] == ids

    def test_custom_page_size(self):
        store = OrderStore(page_size=3)
        fill(store, 7)
        assert [o.id for o in store.get_order_subset(None, 3).data] == ["7"]

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            OrderStore(page_size=0)


# =============================================================================
# UPDATES
# =============================================================================

class TestUpdateOrderDetails:
    def test_overwrites_fields_but_not_items(self, store, placed_order):
        store.add_items_to_order(placed_order.id, [OrderItem("1", "Soup")])
        details = OrderDetails(table_id=8, total_price="30", status=OrderStatus.READY)

        result = store.update_order_details(placed_order.id, details)

        assert result.successful
        assert result.data.table_id == 8
        assert result.data.total_price == Decimal("30")
        assert result.data.status is OrderStatus.READY
        assert [i.id for i in result.data.items] == ["1"]
        assert result.data.note == "window seat"

    def test_note_replaced_when_given(self, store, placed_order):
        details = OrderDetails(table_id=1, total_price=1, note="allergy: nuts")
        assert store.update_order_details(placed_order.id, details).data.note == "allergy: nuts"

    def test_any_status_may_be_written(self, store, placed_order):
        placed_order.status = OrderStatus.DONE
        details = OrderDetails(table_id=1, total_price=1, status=OrderStatus.PLACED)
        assert store.update_order_details(placed_order.id, details).data.status is OrderStatus.PLACED

    def test_validation_before_lookup(self, store):
        result = store.update_order_details("missing", OrderDetails(table_id=-1))
        assert result.error_kind is ErrorKind.VALIDATION

    def test_missing_order(self, store):
        result = store.update_order_details("missing", OrderDetails(table_id=1))
        assert result.error_kind is ErrorKind.NOT_FOUND

    def test_invalid_details_leave_order_untouched(self, store, placed_order):
        store.update_order_details(placed_order.id, OrderDetails(table_id=5, total_price="-3"))
        assert placed_order.table_id == 3
        assert placed_order.total_price == Decimal("12.50")


class TestSingleFieldSetters:
    def test_set_status_by_name(self, store, placed_order):
        result = store.set_status(placed_order.id, "processing")
        assert result.data.status is OrderStatus.PROCESSING

    def test_set_status_invalid(self, store, placed_order):
        result = store.set_status(placed_order.id, "eaten")
        assert result.error_kind is ErrorKind.VALIDATION
        assert result.message == "Status is not valid."

    def test_set_price(self, store, placed_order):
        assert store.set_price(placed_order.id, 7.25).data.total_price == Decimal("7.25")

    def test_set_price_negative(self, store, placed_order):
        assert store.set_price(placed_order.id, -1).error_kind is ErrorKind.VALIDATION

    def test_set_table(self, store, placed_order):
        assert store.set_table(placed_order.id, 11).data.table_id == 11

    def test_set_table_missing_order(self, store):
        assert store.set_table("missing", 1).error_kind is ErrorKind.NOT_FOUND


# =============================================================================
# ITEMS
# =============================================================================

class TestAddItemsToOrder:
    def test_adds_items(self, store, placed_order, make_items):
        result = store.add_items_to_order(
            placed_order.id, make_items(("1", "Soup", 2), ("2", "Bread", 1))
        )
        assert result.successful
        assert result.message == ""
        assert placed_order.item_count == 3

    @pytest.mark.parametrize("bad", [("3", "Cake", 0), ("3", "", 1), ("3", "   ", 2), ("-4", "Cake", 1)])
    def test_one_invalid_item_rejects_batch(self, store, placed_order, make_items, bad):
        result = store.add_items_to_order(placed_order.id, make_items(("1", "Soup", 1), bad))

        assert not result.successful
        assert result.error_kind is ErrorKind.VALIDATION
        assert placed_order.items == []

    def test_empty_item_id_rejected(self, store, placed_order, make_items):
        result = store.add_items_to_order(placed_order.id, make_items(("", "Soup", 1)))
        assert result.message == "Item ID cannot be empty."

    def test_every_item_problem_reported(self, store, placed_order, make_items):
        result = store.add_items_to_order(placed_order.id, make_items(("1", "", 0)))
        assert result.message == "Item '1': name cannot be empty. Item '1': amount must be at least 1."

    def test_duplicates_skipped_with_message(self, store, placed_order, make_items):
        store.add_items_to_order(placed_order.id, make_items(("1", "Soup", 1)))
        result = store.add_items_to_order(
            placed_order.id, make_items(("1", "Other soup", 4), ("2", "Bread", 1))
        )

        assert result.successful
        assert result.message == "Item '1' already exists and was skipped."
        assert [(i.id, i.name) for i in placed_order.items] == [("1", "Soup"), ("2", "Bread")]

    def test_duplicates_within_batch_skipped(self, store, placed_order, make_items):
        result = store.add_items_to_order(
            placed_order.id, make_items(("5", "Tea", 1), ("5", "Coffee", 1))
        )
        assert result.successful
        assert [i.name for i in placed_order.items] == ["Tea"]
        assert "Item '5'" in result.message

    def test_integer_ids_collide_with_text_ids(self, store, placed_order, make_items):
        store.add_items_to_order(placed_order.id, make_items((7, "Tea", 1)))
        result = store.add_items_to_order(placed_order.id, make_items(("7", "Tea", 1)))
        assert "already exists" in result.message
        assert placed_order.item_count == 1

    def test_missing_order(self, store, make_items):
        result = store.add_items_to_order("missing", make_items(("1", "Soup", 1)))
        assert result.error_kind is ErrorKind.NOT_FOUND
        assert result.message == ORDER_NOT_FOUND

    def test_item_cap_rejects_whole_batch(self, make_items):
        store = OrderStore(max_items=5)
        store.add_order(Order(id="capped"))
        store.add_items_to_order("capped", make_items(("1", "Soup", 4)))

        result = store.add_items_to_order("capped", make_items(("2", "Tea", 1), ("3", "Cake", 1)))

        assert not result.successful
        assert result.error_kind is ErrorKind.VALIDATION
        assert result.message == "Maximum number of items in order has been reached (6 > 5)."
        assert store.get_order("capped").data.item_count == 4

    def test_item_cap_exact_limit_allowed(self, make_items):
        store = OrderStore(max_items=3)
        store.add_order(Order(id="o"))
        assert store.add_items_to_order("o", make_items(("1", "Soup", 3))).successful

    def test_item_cap_can_be_disabled(self, make_items):
        store = OrderStore(max_items=2, enforce_item_cap=False)
        store.add_order(Order(id="o"))
        assert store.add_items_to_order("o", make_items(("1", "Soup", 10))).successful

    def test_default_cap_is_255(self, store, placed_order, make_items):
        assert store.add_items_to_order(placed_order.id, make_items(("1", "Water", 255))).successful
        assert not store.add_items_to_order(placed_order.id, make_items(("2", "Water", 1))).successful

    def test_rejects_non_items(self, store, placed_order):
        with pytest.raises(TypeError):
            store.add_items_to_order(placed_order.id, [{"id": "1"}])


class TestItemLookup:
    def test_get_item(self, store, placed_order, make_items):
        store.add_items_to_order(placed_order.id, make_items(("12", "Pizza", 2)))
        result = store.get_item_from_order(placed_order.id, 12)
        assert result.successful
        assert result.data.name == "Pizza"

    def test_get_item_missing_order(self, store):
        assert store.get_item_from_order("missing", "1").message == ORDER_NOT_FOUND

    def test_get_item_missing_item(self, store, placed_order):
        result = store.get_item_from_order(placed_order.id, "1")
        assert result.error_kind is ErrorKind.NOT_FOUND
        assert result.message == ITEM_NOT_FOUND

    def test_delete_item(self, store, placed_order, make_items):
        store.add_items_to_order(placed_order.id, make_items(("1", "Soup", 1), ("2", "Tea", 1)))
        result = store.delete_item_from_order(placed_order.id, "1")
        assert result.successful
        assert [i.id for i in result.data.items] == ["2"]

    def test_delete_item_misses_do_not_mutate(self, store, placed_order, make_items):
        store.add_items_to_order(placed_order.id, make_items(("1", "Soup", 1)))
        before = copy.deepcopy(store.orders)

        missing_order = store.delete_item_from_order("missing", "1")
        missing_item = store.delete_item_from_order(placed_order.id, "9")

        assert missing_order.message == ORDER_NOT_FOUND
        assert missing_item.message == ITEM_NOT_FOUND
        assert missing_order.error_kind is missing_item.error_kind is ErrorKind.NOT_FOUND
        assert store.orders == before

    def test_add_then_delete_every_item_round_trip(self, store, placed_order, make_items):
        snapshot = copy.deepcopy(placed_order)
        items = make_items(*[(str(i), f"Dish {i}", i) for i in range(1, 6)])
        store.add_items_to_order(placed_order.id, items)

        for i in range(1, 6):
            assert store.delete_item_from_order(placed_order.id, str(i)).successful

        assert placed_order.items == []
        assert placed_order == snapshot


# =============================================================================
# FINALIZATION CLAIMS & CONCURRENCY
# =============================================================================

class TestFinalizeClaim:
    def test_claim_sets_done(self, store, placed_order):
        result = store.claim_for_finalize(placed_order.id)
        assert result.successful
        assert placed_order.status is OrderStatus.DONE

    def test_second_claim_conflicts(self, store, placed_order):
        store.claim_for_finalize(placed_order.id)
        result = store.claim_for_finalize(placed_order.id)
        assert result.error_kind is ErrorKind.CONFLICT

    def test_claimed_order_is_frozen(self, store, placed_order, make_items):
        store.add_items_to_order(placed_order.id, make_items(("1", "Soup", 1)))
        store.claim_for_finalize(placed_order.id)

        refused = [
            store.set_price(placed_order.id, 1),
            store.set_table(placed_order.id, 8),
            store.delete_item_from_order(placed_order.id, "1"),
        ]

        assert all(r.error_kind is ErrorKind.CONFLICT for r in refused)
        assert placed_order.total_price == Decimal("12.50")
        assert placed_order.table_id == 3
        assert placed_order.item_count == 1
        assert store.get_order(placed_order.id).successful

    def test_claim_missing(self, store):
        assert store.claim_for_finalize("missing").error_kind is ErrorKind.NOT_FOUND

    def test_complete_removes(self, store, placed_order):
        store.claim_for_finalize(placed_order.id)
        assert store.complete_finalize(placed_order.id) is True
        assert len(store) == 0


class TestConcurrency:
    def test_concurrent_adds_with_same_id_only_one_wins(self, store):
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(store.add_order(Order(id="shared")))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(r.successful for r in results) == 1
        assert len(store) == 1

    def test_concurrent_item_adds_respect_cap(self):
        store = OrderStore(max_items=50)
        store.add_order(Order(id="o"))

        def worker(n):
            store.add_items_to_order("o", [OrderItem(str(n), "Fries", 1)])

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(80)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get_order("o").data.item_count == 50
