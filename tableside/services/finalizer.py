"""
Order Finalization

Finalizing an order means:
  1. its status becomes DONE (clients ignore DONE orders),
  2. a copy is handed to the archive sink,
  3. it is removed from the active store.

The store lock is only held for steps 1 and 3; the archive write is awaited
in between, bounded by a timeout. Archiving is best effort: the order is
removed whether or not the write succeeded.
"""

import asyncio
import logging

from tableside.domain import Order
from tableside.result import Result
from tableside.services.archive.base import BaseArchiveSink
from tableside.services.order_store import OrderStore

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_TIMEOUT = 5.0


async def finalize_order(
    store: OrderStore,
    sink: BaseArchiveSink,
    order_id: str,
    timeout: float = DEFAULT_ARCHIVE_TIMEOUT,
) -> Result[Order]:
    """
    Finish an order and move it out of the active store.

    Args:
        store: Active order store
        sink: Archive sink receiving the finished order
        order_id: Order to finalize
        timeout: Seconds to wait for the archive write

    Returns:
        Result with the finalized order; the message notes an archive
        problem when there was one. NOT_FOUND / CONFLICT failures come
        straight from the store.
    """
    claim = store.claim_for_finalize(order_id)
    if not claim.successful:
        return claim

    order = claim.data
    warning = ""

    try:
        archived = await asyncio.wait_for(sink.archive(order), timeout=timeout)
        if not archived.success:
            warning = f"Order finalized but not archived: {archived.error_message}"
            logger.warning(f"Archive write failed for order #{order.order_number}: {archived.error_message}")

    except asyncio.TimeoutError:
        warning = f"Order finalized but archiving timed out after {timeout}s."
        logger.warning(f"Archive write for order #{order.order_number} timed out after {timeout}s")

    except Exception as e:
        warning = "Order finalized but archiving failed."
        logger.exception(f"Archive sink {sink.provider_name} raised for order #{order.order_number}: {e}")

    finally:
        store.complete_finalize(order_id)

    logger.info(f"Order #{order.order_number} ({order.id}) finalized")
    return Result.ok(order, warning)
