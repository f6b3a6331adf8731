"""
                        Services Module

Contains the order business logic and its collaborators.

Services:
    - order_store: In-memory active orders behind a single lock
    - finalizer: DONE -> archive -> remove workflow
    - archive: Pluggable sinks for finalized orders (none / database / excel)
    - events: WebSocket order feed
"""

from tableside.services.finalizer import finalize_order
from tableside.services.order_store import OrderStore

__all__ = ["OrderStore", "finalize_order"]
