"""
FastAPI Application Entry Point

Tableside Order API - request layer over the in-memory order store.

Endpoints:
    - GET    /order/active/{filter}: Paginated active orders (all or by status)
    - POST   /order/create: Place a new order
    - GET    /order/{id}: Get one order
    - PUT    /order/{id}: Replace table, price and status
    - DELETE /order/{id}: Drop an order
    - POST   /order/{id}/item: Add items
    - GET    /order/{id}/item/{item_id}: Get one item
    - DELETE /order/{id}/item/{item_id}: Remove one item
    - GET/PUT /order/{id}/status | /price | /tableno: Single-field access
    - POST   /order/{id}/finalize: Mark DONE, archive, remove
    - WS     /ws/order/new, /ws/order/update: Live order feed
    - GET    /health: System health check

Run with:
    uvicorn tableside.main:app --port 8001
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tableside.core.config import Settings, get_settings, setup_logging
from tableside.domain import Order, OrderStatus, order_numbers
from tableside.result import ErrorKind, Result
from tableside.schemas import (
    EnvelopeResponse,
    ErrorResponse,
    HealthResponse,
    OrderDetailsRequest,
    OrderItemIn,
    OrderItemResponse,
    OrderResponse,
    PlaceOrderRequest,
    PriceUpdateRequest,
    StatusUpdateRequest,
    TableUpdateRequest,
)
from tableside.services.archive import BaseArchiveSink, get_archive_sink
from tableside.services.events import CHANNELS, OrderEventHub
from tableside.services.finalizer import finalize_order
from tableside.services.order_store import OrderStore

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def order_payload(order: Order) -> dict[str, Any]:
    return OrderResponse.model_validate(order).model_dump(mode="json", by_alias=True)


def item_payload(item) -> dict[str, Any]:
    return OrderItemResponse.model_validate(item).model_dump(mode="json", by_alias=True)


def respond(result: Result, serialize: Optional[Callable[[Any], Any]] = None) -> JSONResponse:
    """Turn a store result into an HTTP response carrying the envelope."""
    if result.successful:
        status_code = 200
        data = result.data
        if serialize is not None and data is not None:
            data = [serialize(d) for d in data] if isinstance(data, list) else serialize(data)
    else:
        status_code = ERROR_STATUS.get(result.error_kind, 400)
        data = None

    body = EnvelopeResponse(
        successful=result.successful,
        message=result.message,
        error_kind=result.error_kind.value if result.error_kind else None,
        data=data,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", by_alias=True))


def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def get_sink(request: Request) -> BaseArchiveSink:
    return request.app.state.archive_sink


def get_hub(request: Request) -> OrderEventHub:
    return request.app.state.hub


async def publish(hub: OrderEventHub, channel: str, result: Result) -> None:
    if result.successful and isinstance(result.data, Order):
        await hub.broadcast(channel, order_payload(result.data))


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

router = APIRouter(
    prefix="/order",
    tags=["Orders"],
    responses={500: {"model": ErrorResponse}},
)


@router.get("/active", summary="List Active Orders")
@router.get("/active/{filter}", summary="List Active Orders")
async def list_orders(
    filter: str = "all",
    page: int = Query(1),
    store: OrderStore = Depends(get_store),
) -> JSONResponse:
    """Retrieve one page of active orders, optionally filtered by status name or value."""
    status = None
    if filter.lower() != "all":
        try:
            status = OrderStatus.parse(filter)
        except ValueError:
            return respond(Result.fail(ErrorKind.VALIDATION, "No such filter exists."))

    return respond(store.get_order_subset(status, page), order_payload)


@router.post("/create", summary="Place Order")
async def create_order(
    body: PlaceOrderRequest,
    store: OrderStore = Depends(get_store),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    order = Order(table_id=body.table_id, total_price=body.total_price, note=body.note)
    result = store.add_order(order)
    await publish(hub, "new", result)
    return respond(result, order_payload)


@router.get("/{order_id}")
async def get_order(order_id: str, store: OrderStore = Depends(get_store)) -> JSONResponse:
    return respond(store.get_order(order_id), order_payload)


@router.put("/{order_id}", summary="Update Order Details")
async def update_order(
    order_id: str,
    body: OrderDetailsRequest,
    store: OrderStore = Depends(get_store),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    result = store.update_order_details(order_id, body.to_details())
    await publish(hub, "update", result)
    return respond(result, order_payload)


@router.delete("/{order_id}")
async def delete_order(order_id: str, store: OrderStore = Depends(get_store)) -> JSONResponse:
    if not store.delete_order(order_id):
        return respond(Result.fail(ErrorKind.NOT_FOUND, "Order not found."))
    return JSONResponse({"success": True})


@router.post("/{order_id}/item", summary="Add Items")
async def add_items(
    order_id: str,
    items: list[OrderItemIn],
    store: OrderStore = Depends(get_store),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    result = store.add_items_to_order(order_id, [item.to_entity() for item in items])
    await publish(hub, "update", result)
    return respond(result, order_payload)


@router.get("/{order_id}/item/{item_id}")
async def get_item(order_id: str, item_id: str, store: OrderStore = Depends(get_store)) -> JSONResponse:
    return respond(store.get_item_from_order(order_id, item_id), item_payload)


@router.delete("/{order_id}/item/{item_id}")
async def delete_item(
    order_id: str,
    item_id: str,
    store: OrderStore = Depends(get_store),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    result = store.delete_item_from_order(order_id, item_id)
    await publish(hub, "update", result)
    return respond(result, order_payload)


@router.get("/{order_id}/status")
async def get_status(order_id: str, store: OrderStore = Depends(get_store)) -> JSONResponse:
    return respond(
        store.get_order(order_id),
        lambda o: {"status": o.status.name, "value": o.status.value},
    )


@router.put("/{order_id}/status")
async def set_status(
    order_id: str,
    body: StatusUpdateRequest,
    store: OrderStore = Depends(get_store),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    result = store.set_status(order_id, body.status)
    await publish(hub, "update", result)
    return respond(result, order_payload)


@router.get("/{order_id}/price")
async def get_price(order_id: str, store: OrderStore = Depends(get_store)) -> JSONResponse:
    return respond(store.get_order(order_id), lambda o: {"totalPrice": float(o.total_price)})


@router.put("/{order_id}/price")
async def set_price(
    order_id: str,
    body: PriceUpdateRequest,
    store: OrderStore = Depends(get_store),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    result = store.set_price(order_id, body.total_price)
    await publish(hub, "update", result)
    return respond(result, order_payload)


@router.get("/{order_id}/tableno")
async def get_table(order_id: str, store: OrderStore = Depends(get_store)) -> JSONResponse:
    return respond(store.get_order(order_id), lambda o: {"tableId": o.table_id})


@router.put("/{order_id}/tableno")
async def set_table(
    order_id: str,
    body: TableUpdateRequest,
    store: OrderStore = Depends(get_store),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    result = store.set_table(order_id, body.table_id)
    await publish(hub, "update", result)
    return respond(result, order_payload)


@router.post("/{order_id}/finalize", summary="Finalize Order")
async def finalize(
    order_id: str,
    request: Request,
    store: OrderStore = Depends(get_store),
    sink: BaseArchiveSink = Depends(get_sink),
    hub: OrderEventHub = Depends(get_hub),
) -> JSONResponse:
    """
    Finalize the order:
      - status becomes DONE
      - a copy goes to the archive sink (if one is configured)
      - the order leaves the active list
    """
    settings: Settings = request.app.state.settings
    result = await finalize_order(store, sink, order_id, timeout=settings.archive_timeout_seconds)
    await publish(hub, "update", result)
    return respond(result, order_payload)


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[OrderStore] = None,
    archive_sink: Optional[BaseArchiveSink] = None,
    hub: Optional[OrderEventHub] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    The store, archive sink and order feed are created here (or injected by
    the caller) and live on ``app.state``; routes reach them through
    dependencies.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        order_numbers.configure(settings.order_number_max)
        logger.info(f"✅ Archive Sink: {app.state.archive_sink.provider_name}")

        missing = settings.validate_archive_config()
        if missing:
            logger.warning(f"⚠️ Missing archive config: {missing}")

        logger.info("✅ Application ready!")

        yield  # Application runs

        # Shutdown
        logger.info("Shutting down...")
        await app.state.archive_sink.close()
        logger.info("✅ Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description="In-memory order management for table-service restaurants.",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.store = store or OrderStore(
        page_size=settings.page_size,
        max_items=settings.max_items_per_order,
        enforce_item_cap=settings.enforce_item_cap,
    )
    app.state.archive_sink = archive_sink or get_archive_sink()
    app.state.hub = hub or OrderEventHub()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    # -------------------- root & health --------------------

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """API root with navigation links."""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.env_mode.value,
            "documentation": "/docs",
            "health": "/health",
        }

    @app.get("/health", tags=["Health"], summary="System Health Check")
    async def health_check(request: Request) -> JSONResponse:
        """Report active order count and archive reachability."""
        sink: BaseArchiveSink = request.app.state.archive_sink
        archive_status = "healthy" if await sink.health_check() else "unhealthy"

        body = HealthResponse(
            status="operational" if archive_status == "healthy" else "degraded",
            active_orders=len(request.app.state.store),
            archive_backend=sink.provider_name,
            archive_status=archive_status,
            timestamp=datetime.now(timezone.utc),
        )
        return JSONResponse(body.model_dump(mode="json", by_alias=True))

    # -------------------- order feed --------------------

    @app.websocket("/ws/order/{channel}")
    async def order_feed(websocket: WebSocket, channel: str) -> None:
        """
        Live order feed.

        "new" clients only listen. Messages sent on "update" are relayed
        to the other "update" clients.
        """
        feed: OrderEventHub = websocket.app.state.hub
        if channel not in CHANNELS:
            await websocket.close(code=1008)
            return

        await feed.connect(channel, websocket)
        try:
            while True:
                message = await websocket.receive_text()
                logger.debug(f"Feed '{channel}' message received: {message[:100]}")
                if channel != "update":
                    continue
                try:
                    payload = json.loads(message)
                except json.JSONDecodeError:
                    logger.warning("Ignoring non-JSON message on 'update' feed")
                    continue
                await feed.broadcast("update", payload, exclude=websocket)
        except WebSocketDisconnect:
            pass
        finally:
            await feed.disconnect(channel, websocket)

    # -------------------- error handlers --------------------

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")

        body = ErrorResponse(
            error="Internal Server Error",
            detail=str(exc) if settings.debug else "An unexpected error occurred",
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    return app


setup_logging()
app = create_app()
