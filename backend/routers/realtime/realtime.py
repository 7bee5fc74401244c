"""
WebSocket endpoints that push fresh catalog / order history snapshots.
Each connection holds one change-feed subscription for as long as it is open.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, status
from dependencies.store import get_store, get_change_feed
from routers.auth.auth import session_from_token
from routers.orders.helpers import order_helpers
from routers.orders.schemas import VendorOrderListResponse, SupplierOrderListResponse
from routers.products.helpers import product_helpers
from routers.products.schemas import CatalogResponse
from store.base import MarketplaceStore
from utils.change_feed import ChangeFeed, WatchSpec, watch
from utils.session import SessionContext
from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])

ALL_EVENTS = ("INSERT", "UPDATE", "DELETE")


def catalog_watch_specs() -> List[WatchSpec]:
    # Supplier names and locations are part of the catalog, so profile edits count too
    return [WatchSpec("products", events=ALL_EVENTS), WatchSpec("profiles")]


def order_watch_specs(session: SessionContext) -> List[WatchSpec]:
    if session.is_supplier:
        return [
            WatchSpec("orders", filters={"supplier_id": session.user_id}),
            WatchSpec("products", events=ALL_EVENTS),
        ]
    return [
        WatchSpec("orders", filters={"vendor_id": session.user_id}),
        WatchSpec("products", events=ALL_EVENTS),
        WatchSpec("profiles"),
    ]


async def _wait_for_disconnect(websocket: WebSocket):
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _push_updates(websocket: WebSocket, subscription, refresh: Callable[[], Awaitable[Dict[str, Any]]]):
    async for snapshot in watch(subscription, refresh):
        await websocket.send_json(snapshot)


async def stream_snapshots(
    websocket: WebSocket,
    feed: ChangeFeed,
    specs: List[WatchSpec],
    refresh: Callable[[], Awaitable[Dict[str, Any]]]
):
    """Send refresh() now and after every matching change until the client goes away"""
    async with feed.subscribe(*specs) as subscription:
        receiver = asyncio.create_task(_wait_for_disconnect(websocket))
        pusher = asyncio.create_task(_push_updates(websocket, subscription, refresh))

        done, pending = await asyncio.wait({receiver, pusher}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if pusher in done and pusher.exception() is not None:
            logger.error(f"Realtime push stopped: {str(pusher.exception())}")
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)


@router.websocket("/catalog")
async def catalog_updates(
    websocket: WebSocket,
    store: MarketplaceStore = Depends(get_store),
    feed: ChangeFeed = Depends(get_change_feed)
):
    """Stream the available-product catalog, re-sent whenever products or supplier profiles change"""
    await websocket.accept()

    async def refresh():
        products = await product_helpers.read_catalog(store)
        return CatalogResponse(products=products, total=len(products)).model_dump(mode="json")

    await stream_snapshots(websocket, feed, catalog_watch_specs(), refresh)


@router.websocket("/orders")
async def order_updates(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    store: MarketplaceStore = Depends(get_store),
    feed: ChangeFeed = Depends(get_change_feed)
):
    """Stream the caller's order history; authenticate with ?token=<access token>"""
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    try:
        session = await session_from_token(token, store)
    except HTTPException as e:
        logger.warning(f"Rejected realtime order stream: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async def refresh():
        if session.is_supplier:
            orders = await order_helpers.list_supplier_orders(store, session)
            return SupplierOrderListResponse(orders=orders, total=len(orders)).model_dump(mode="json")
        orders = await order_helpers.list_vendor_orders(store, session)
        return VendorOrderListResponse(orders=orders, total=len(orders)).model_dump(mode="json")

    logger.info(f"Streaming orders to {session.role} {session.user_id}")
    await stream_snapshots(websocket, feed, order_watch_specs(session), refresh)
