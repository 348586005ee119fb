"""API endpoints for product lookup, search and progressive loading."""

import json
import asyncio

from fastapi import APIRouter, Query
from sse_starlette.sse import EventSourceResponse

from app.services.product_service import product_service

router = APIRouter(prefix="/products", tags=["products"])

STREAM_POLL_INTERVAL = 0.5
STREAM_TIMEOUT = 60.0


@router.get("/search")
async def search_products(q: str = Query("", description="Free-text product query")):
    """Search products by name. Upstream failures return an empty list."""
    return await product_service.search_products(q)


@router.get("/{barcode}")
async def lookup_product(barcode: str):
    """
    Look up a product by barcode.

    The response may be a skeleton with loading.ingredients=true; poll
    /products/{barcode}/updates or subscribe to /products/{barcode}/stream
    for the completed product.
    """
    return await product_service.lookup_product(barcode)


@router.get("/{barcode}/updates")
async def check_product_updates(barcode: str):
    """Return the cached snapshot for a barcode, if any. Never triggers a lookup."""
    product = product_service.get_cached_product(barcode)
    if product is None:
        return {"hasUpdates": False}
    return {"hasUpdates": True, "product": product.model_dump(by_alias=True, mode="json")}


@router.get("/{barcode}/stream")
async def stream_product(barcode: str):
    """
    Stream product snapshots via Server-Sent Events.

    Events:
    - product: {full Product JSON}, sent whenever the snapshot changes
    - complete: {"barcode": str, "healthScore": int}
    - error: {"message": "..."}
    """
    product = await product_service.lookup_product(barcode)

    async def event_generator():
        current = product
        last_sent = None
        elapsed = 0.0
        try:
            while True:
                payload = current.model_dump_json(by_alias=True)
                if payload != last_sent:
                    yield {"event": "product", "data": payload}
                    last_sent = payload

                if not current.is_loading:
                    yield {
                        "event": "complete",
                        "data": json.dumps(
                            {"barcode": current.id, "healthScore": current.health_score}
                        ),
                    }
                    break

                if elapsed >= STREAM_TIMEOUT:
                    yield {
                        "event": "error",
                        "data": json.dumps({"message": "Timed out waiting for ingredients"}),
                    }
                    break

                await asyncio.sleep(STREAM_POLL_INTERVAL)
                elapsed += STREAM_POLL_INTERVAL
                current = product_service.get_cached_product(current.id) or current

        except asyncio.CancelledError:
            # Client disconnected; background assembly keeps running
            pass

    return EventSourceResponse(event_generator())
