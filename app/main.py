import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api import ingredients, products
from app.services.product_service import InvalidBarcodeError

logger = logging.getLogger(__name__)

app = FastAPI(title="Smart Aisle", version="0.1.0")


@app.exception_handler(InvalidBarcodeError)
async def invalid_barcode_handler(request: Request, exc: InvalidBarcodeError):
    """Invalid barcode format is the only user-facing error."""
    logger.info("Rejected barcode on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)}
    )


# Include routers
app.include_router(products.router)
app.include_router(ingredients.router)


@app.delete("/cache")
async def clear_caches():
    """Drop the product, search, analysis and description caches."""
    return {"cleared": products.product_service.clear_all_caches()}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
