"""
Main application entry point.
"""
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from app.config import config
from app.logger import logger
from app.health import router as health_router
from app.sentry import initialize_sentry
from app.services.veeqo_service import veeqo_service
from app.cache.inventory_cache import InventoryCache
from app.scheduler import StalenessScheduler

# Initialize services
inventory_cache = InventoryCache(
    veeqo_service,
    ttl_seconds=config.CACHE_TTL_MINUTES * 60
)
scheduler = StalenessScheduler(
    inventory_cache,
    interval_seconds=config.STALE_CHECK_INTERVAL
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    logger.info("Starting Inventory Cache")
    initialize_sentry()
    await veeqo_service.initialize()
    scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down Inventory Cache")
    await scheduler.stop()
    await inventory_cache.close()
    await veeqo_service.close()


# Create FastAPI app
app = FastAPI(
    title="Inventory Cache API",
    description="Stale-while-revalidate cache over the Veeqo inventory API",
    version="1.0.0",
    lifespan=lifespan
)
app.state.inventory_cache = inventory_cache

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(health_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Inventory Cache",
        "version": "1.0.0",
        "status": "operational",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/api/inventory")
async def get_inventory():
    """Serve inventory data, fresh or stale, revalidating in the background."""
    try:
        response = await inventory_cache.get()
        return response.to_dict()

    except Exception as e:
        logger.error(f"Error in /api/inventory: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Failed to fetch inventory data",
                "message": str(e)
            }
        )


@app.post("/api/inventory/revalidate")
async def revalidate_inventory():
    """Trigger a background revalidation; never waits for it."""
    logger.info("Manual revalidation triggered")
    is_revalidating = inventory_cache.trigger_revalidation()
    return {
        "message": "Cache revalidation triggered",
        "isRevalidating": is_revalidating
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
