from fastapi import APIRouter, Request

router = APIRouter()

@router.get("/health")
async def health_check():
    return {"status": "healthy"}

@router.get("/ready")
async def readiness_check(request: Request):
    cache = request.app.state.inventory_cache
    return {
        "ready": cache.service.is_available,
        "services": {
            "veeqo": cache.service.is_available
        },
        "cache": cache.status()
    }
