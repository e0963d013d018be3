from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": "icbc-road-test-notifier"}


@router.get("/")
async def root() -> dict[str, str | dict[str, str]]:
    return {
        "service": "ICBC Road Test Notifier",
        "version": "0.1.0",
        "endpoints": {
            "health": "/health",
            "check": "/api/v1/appointments/check",
            "last": "/api/v1/appointments/last",
        },
    }
