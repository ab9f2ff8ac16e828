"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from src.app.api.http.app_data import ApplicationDependencies
from src.app.api.http.deps import get_app_dependencies

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    """Basic health check endpoint - checks if app is running.

    This is a liveness probe that returns 200 OK as long as the application
    process is running. It does not check dependencies.
    """
    return {"status": "healthy", "service": "user-api"}


@router.get("/ready", response_model=None)
def readiness(
    app_deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> dict[str, Any] | JSONResponse:
    """Readiness check - validates that the user store can serve requests.

    Returns 200 if the store is reachable, 503 otherwise.
    """
    config = app_deps.config
    repository = app_deps.user_repository

    try:
        store_healthy = repository.is_available()
        store_check: dict[str, Any] = {
            "status": "healthy" if store_healthy else "unhealthy",
            "backend": config.store.backend,
            "type": type(repository).__name__,
        }
    except Exception as e:
        store_healthy = False
        store_check = {
            "status": "unhealthy",
            "backend": config.store.backend,
            "error": str(e),
            "error_type": type(e).__name__,
        }

    response = {
        "status": "ready" if store_healthy else "not_ready",
        "environment": config.app.environment,
        "checks": {"user_store": store_check},
    }

    # Return 503 if the store is not healthy
    if not store_healthy:
        return JSONResponse(status_code=503, content=response)

    return response
