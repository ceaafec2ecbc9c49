"""Health check endpoint."""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from coin_predictions.api.deps import app_state

router = APIRouter()


@router.get("/health")
async def health() -> JSONResponse:
    """Report database connectivity; 503 when the store is unreachable."""
    if app_state.connection is None:
        body: dict[str, Any] = {"status": "starting", "healthy": False}
        return JSONResponse(status_code=503, content=body)

    body = await app_state.connection.health_check()
    return JSONResponse(status_code=200 if body["healthy"] else 503, content=body)
