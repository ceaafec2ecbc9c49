"""Resolution trigger endpoint, called by an external scheduler."""

from typing import Any

from fastapi import APIRouter, Depends

from coin_predictions.api.auth import require_cron_secret
from coin_predictions.api.deps import get_resolution_service
from coin_predictions.services.resolution_service import ResolutionService

router = APIRouter()


@router.post("/resolve-predictions", dependencies=[Depends(require_cron_secret)])
async def resolve_predictions(
    service: ResolutionService = Depends(get_resolution_service),
) -> dict[str, Any]:
    """Run one resolution pass and return its summary."""
    summary = await service.resolve_pending()
    return summary.model_dump(by_alias=True, mode="json")
