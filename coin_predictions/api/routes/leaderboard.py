"""Leaderboard endpoint."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from coin_predictions.api.deps import get_leaderboard_service
from coin_predictions.services.leaderboard_service import LeaderboardService

router = APIRouter()


@router.get("/leaderboard")
async def get_leaderboard(
    limit: int | None = Query(default=None, ge=1, le=1000),
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> list[dict[str, Any]]:
    leaderboard = await service.compute_leaderboard(limit=limit)
    return [entry.model_dump(mode="json") for entry in leaderboard.entries]
