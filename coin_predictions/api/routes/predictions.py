"""Prediction submission and history endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from coin_predictions.api.deps import get_prediction_service
from coin_predictions.models.prediction import PredictionCreate
from coin_predictions.services.prediction_service import PredictionService

router = APIRouter()


@router.post("/predict", status_code=201)
async def submit_prediction(
    body: PredictionCreate,
    service: PredictionService = Depends(get_prediction_service),
) -> dict[str, Any]:
    prediction = await service.submit_prediction(body)
    return prediction.to_json_dict()


@router.get("/predictions/{user_id}")
async def get_user_predictions(
    user_id: str,
    limit: int = Query(default=20, ge=1, le=200),
    service: PredictionService = Depends(get_prediction_service),
) -> list[dict[str, Any]]:
    try:
        predictions = await service.get_user_predictions(user_id, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return [p.to_json_dict() for p in predictions]
