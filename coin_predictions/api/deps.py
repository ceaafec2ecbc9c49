"""Dependency injection for the FastAPI application."""

from coin_predictions.config.settings import Settings, get_settings
from coin_predictions.db.connection import DatabaseConnection
from coin_predictions.repositories.prediction_repository import PredictionStore
from coin_predictions.services.leaderboard_service import LeaderboardService
from coin_predictions.services.prediction_service import PredictionService
from coin_predictions.services.resolution_service import PriceSource, ResolutionService


class AppState:
    """Holds shared application state initialised during lifespan."""

    def __init__(self) -> None:
        self.settings: Settings | None = None
        self.connection: DatabaseConnection | None = None
        self.store: PredictionStore | None = None
        self.oracle: PriceSource | None = None

    def reset(self) -> None:
        self.settings = None
        self.connection = None
        self.store = None
        self.oracle = None


# Singleton shared across the app
app_state = AppState()


def get_settings_dep() -> Settings:
    return app_state.settings or get_settings()


def get_store() -> PredictionStore:
    if app_state.store is None:
        raise RuntimeError("Prediction store not initialised")
    return app_state.store


def get_oracle() -> PriceSource:
    if app_state.oracle is None:
        raise RuntimeError("Price oracle not initialised")
    return app_state.oracle


def get_resolution_service() -> ResolutionService:
    return ResolutionService.from_settings(
        get_store(),
        get_oracle(),
        get_settings_dep().resolution,
    )


def get_leaderboard_service() -> LeaderboardService:
    return LeaderboardService(get_store())


def get_prediction_service() -> PredictionService:
    return PredictionService(get_store())
