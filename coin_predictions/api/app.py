"""FastAPI application factory with exception handlers and lifespan management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from coin_predictions.api.deps import app_state
from coin_predictions.config.settings import get_settings
from coin_predictions.db.connection import DatabaseConnection
from coin_predictions.db.indexes import ensure_indexes
from coin_predictions.errors import AuthenticationError, ConfigurationError, PersistenceError
from coin_predictions.log import configure_logging
from coin_predictions.oracle.client import PriceOracle
from coin_predictions.repositories.prediction_repository import PredictionRepository

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup/shutdown of the database connection and oracle client."""
    settings = get_settings()
    configure_logging(settings.app.log_level, json=settings.app.log_json)

    connection = DatabaseConnection(settings.mongo)
    await connection.connect()
    await ensure_indexes(connection.database)

    oracle = PriceOracle(settings.oracle)

    app_state.settings = settings
    app_state.connection = connection
    app_state.store = PredictionRepository(connection.database)
    app_state.oracle = oracle

    if settings.resolution.cron_secret is None:
        logger.warning("RESOLUTION_CRON_SECRET not set; resolution endpoint is disabled")

    logger.info("API started", environment=settings.app.environment)
    yield

    await oracle.close()
    await connection.disconnect()
    app_state.reset()
    logger.info("API shutdown complete")


async def _configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Endpoint misconfigured", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": str(exc)})


async def _authentication_error_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    logger.warning("Rejected unauthenticated request", path=request.url.path, reason=str(exc))
    return JSONResponse(
        status_code=401,
        content={"error": "Unauthorized"},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Prediction store unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"error": str(exc)})


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """
    Build and return the FastAPI application.

    Args:
        use_lifespan: If False, skip the production lifespan (useful for tests
            where dependencies are injected via ``app_state`` directly).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_exception_handler(ConfigurationError, _configuration_error_handler)
    app.add_exception_handler(AuthenticationError, _authentication_error_handler)
    app.add_exception_handler(PersistenceError, _persistence_error_handler)

    from coin_predictions.api.routes import leaderboard, predictions, resolution, system

    prefix = "/api"
    app.include_router(resolution.router, prefix=prefix, tags=["resolution"])
    app.include_router(leaderboard.router, prefix=prefix, tags=["leaderboard"])
    app.include_router(predictions.router, prefix=prefix, tags=["predictions"])
    app.include_router(system.router, prefix=prefix, tags=["system"])

    return app
