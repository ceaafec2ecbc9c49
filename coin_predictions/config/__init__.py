"""Configuration module for the coin predictions system."""

from coin_predictions.config.settings import (
    AppSettings,
    MongoSettings,
    OracleSettings,
    ResolutionSettings,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "MongoSettings",
    "AppSettings",
    "OracleSettings",
    "ResolutionSettings",
    "get_settings",
]
