"""HTTP API for the coin predictions system."""

from coin_predictions.api.app import create_app

__all__ = ["create_app"]
