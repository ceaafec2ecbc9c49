"""
Database connection and management module.

Provides async MongoDB connectivity through Motor driver.
"""

from coin_predictions.db.connection import (
    DatabaseConnection,
    close_database,
    get_connection,
    get_database,
)
from coin_predictions.db.indexes import PREDICTIONS_COLLECTION, ensure_indexes

__all__ = [
    "DatabaseConnection",
    "get_connection",
    "get_database",
    "close_database",
    "ensure_indexes",
    "PREDICTIONS_COLLECTION",
]
