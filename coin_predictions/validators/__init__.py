"""
Custom validators and types for MongoDB integration with Pydantic.

This module provides custom types and validators for seamless integration
between MongoDB's BSON types and Pydantic models, plus identifier checks
for coins and users.
"""

from coin_predictions.validators.custom_types import (
    PyObjectId,
    validate_coin_id,
    validate_object_id,
    validate_user_id,
)

__all__ = ["PyObjectId", "validate_object_id", "validate_coin_id", "validate_user_id"]
