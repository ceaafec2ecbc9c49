"""
Custom Pydantic types and validators for MongoDB integration.

Provides the PyObjectId type and identifier validators shared by the
request models and the CLI.
"""

import re
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import CoreSchema, PydanticCustomError, core_schema

COIN_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")
MAX_COIN_ID_LENGTH = 64
MAX_USER_ID_LENGTH = 128


class PyObjectId(ObjectId):
    """
    Custom ObjectId type for Pydantic v2 integration.

    Handles serialization/deserialization of MongoDB ObjectId fields.
    Accepts ObjectId instances or valid 24-character hex strings.

    Usage:
        class MyModel(BaseModel):
            id: PyObjectId = Field(default_factory=ObjectId, alias="_id")
    """

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        _source_type: Any,
        _handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        """Define how Pydantic should validate this type."""
        return core_schema.union_schema(
            [
                # If it's already an ObjectId, use it directly
                core_schema.is_instance_schema(ObjectId),
                # If it's a string, validate and convert
                core_schema.no_info_plain_validator_function(cls.validate),
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls.serialize,
                info_arg=False,
                return_schema=core_schema.str_schema(),
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls,
        _core_schema: CoreSchema,
        handler: GetJsonSchemaHandler,
    ) -> JsonSchemaValue:
        """Define JSON schema representation."""
        return {
            "type": "string",
            "pattern": "^[0-9a-fA-F]{24}$",
            "description": "MongoDB ObjectId as 24-character hex string",
            "example": "507f1f77bcf86cd799439011",
        }

    @classmethod
    def validate(cls, value: Any) -> ObjectId:
        """Validate and convert value to ObjectId."""
        if isinstance(value, ObjectId):
            return value

        if isinstance(value, str):
            if not value:
                raise PydanticCustomError(
                    "objectid_empty",
                    "ObjectId cannot be empty string",
                )
            try:
                return ObjectId(value)
            except InvalidId as e:
                raise PydanticCustomError(
                    "objectid_invalid",
                    "Invalid ObjectId format: {value}",
                    {"value": value},
                ) from e

        raise PydanticCustomError(
            "objectid_type",
            "ObjectId must be ObjectId instance or 24-character hex string, got {type}",
            {"type": type(value).__name__},
        )

    @classmethod
    def serialize(cls, value: ObjectId) -> str:
        """Serialize ObjectId to string."""
        return str(value)


def validate_object_id(value: Any) -> ObjectId:
    """
    Standalone validator for ObjectId values.

    Used where ids arrive as plain strings outside a Pydantic model.
    """
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str):
        try:
            return ObjectId(value)
        except InvalidId as e:
            raise ValueError(f"Invalid ObjectId: {value}") from e
    raise TypeError(f"Expected ObjectId or str, got {type(value).__name__}")


def validate_coin_id(value: str) -> str:
    """
    Validate an oracle coin identifier.

    Rules:
    - 1-64 characters
    - Lowercase letters, digits and hyphens (e.g. "bitcoin", "shiba-inu")
    - Must not start with a hyphen
    """
    if not value:
        raise ValueError("Coin id cannot be empty")

    if len(value) > MAX_COIN_ID_LENGTH:
        raise ValueError(f"Coin id cannot exceed {MAX_COIN_ID_LENGTH} characters")

    if not COIN_ID_PATTERN.match(value):
        raise ValueError(
            "Coin id must contain only lowercase letters, numbers and hyphens"
        )

    return value


def validate_user_id(value: str) -> str:
    """Validate an opaque user identifier (wallet address, account id...)."""
    if not value:
        raise ValueError("User id cannot be empty")

    if len(value) > MAX_USER_ID_LENGTH:
        raise ValueError(f"User id cannot exceed {MAX_USER_ID_LENGTH} characters")

    if any(ch.isspace() for ch in value):
        raise ValueError("User id cannot contain whitespace")

    return value
