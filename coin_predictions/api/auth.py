"""Shared-secret bearer authentication for the resolution trigger."""

import hmac

from fastapi import Depends, Header
from pydantic import SecretStr

from coin_predictions.api.deps import get_settings_dep
from coin_predictions.config.settings import Settings
from coin_predictions.errors import AuthenticationError, ConfigurationError


def verify_bearer_token(authorization: str | None, secret: SecretStr | None) -> None:
    """
    Check an ``Authorization: Bearer <token>`` header against ``secret``.

    Fails closed: with no secret configured every request is rejected.

    Raises:
        ConfigurationError: If no secret is configured
        AuthenticationError: If the header is missing, malformed or wrong
    """
    if secret is None or not secret.get_secret_value():
        raise ConfigurationError("Cron secret not configured.")

    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthenticationError("Expected a bearer credential")

    if not hmac.compare_digest(token.encode(), secret.get_secret_value().encode()):
        raise AuthenticationError("Invalid bearer credential")


def require_cron_secret(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings_dep),
) -> None:
    """FastAPI dependency guarding the resolution trigger."""
    verify_bearer_token(authorization, settings.resolution.cron_secret)
