"""
Exception hierarchy for the predictions system.

Errors fall into two groups:
- whole-invocation errors (configuration, authentication) that reject a call
  before any work is done
- item-level errors (oracle, persistence) that the resolution worker records
  and moves past
"""


class CoinPredictionsError(Exception):
    """Base exception for all application errors."""

    pass


class ConfigurationError(CoinPredictionsError):
    """Raised when a required setting or secret is missing."""

    pass


class AuthenticationError(CoinPredictionsError):
    """Raised when a presented credential is missing or does not match."""

    pass


class OracleUnavailableError(CoinPredictionsError):
    """
    Raised when the price oracle cannot supply a usable price.

    Transport failures, bad status codes, malformed payloads and unknown coin
    ids all collapse into this one error. Every occurrence is retryable.
    """

    def __init__(self, coin_id: str, reason: str) -> None:
        self.coin_id = coin_id
        self.reason = reason
        super().__init__(f"Could not fetch price for {coin_id}: {reason}")


class PersistenceError(CoinPredictionsError):
    """Raised when the prediction store cannot be read or written."""

    pass

