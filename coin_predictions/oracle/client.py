"""
Market price oracle client.

Looks up the current price of a coin from a CoinGecko compatible
``/simple/price`` endpoint. Every failure mode (transport error, bad status,
malformed payload, unknown coin) is reported as ``OracleUnavailableError``.
The client does not retry or cache; retries happen on the next resolution
pass.
"""

import math
from datetime import datetime
from typing import Any, Self

import httpx
import structlog
from pydantic import BaseModel, Field

from coin_predictions.config.settings import OracleSettings, get_settings
from coin_predictions.errors import OracleUnavailableError
from coin_predictions.models.base import utc_now

logger = structlog.get_logger(__name__)


class PriceQuote(BaseModel):
    """Current market price for one coin."""

    coin_id: str
    price: float = Field(ge=0)
    change_24h_percent: float | None = None
    fetched_at: datetime = Field(default_factory=utc_now)


class PriceOracle:
    """
    Async client for the price oracle.

    Usage:
        async with PriceOracle() as oracle:
            quote = await oracle.get_current_price("bitcoin")
    """

    def __init__(
        self,
        settings: OracleSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings().oracle
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_seconds,
            headers=self._headers(),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.api_key is not None:
            headers["x-cg-demo-api-key"] = self.settings.api_key.get_secret_value()
        return headers

    async def close(self) -> None:
        """Close the HTTP client if this oracle created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def get_current_price(self, coin_id: str) -> PriceQuote:
        """
        Fetch the current price for a coin.

        Args:
            coin_id: Oracle coin identifier (e.g. "bitcoin")

        Returns:
            PriceQuote with a non-negative price

        Raises:
            OracleUnavailableError: If no usable price could be obtained
        """
        currency = self.settings.vs_currency
        params = {
            "ids": coin_id,
            "vs_currencies": currency,
            "include_24hr_change": "true",
        }

        try:
            response = await self._client.get("/simple/price", params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Oracle returned error status",
                coin_id=coin_id,
                status_code=e.response.status_code,
            )
            raise OracleUnavailableError(coin_id, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("Oracle request failed", coin_id=coin_id, error=str(e))
            raise OracleUnavailableError(coin_id, f"request failed: {e}") from e
        except ValueError as e:
            logger.warning("Oracle returned invalid JSON", coin_id=coin_id)
            raise OracleUnavailableError(coin_id, "invalid JSON response") from e

        return self._parse_quote(coin_id, currency, payload)

    @staticmethod
    def _parse_quote(coin_id: str, currency: str, payload: Any) -> PriceQuote:
        """Extract the price for ``coin_id`` from a ``simple/price`` payload."""
        if not isinstance(payload, dict):
            raise OracleUnavailableError(coin_id, "unexpected response shape")

        entry = payload.get(coin_id)
        if not isinstance(entry, dict) or currency not in entry:
            raise OracleUnavailableError(coin_id, "no price data for coin")

        price = entry[currency]
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise OracleUnavailableError(coin_id, "price is not a number")
        if not math.isfinite(price) or price < 0:
            raise OracleUnavailableError(coin_id, f"invalid price {price!r}")

        change = entry.get(f"{currency}_24h_change")
        if isinstance(change, bool) or not isinstance(change, (int, float)):
            change = None

        return PriceQuote(
            coin_id=coin_id,
            price=float(price),
            change_24h_percent=float(change) if change is not None else None,
        )
