"""Market price oracle adapter."""

from coin_predictions.oracle.client import PriceOracle, PriceQuote

__all__ = ["PriceOracle", "PriceQuote"]
