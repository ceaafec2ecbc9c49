"""
Coin Predictions.

Directional crypto price predictions resolved against a market price oracle,
with a leaderboard derived from the resolved ledger.
"""

__version__ = "0.1.0"
