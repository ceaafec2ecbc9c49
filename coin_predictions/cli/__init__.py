"""
Command Line Interface for the Coin Predictions System.

Provides commands for database setup, running resolution passes, submitting
predictions and viewing the leaderboard through a rich terminal interface.
"""

from coin_predictions.cli.commands import cli

__all__ = ["cli"]
