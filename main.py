"""
Coin Predictions System - Main Entry Point

Serves the HTTP API (resolution trigger, leaderboard, submissions) with
uvicorn. Operator tasks live in the ``coin-predictions`` CLI.
"""

import os

import uvicorn

from coin_predictions.api import create_app

app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        log_config=None,
    )
