"""
CLI commands for the Coin Predictions System.

The ``resolve`` command runs the same pass as the HTTP trigger, so an
operator (or a plain cron job) can close out predictions without the API.
"""

import asyncio
from functools import wraps
from typing import Callable

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from coin_predictions import __version__
from coin_predictions.config.settings import get_settings
from coin_predictions.db.connection import close_database, get_connection, get_database
from coin_predictions.db.indexes import ensure_indexes
from coin_predictions.errors import CoinPredictionsError
from coin_predictions.log import configure_logging
from coin_predictions.models.prediction import PredictionCreate, PredictionDirection
from coin_predictions.models.resolution import BatchOutcome
from coin_predictions.oracle.client import PriceOracle
from coin_predictions.repositories.prediction_repository import PredictionRepository
from coin_predictions.services.leaderboard_service import LeaderboardService
from coin_predictions.services.prediction_service import PredictionService
from coin_predictions.services.resolution_service import ResolutionService

console = Console()

STATUS_STYLES = {
    "pending": "[yellow]Pending[/yellow]",
    "correct": "[green]Correct[/green]",
    "incorrect": "[red]Incorrect[/red]",
    "error_resolving": "[magenta]Error[/magenta]",
}


def async_command(f: Callable) -> Callable:
    """Decorator to run async functions in Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def handle_errors(f: Callable) -> Callable:
    """Decorator to handle common errors in CLI commands."""

    @wraps(f)
    async def wrapper(*args, **kwargs):
        try:
            return await f(*args, **kwargs)
        except ValueError as e:
            console.print(f"[red]Invalid input:[/red] {e}")
            raise SystemExit(2) from e
        except CoinPredictionsError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1) from e
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {e}")
            raise
        finally:
            await close_database()

    return wrapper


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="coin-predictions")
@click.option("--log-level", default=None, help="Override APP_LOG_LEVEL")
def cli(log_level: str | None):
    """Coin Predictions System - CLI Interface.

    Resolve pending predictions, submit new ones and view the leaderboard.
    """
    app_settings = get_settings().app
    configure_logging(log_level or app_settings.log_level, json=app_settings.log_json)


# =============================================================================
# Database Commands
# =============================================================================


@cli.group()
def db():
    """Database management commands."""
    pass


@db.command("init")
@async_command
@handle_errors
async def db_init():
    """Initialize database with indexes."""
    console.print("[yellow]Initializing database...[/yellow]")

    database = await get_database()
    results = await ensure_indexes(database)

    table = Table(title="Created Indexes", box=box.ROUNDED)
    table.add_column("Collection", style="cyan")
    table.add_column("Indexes", style="green")

    for collection, indexes in results.items():
        table.add_row(collection, ", ".join(indexes))

    console.print(table)
    console.print("[green]Database initialized successfully![/green]")


@db.command("status")
@async_command
@handle_errors
async def db_status():
    """Check database connection and prediction counts."""
    conn = await get_connection()
    await conn.connect()

    health = await conn.health_check()

    if not health["healthy"]:
        console.print(
            Panel(
                f"[red]Disconnected[/red]\nError: {health.get('error', 'Unknown')}",
                title="Database Status",
                border_style="red",
            )
        )
        return

    repo = PredictionRepository(conn.database)
    counts = await repo.count_by_status()
    lines = "\n".join(f"  {STATUS_STYLES[s.value]}: {n}" for s, n in counts.items())

    console.print(
        Panel(
            f"[green]Connected[/green]\n"
            f"Server: MongoDB {health.get('server_version', 'unknown')}\n"
            f"Latency: {health.get('latency_ms', 'N/A')} ms\n\n"
            f"[bold]Predictions[/bold]\n{lines}",
            title="Database Status",
            border_style="green",
        )
    )


# =============================================================================
# Resolution Commands
# =============================================================================


@cli.command("resolve")
@click.option("--batch-size", "-b", type=int, default=None, help="Override RESOLUTION_BATCH_SIZE")
@async_command
@handle_errors
async def resolve(batch_size: int | None):
    """Run one resolution pass over eligible pending predictions."""
    settings = get_settings()
    database = await get_database()
    repo = PredictionRepository(database)

    async with PriceOracle(settings.oracle) as oracle:
        service = ResolutionService.from_settings(repo, oracle, settings.resolution)
        if batch_size is not None:
            service.batch_size = batch_size
        summary = await service.resolve_pending()

    border = {
        BatchOutcome.EMPTY: "blue",
        BatchOutcome.COMPLETE: "green",
        BatchOutcome.PARTIAL: "yellow",
    }[summary.outcome]

    console.print(
        Panel(
            f"{summary.message}\n\n"
            f"Eligible: {summary.total_eligible}\n"
            f"[green]Resolved: {summary.resolved_this_run}[/green]\n"
            f"Already resolved: {summary.already_resolved}\n"
            f"[red]Errors: {summary.errors_encountered}[/red]\n"
            f"Deferred: {summary.deferred}",
            title="Resolution Pass",
            border_style=border,
        )
    )

    for message in summary.error_messages:
        console.print(f"  [red]-[/red] {message}")


# =============================================================================
# Leaderboard Commands
# =============================================================================


@cli.command("leaderboard")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=10, help="Number of entries")
@async_command
@handle_errors
async def leaderboard(limit: int):
    """Show the leaderboard."""
    database = await get_database()
    service = LeaderboardService(PredictionRepository(database))

    board = await service.compute_leaderboard(limit=limit)

    if not board.entries:
        console.print("[yellow]No resolved predictions yet.[/yellow]")
        return

    table = Table(title="Leaderboard", box=box.ROUNDED)
    table.add_column("Rank", justify="center", style="bold")
    table.add_column("User", style="cyan")
    table.add_column("Correct", justify="right", style="green")
    table.add_column("Resolved", justify="right")
    table.add_column("Accuracy", justify="right")

    for entry in board.entries:
        table.add_row(
            str(entry.rank),
            entry.user_id,
            str(entry.score),
            str(entry.total_predictions),
            f"{entry.accuracy_percent}%",
        )

    console.print(table)


# =============================================================================
# Prediction Commands
# =============================================================================


@cli.command("predict")
@click.option("--user", "-u", required=True, help="User ID")
@click.option("--coin", "-c", required=True, help="Coin ID (e.g. bitcoin)")
@click.option(
    "--direction",
    "-d",
    required=True,
    type=click.Choice([d.value for d in PredictionDirection]),
    help="Predicted price direction",
)
@click.option("--price", "-p", required=True, type=float, help="Current price of the coin")
@async_command
@handle_errors
async def predict(user: str, coin: str, direction: str, price: float):
    """Submit a new prediction."""
    data = PredictionCreate(
        user_id=user,
        coin_id=coin,
        predicted_direction=PredictionDirection(direction),
        price_at_prediction=price,
    )

    database = await get_database()
    service = PredictionService(PredictionRepository(database))
    prediction = await service.submit_prediction(data)

    console.print(
        Panel(
            f"[green]Prediction created![/green]\n\n"
            f"ID: {prediction.id}\n"
            f"{prediction.coin_id} {prediction.predicted_direction.value} "
            f"from {prediction.price_at_prediction}\n"
            f"Resolves after: {prediction.resolves_at(get_settings().resolution.window)}",
            title="New Prediction",
            border_style="green",
        )
    )


@cli.command("history")
@click.argument("user_id")
@click.option("--limit", "-l", type=click.IntRange(min=1), default=20, help="Maximum predictions")
@async_command
@handle_errors
async def history(user_id: str, limit: int):
    """List a user's predictions, newest first."""
    database = await get_database()
    service = PredictionService(PredictionRepository(database))

    predictions = await service.get_user_predictions(user_id, limit=limit)

    table = Table(title=f"Predictions ({len(predictions)})", box=box.ROUNDED)
    table.add_column("Coin", style="cyan")
    table.add_column("Direction", justify="center")
    table.add_column("Price", justify="right")
    table.add_column("Resolved At Price", justify="right")
    table.add_column("Made")
    table.add_column("Status")

    for p in predictions:
        table.add_row(
            p.coin_id,
            p.predicted_direction.value,
            str(p.price_at_prediction),
            str(p.price_at_resolution) if p.price_at_resolution is not None else "-",
            p.prediction_timestamp.strftime("%Y-%m-%d %H:%M"),
            STATUS_STYLES[p.status.value],
        )

    console.print(table)


# =============================================================================
# Server Commands
# =============================================================================


@cli.command("serve")
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
def serve(host: str, port: int):
    """Run the HTTP API."""
    import uvicorn

    from coin_predictions.api import create_app

    uvicorn.run(create_app(), host=host, port=port, log_config=None)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    cli()
