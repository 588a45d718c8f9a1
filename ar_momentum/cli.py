"""
Command-line interface for ar-momentum.

Provides commands to compute momentum leaderboards, run the alert
sweep, initialize the database, and run diagnostic checks.

Usage:
    ar-momentum init-db                      # Initialize database
    ar-momentum health                       # Check service health
    ar-momentum leaderboard -g indie -g pop  # Rank a genre cohort
    ar-momentum artist-momentum ARTIST_ID    # Score one artist
    ar-momentum check-alerts                 # Run the momentum alert sweep
    ar-momentum metrics-server               # Expose Prometheus metrics
"""

import asyncio
import json
import sys
import time
from datetime import timedelta

import click

from ar_momentum.config.settings import get_settings
from ar_momentum.observability.logging import setup_logging
from ar_momentum.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """A&R Club - artist momentum scoring and alerts."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from ar_momentum.alerts.repository import SubscriptionRepository
    from ar_momentum.momentum.repository import SnapshotRepository
    from ar_momentum.storage.database import Database

    async def run():
        async with Database() as db:
            # alerts reference artists, so snapshot tables go first
            await SnapshotRepository(db).create_tables()
            await SubscriptionRepository(db).create_tables()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}

        try:
            from ar_momentum.storage.database import Database
            async with Database() as db:
                results["postgres"] = await db.health_check()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        results["sendgrid_configured"] = get_settings().email_configured

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))

        click.echo("-" * 40)

        if results["postgres"]:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


def _format_pct(value: float) -> str:
    return f"{value * 100:+.1f}%"


@main.command()
@click.option("--genre", "-g", "genres", multiple=True, help="Cohort genre (can repeat)")
@click.option("--days", default=None, type=int, help="Window length in days")
@click.option("--limit", default=None, type=int, help="Maximum artists returned")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def leaderboard(
    genres: tuple[str, ...],
    days: int | None,
    limit: int | None,
    as_json: bool,
) -> None:
    """Rank artists by momentum.

    Example:
        ar-momentum leaderboard -g "indie pop" --days 7 --limit 20
    """
    from ar_momentum.momentum.repository import SnapshotRepository
    from ar_momentum.momentum.scorer import MomentumScorer
    from ar_momentum.storage.database import Database

    async def run():
        async with Database() as db:
            scorer = MomentumScorer(snapshot_repo=SnapshotRepository(db))
            return await scorer.compute_leaderboard(
                genres=genres, window_days=days, limit=limit,
            )

    try:
        records = asyncio.run(run())
    except ValueError as e:
        raise click.BadParameter(str(e))

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        click.echo("No artists with enough data in this window.")
        return

    label = ", ".join(genres) if genres else "all artists"
    click.echo(f"\nMomentum leaderboard ({label}):")
    click.echo("-" * 72)
    for rank, record in enumerate(records, start=1):
        click.echo(
            f"{rank:>3}. {record.name[:28]:<28} "
            f"score={record.momentum_score:+7.2f}  "
            f"pop={record.delta_popularity:+5.0f}  "
            f"followers={_format_pct(record.delta_followers_pct)}"
        )
    click.echo("-" * 72)
    click.echo(f"Mode: {records[0].mode}, cohort size: {records[0].cohort_size}")


@main.command("artist-momentum")
@click.argument("artist_id")
@click.option("--days", default=None, type=int, help="Window length in days")
def artist_momentum(artist_id: str, days: int | None) -> None:
    """Score one artist against its genre peers."""
    from ar_momentum.momentum.repository import SnapshotRepository
    from ar_momentum.momentum.scorer import MomentumScorer
    from ar_momentum.storage.database import Database

    async def run():
        async with Database() as db:
            scorer = MomentumScorer(snapshot_repo=SnapshotRepository(db))
            return await scorer.compute_entity_momentum(artist_id, window_days=days)

    record = asyncio.run(run())
    if record is None:
        click.echo(click.style(f"No momentum available for {artist_id}", fg="yellow"))
        sys.exit(1)

    click.echo(json.dumps(record.to_dict(), indent=2))


@main.command("check-alerts")
@click.option(
    "--cooldown-hours",
    default=None,
    type=click.IntRange(min=1),
    help="Hours before an alert may fire again (default: ALERTS_SCORE_COOLDOWN_HOURS)",
)
def check_alerts_command(cooldown_hours: int | None) -> None:
    """Evaluate momentum alerts and notify subscribers.

    Designed for cron scheduling: 0 * * * * ar-momentum check-alerts
    """
    from ar_momentum.alerts.jobs import build_alert_service, check_alerts
    from ar_momentum.storage.database import Database

    cooldown = timedelta(hours=cooldown_hours) if cooldown_hours is not None else None

    async def run():
        async with Database() as db:
            service = build_alert_service(db)
            return await check_alerts(service, cooldown=cooldown)

    result = asyncio.run(run())

    click.echo("\nAlert Check Results:")
    click.echo(f"  Checked:   {result.checked}")
    click.echo(f"  Triggered: {result.triggered}")
    click.echo(f"  Failed:    {result.failed}")
    click.echo(f"  Elapsed:   {result.duration_ms}ms")

    if result.failed:
        sys.exit(1)


@main.command("metrics-server")
@click.option("--port", default=None, type=int, help="Metrics server port")
def metrics_server(port: int | None) -> None:
    """Expose Prometheus metrics until interrupted."""
    get_metrics().start_server(port)
    click.echo(f"Serving metrics on port {port or get_settings().metrics_port}")
    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        click.echo("Stopped")


if __name__ == "__main__":
    main()
