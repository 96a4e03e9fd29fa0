"""
Command-line interface for video-catalog.

Provides commands to initialize the database, run ingestion once or on
a schedule, serve the admin API, and inspect or reset channel cursors.

Usage:
    video-catalog init-db     # Create catalog tables
    video-catalog run-once    # Run channel and category ingestion once
    video-catalog scheduler   # Run ingestion on its cadences
    video-catalog serve       # Start the admin API
    video-catalog channels    # Show per-channel cursor state
    video-catalog reindex ID  # Walk a channel's backlog again
    video-catalog health      # Check dependencies
"""

import asyncio
import signal
import sys

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics


def _install_signal_handlers(callback) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, callback)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Video Catalog - quota-aware YouTube ingestion."""
    setup_logging(level="DEBUG" if debug else None)


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from src.ingestion.runtime import IngestionRuntime

    async def run():
        async with IngestionRuntime() as runtime:
            await runtime.init_schema()
        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command("run-once")
@click.option(
    "--mode",
    type=click.Choice(["channels", "categories", "all"]),
    default="all",
    show_default=True,
    help="Which ingestion mode to run",
)
@click.option("--init-db", "init_schema", is_flag=True, help="Create tables first")
def run_once(mode: str, init_schema: bool) -> None:
    """Run ingestion once and print a summary."""
    from src.ingestion.runtime import IngestionRuntime

    async def run() -> int:
        async with IngestionRuntime() as runtime:
            if init_schema:
                await runtime.init_schema()

            orchestrator = runtime.orchestrator
            _install_signal_handlers(orchestrator.request_stop)

            results = []
            if mode in ("channels", "all"):
                results.append(await orchestrator.run_channels())
            if mode in ("categories", "all"):
                results.append(await orchestrator.run_categories())

            exit_code = 0
            click.echo("\nIngestion Summary:")
            click.echo("-" * 40)
            for result in results:
                if result.skipped:
                    click.echo(
                        click.style(
                            f"  - {result.mode}: skipped ({result.skip_reason})",
                            fg="yellow",
                        )
                    )
                    continue

                color = "red" if result.sources_failed else "green"
                click.echo(
                    click.style(
                        f"  {result.mode}: {len(result.sources_ok)} ok, "
                        f"{len(result.sources_failed)} failed, "
                        f"{result.videos_upserted} videos stored "
                        f"({result.videos_failed} failed) "
                        f"in {result.duration_seconds:.1f}s",
                        fg=color,
                    )
                )
                for source in result.sources_failed:
                    click.echo(click.style(f"    ✗ {source}", fg="red"))
                if result.quota_exhausted:
                    click.echo(click.style("    quota exhausted, run ended early", fg="yellow"))
                if result.sources_failed:
                    exit_code = 1

            used, total = runtime.quota.usage()
            click.echo("-" * 40)
            click.echo(f"Quota used: {used}/{total}")
            return exit_code

    exit_code = asyncio.run(run())
    if exit_code != 0:
        sys.exit(exit_code)


@main.command()
@click.option("--run-on-start", is_flag=True, help="Run both modes immediately")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def scheduler(run_on_start: bool, metrics: bool) -> None:
    """Run channel and category ingestion on their cadences."""
    from src.ingestion.runtime import IngestionRuntime
    from src.ingestion.scheduler import IngestionScheduler

    async def run():
        if metrics:
            get_metrics().start_server()

        async with IngestionRuntime() as runtime:
            service = IngestionScheduler(
                runtime.orchestrator,
                config=runtime.ingestion_config,
                stop_event=runtime.stop_event,
                run_on_start=run_on_start,
            )
            _install_signal_handlers(service.stop)
            await service.run()

    asyncio.run(run())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--with-scheduler", is_flag=True, help="Also run scheduled ingestion")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def serve(
    host: str | None,
    port: int | None,
    reload: bool,
    with_scheduler: bool,
    metrics: bool,
) -> None:
    """Start the admin API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    if metrics:
        get_metrics().start_server()
        click.echo(f"Metrics available on http://localhost:{settings.metrics_port}/metrics")

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    if not with_scheduler:
        uvicorn.run(
            "src.api.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=reload,
            log_level="info",
        )
        return

    from src.api.app import create_app
    from src.ingestion.runtime import IngestionRuntime
    from src.ingestion.scheduler import IngestionScheduler

    async def run():
        # One runtime so triggers and scheduled runs share quota and guard
        async with IngestionRuntime() as runtime:
            service = IngestionScheduler(
                runtime.orchestrator,
                config=runtime.ingestion_config,
                stop_event=runtime.stop_event,
            )
            server = uvicorn.Server(
                uvicorn.Config(create_app(runtime), host=host, port=port, log_level="info")
            )

            async def serve_api():
                try:
                    await server.serve()
                finally:
                    service.stop()

            await asyncio.gather(serve_api(), service.run())

    asyncio.run(run())


@main.command()
def channels() -> None:
    """Show stored channels and their ingestion cursors."""
    from src.ingestion.cursor import IngestionCursor
    from src.ingestion.runtime import IngestionRuntime

    async def run():
        async with IngestionRuntime() as runtime:
            rows = await runtime.channels.list_channels()
            if not rows:
                click.echo("No channels stored yet")
                return

            click.echo(
                f"{'Channel':<32} {'State':<18} {'Total':>7} {'Stored':>7}  Cursor"
            )
            click.echo("-" * 88)
            for channel in rows:
                state = IngestionCursor.from_channel(channel).state.value
                stored = await runtime.videos.count(channel.id) if channel.id else 0
                click.echo(
                    f"{channel.name[:32]:<32} {state:<18} {channel.total_videos:>7} {stored:>7}  "
                    f"{channel.last_fetched_video_id or '-'}"
                )

    asyncio.run(run())


@main.command()
@click.argument("youtube_channel_id")
def reindex(youtube_channel_id: str) -> None:
    """Clear a channel's cursor so its backlog is walked again."""
    from src.ingestion.runtime import IngestionRuntime

    async def run() -> bool:
        async with IngestionRuntime() as runtime:
            return await runtime.channels.reset_index(youtube_channel_id)

    if asyncio.run(run()):
        click.echo(click.style(f"Cursor reset for {youtube_channel_id}", fg="green"))
    else:
        click.echo(click.style(f"No stored channel {youtube_channel_id}", fg="red"))
        sys.exit(1)


@main.command()
def health() -> None:
    """Check the database and required configuration."""
    import asyncpg
    import structlog

    from src.storage.database import Database

    logger = structlog.get_logger(__name__)

    async def check():
        results: dict[str, bool] = {}

        try:
            async with Database() as db:
                results["postgres"] = await db.health_check()
        except (asyncpg.PostgresError, OSError) as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        settings = get_settings()
        results["youtube_configured"] = settings.youtube_configured
        results["manual_fetch_configured"] = bool(settings.manual_fetch_api_key)

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if name in ("postgres", "youtube_configured") and not status:
                all_healthy = False

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
