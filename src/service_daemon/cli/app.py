"""Main CLI application."""

import asyncio

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from service_daemon.example import build_example, run_example
from service_daemon.exceptions import ConfigurationError
from service_daemon.logging import setup_logging
from service_daemon.settings import get_settings

app = typer.Typer(
    name="service-daemon",
    help="Service Daemon CLI - run and inspect the example service system",
    no_args_is_help=True,
)
console = Console()

LOG_LEVEL_OPTION = typer.Option(
    None,
    help="Log level (overrides SERVICE_DAEMON_LOG_LEVEL)",
    metavar="<level>",
    case_sensitive=False,
)  # fmt: skip
DURATION_OPTION = typer.Option(
    2.0,
    "--duration",
    "-d",
    min=0.0,
    help="Seconds to keep the example running before shutdown",
)  # fmt: skip
INTERVAL_OPTION = typer.Option(
    0.1,
    "--interval",
    min=0.0,
    help="Seconds between events emitted by the example event source",
)  # fmt: skip


@app.command()
def example(
    duration: float = DURATION_OPTION,
    interval: float = INTERVAL_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
) -> None:
    """Run the example services, then shut them down.

    Examples:
        service-daemon example
        service-daemon example --duration 5 --log-level debug
    """
    settings = get_settings()
    setup_logging(log_level or settings.log_level, compact=True)

    try:
        daemon = asyncio.run(run_example(duration=duration, settings=settings, interval=interval))
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    if daemon.failures:
        console.print(f"[yellow]Daemon stopped with {len(daemon.failures)} service failures[/yellow]")
        for failure in daemon.failures:
            console.print(f"  {failure.service_name}.{failure.hook}: {failure.error_type}: {failure.message}")
        raise typer.Exit(1)

    console.print(f"[green]Daemon stopped cleanly ({daemon.state.value})[/green]")


@app.command()
def order(log_level: str = LOG_LEVEL_OPTION) -> None:
    """Print the solved dependency order and subscribers of the example services.

    Examples:
        service-daemon order
    """
    setup_logging(log_level or "WARNING", compact=True)

    try:
        graph = build_example().solve()
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    table = Table(title="Services in dependency order")
    table.add_column("#", justify="right")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Dependencies")
    for position, service in enumerate(graph.order):
        deps = ", ".join(str(dep) for dep in service.dependencies()) or "-"
        table.add_row(str(position), str(service.id), service.name, deps)
    console.print(table)

    for event_type in graph.event_types():
        ids = " -> ".join(str(service_id) for service_id in graph.subscriber_ids(event_type))
        console.print(f"[bold]{event_type}[/bold]: {ids}")

    logger.debug(f"Solved {len(graph.order)} services")
