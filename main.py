#!/usr/bin/env python3
"""
Speiseplan - Canteen Meal Catalog
=================================

Command line interface for checking configuration and browsing today's meals.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py canteens                  # List canteens from the feed
    python main.py meals "Alte Mensa"        # List a canteen's meals
    python main.py meals "Alte Mensa" -d     # ... with detail page data
"""

import sys
import asyncio
import logging

import click
from rich.console import Console
from rich.table import Table

from speiseplan.config.settings import get_settings
from speiseplan.processing.service import SpeiseplanService
from speiseplan.utils.logging import configure_application_logging
from speiseplan.utils.exceptions import (
    SpeiseplanError,
    UnknownCanteenError,
    get_user_friendly_message,
)

console = Console()
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """Speiseplan - canteen meals from the Studentenwerk feed."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    try:
        settings = get_settings()
    except SpeiseplanError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@cli.command()
def check_config():
    """Validate environment configuration."""
    console.print("[bold blue]🔧 Checking Speiseplan Configuration[/bold blue]")

    settings = get_settings()

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Feed URL", str(settings.feed.feed_url))
    table.add_row("Detail URL template", settings.feed.detail_url_template)
    table.add_row("Image base URL", str(settings.feed.image_base_url))
    table.add_row("Stale window", f"{settings.catalog.stale_window_minutes} min")
    table.add_row("Request timeout", f"{settings.limits.request_timeout}s")
    table.add_row("Concurrent detail fetches", str(settings.limits.max_concurrent_details))
    table.add_row("Log level", settings.get_effective_log_level())
    table.add_row("Log file", settings.logging.file_path or "-")

    console.print(table)
    console.print("[bold green]✅ Configuration is valid[/bold green]")


@cli.command()
def canteens():
    """Refresh from the feed and list canteens."""

    async def run():
        service = SpeiseplanService()
        await service.refresh_catalog()

        table = Table(title="Canteens")
        table.add_column("Canteen", style="cyan")
        table.add_column("Meals", justify="right")

        for canteen in service.list_canteens():
            table.add_row(canteen.name, str(len(service.list_meals(canteen.name))))

        console.print(table)

    _run(run())


@cli.command()
@click.argument('canteen')
@click.option('--details', '-d', is_flag=True, help='Fetch detail pages for ingredients and allergens')
def meals(canteen, details):
    """Refresh from the feed and list the meals of CANTEEN."""

    async def run():
        service = SpeiseplanService()
        await service.refresh_catalog()
        found = service.list_meals(canteen)

        if details:
            results = await service.fetch_meal_details(found)
            found = [r.meal for r in results]
            failed = [r for r in results if not r.success]
            if failed:
                console.print(f"[yellow]⚠️  {len(failed)} detail pages could not be loaded[/yellow]")

        table = Table(title=canteen)
        table.add_column("ID", justify="right")
        table.add_column("Meal", style="cyan")
        table.add_column("Price")
        if details:
            table.add_column("Information")
            table.add_column("Allergens")

        for meal in found:
            price = "ausverkauft" if meal.sold_out else (str(meal.price) if meal.price else "-")
            row = [str(meal.id), meal.name, price]
            if details:
                row.append(", ".join(sorted(i.value for i in meal.ingredients)) or "-")
                row.append(", ".join(sorted(a.name for a in meal.allergens)) or "-")
            table.add_row(*row)

        console.print(table)

    _run(run())


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except UnknownCanteenError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(2)
    except SpeiseplanError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[bold red]❌ {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)


if __name__ == '__main__':
    cli()
