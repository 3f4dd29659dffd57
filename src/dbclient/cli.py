# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Command line interface for dbclient (dbclient command).

Connection settings come from DBCLIENT_* environment variables and can be
overridden with the global options. Positional ARGS are bound to the query
placeholders as strings.

Commands:
    drivers: List driver tags and whether their library is installed
    ping: Open the database and check the server answers
    query: Run a query and print the rows as a table
    exec: Execute a statement
    version: Show version info
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .adapters import available_drivers
from .client import Client
from .config import ClientConfig, config_from_env

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

console = Console()


def _run(config: ClientConfig, action: Callable[[Client], Awaitable[Any]]) -> Any:
    """Open a client, run ``action`` on it, close it. Exit 1 on any error."""

    async def runner() -> Any:
        async with Client() as client:
            await client.open_config(config)
            return await action(client)

    try:
        return asyncio.run(runner())
    except Exception as e:
        console.print(f"[red]error:[/red] {escape(str(e))}")
        sys.exit(1)


@click.group()
@click.version_option(package_name="dbclient")
@click.option("--driver", "-d", default=None, help="Driver tag (sqlite, postgres, mysql, ...).")
@click.option("--dsn", default=None, help="Driver-specific connection string.")
@click.option("--max-open", type=int, default=None, help="Maximum open connections.")
@click.option("--connect-timeout", type=float, default=None, help="Seconds allowed to connect.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages to stderr.")
@click.pass_context
def main(
    ctx: click.Context,
    driver: str | None,
    dsn: str | None,
    max_open: int | None,
    connect_timeout: float | None,
    verbose: bool,
) -> None:
    """dbclient - run SQL against any supported database."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s"
        )

    try:
        config = config_from_env()
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    if driver is not None:
        config.driver = driver
    if dsn is not None:
        config.dsn = dsn
    if max_open is not None:
        config.max_open = max_open
    if connect_timeout is not None:
        config.connect_timeout = connect_timeout
    ctx.obj = config


@main.command("drivers")
def drivers_cmd() -> None:
    """List driver tags and whether their library is installed."""
    table = Table(title="Drivers")
    table.add_column("Tag", style="cyan")
    table.add_column("Extra")
    table.add_column("Installed")

    for tag, extra, installed in available_drivers():
        status = "[green]yes[/green]" if installed else "[dim]no[/dim]"
        table.add_row(tag, extra, status)

    console.print(table)


@main.command("ping")
@click.pass_obj
def ping_cmd(config: ClientConfig) -> None:
    """Open the database and check the server answers."""
    _run(config, lambda client: client.ping())
    console.print(f"[green]ok[/green] {config.driver}")


@main.command("query")
@click.argument("sql")
@click.argument("args", nargs=-1)
@click.pass_obj
def query_cmd(config: ClientConfig, sql: str, args: tuple[str, ...]) -> None:
    """Run a query and print the rows."""

    async def action(client: Client) -> tuple[list[str], list[tuple[Any, ...]]]:
        rows = await client.query(sql, *args)
        async with rows:
            return rows.columns, await rows.fetchall()

    columns, rows = _run(config, action)

    table = Table()
    for column in columns:
        table.add_column(column, style="cyan")
    for row in rows:
        table.add_row(*("[dim]NULL[/dim]" if value is None else escape(str(value)) for value in row))

    console.print(table)
    console.print(f"[dim]{len(rows)} row(s)[/dim]")


@main.command("exec")
@click.argument("sql")
@click.argument("args", nargs=-1)
@click.pass_obj
def exec_cmd(config: ClientConfig, sql: str, args: tuple[str, ...]) -> None:
    """Execute a statement."""
    _run(config, lambda client: client.execute(sql, *args))
    console.print("[green]ok[/green]")


@main.command("version")
def version_cmd() -> None:
    """Show version information."""
    from dbclient import __version__

    console.print(f"dbclient {__version__}")


if __name__ == "__main__":
    main()
