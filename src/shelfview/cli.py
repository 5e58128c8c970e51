"""Typer-based CLI entry point."""

from __future__ import annotations

import asyncio
import functools
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from .appctx import AppContext
from .domain.models import ListState, ProductListSnapshot
from .errors import RequestFailed, SettingsError, ShelfviewError, Unauthorized
from .infrastructure.repositories import FileCredentialStore
from .utils.logging import configure_logging

app = typer.Typer(help="Browse the product catalogue from the terminal")
console = Console()

_SETTINGS_OPTION = typer.Option(None, "--settings", help="Path to settings.json")


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Unauthorized as exc:
            typer.echo(f"Error: {exc.message}", err=True)
            raise typer.Exit(1) from exc
        except (RequestFailed, SettingsError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except ShelfviewError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _context(settings_path: Optional[Path]) -> AppContext:
    ctx = AppContext.from_settings_path(settings_path)
    configure_logging(ctx.settings.get("log_level", "WARNING"))
    return ctx


def _render(snapshot: ProductListSnapshot) -> Table:
    title = f"Products matching '{snapshot.query}'" if snapshot.query else "Products"
    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name")
    table.add_column("Description", overflow="ellipsis", max_width=60)
    table.add_column("kcal/100g", justify="right")
    for item in snapshot.items:
        table.add_row(
            str(item.id),
            item.name,
            item.description or "",
            f"{item.kcal_100g} kcal" if item.kcal_100g is not None else "",
        )
    return table


@app.command()
@_handle_errors
def login(
    username: str = typer.Argument(..., help="Account identifier"),
    password: str = typer.Option(..., prompt=True, hide_input=True),
    settings: Optional[Path] = _SETTINGS_OPTION,
) -> None:
    """Log in and store the access token."""

    ctx = _context(settings)

    async def _run() -> None:
        try:
            await ctx.auth.login(username.strip(), password)
        finally:
            await ctx.aclose()

    asyncio.run(_run())
    print(f"[green]Logged in as {username.strip()}")


@app.command()
@_handle_errors
def logout(settings: Optional[Path] = _SETTINGS_OPTION) -> None:
    """Forget the stored access token."""

    ctx = _context(settings)

    async def _run() -> None:
        try:
            await ctx.auth.logout()
        finally:
            await ctx.aclose()

    asyncio.run(_run())
    print("[green]Logged out")


@app.command()
@_handle_errors
def products(
    query: str = typer.Option("", "--query", "-q", help="Search text"),
    pages: int = typer.Option(1, "--pages", "-n", min=1, help="Number of pages to load"),
    settings: Optional[Path] = _SETTINGS_OPTION,
) -> None:
    """List products, loading up to PAGES pages."""

    ctx = _context(settings)

    async def _run() -> ProductListSnapshot:
        vm = ctx.create_product_list()
        try:
            await vm.reset_and_fetch(query)
            while vm.snapshot().state is ListState.IDLE and vm.snapshot().has_more and pages > 1:
                if vm.offset >= pages * vm.limit:
                    break
                await vm.fetch_more()
            return vm.snapshot()
        finally:
            vm.dispose()
            await ctx.aclose()

    snapshot = asyncio.run(_run())
    if snapshot.state is ListState.LOGGED_OUT:
        typer.echo("Session expired, please log in again", err=True)
        raise typer.Exit(1)
    if snapshot.state is ListState.ERROR:
        typer.echo(f"Error: {snapshot.error}", err=True)
        raise typer.Exit(1)
    if snapshot.is_empty:
        print("[yellow]No products")
        return
    console.print(_render(snapshot))
    if snapshot.show_footer_spinner:
        print(f"[dim]{len(snapshot.items)} shown, more available (use --pages)")


@app.command()
@_handle_errors
def config(settings: Optional[Path] = _SETTINGS_OPTION) -> None:
    """Show the resolved configuration."""

    ctx = _context(settings)
    store = ctx.credentials
    location = store.path if isinstance(store, FileCredentialStore) else "in memory"

    async def _run() -> bool:
        try:
            return await ctx.auth.is_authenticated()
        finally:
            await ctx.aclose()

    logged_in = asyncio.run(_run())
    print(
        f"Settings: {ctx.settings.path}\n"
        f"API base URL: {ctx.settings.api_base_url()}\n"
        f"Credentials: {location}\n"
        f"Session: {'logged in' if logged_in else 'logged out'}"
    )


if __name__ == "__main__":  # pragma: no cover
    app()
