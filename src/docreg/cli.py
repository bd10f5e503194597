"""Command-line interface."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Annotated, TypeVar

import typer
from pydantic import ValidationError

from docreg.config import Settings
from docreg.errors import DocRegError
from docreg.logging_config import setup_logging
from docreg.state import AppState, open_app_state

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from docreg.models.results import OperationResult

T = TypeVar("T")

app = typer.Typer(
    help="Discover, install, update and remove provider documentation.",
    no_args_is_help=True,
    add_completion=False,
)


def _run(action: Callable[[AppState], Awaitable[T]]) -> T:
    try:
        settings = Settings()
    except ValidationError as exc:
        typer.echo(f"error: invalid configuration\n{exc}", err=True)
        raise typer.Exit(code=2) from exc
    setup_logging(settings.logging)

    async def main() -> T:
        async with open_app_state(settings) as state:
            return await action(state)

    try:
        return asyncio.run(main())
    except DocRegError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _report(results: list[OperationResult]) -> None:
    failed = False
    for result in results:
        prefix = "ok" if result.ok else "FAILED"
        typer.echo(f"{prefix}: {result.message}")
        for error in result.errors:
            typer.echo(f"  {error}", err=True)
        failed = failed or not result.ok
    if failed:
        raise typer.Exit(code=1)


@app.command("build-registry")
def build_registry() -> None:
    """Fetch the list of available providers and write the registry."""
    _report([_run(lambda state: state.lifecycle.build_registry())])


@app.command()
def install(provider: Annotated[str, typer.Argument(help="Provider name, e.g. aws")]) -> None:
    """Install the latest versions of a provider's documentation."""
    _report([_run(lambda state: state.lifecycle.install_provider(provider))])


@app.command()
def update(
    provider: Annotated[
        str | None, typer.Argument(help="Provider to update (default: every installed provider)")
    ] = None,
) -> None:
    """Keep only the latest versions of installed providers, fetching new ones."""
    if provider is None:
        results = _run(lambda state: state.lifecycle.update_all_installed())
        if not results:
            typer.echo("No providers installed")
        _report(list(results.values()))
    else:
        _report([_run(lambda state: state.lifecycle.update_provider(provider))])


@app.command()
def remove(provider: Annotated[str, typer.Argument(help="Provider name")]) -> None:
    """Remove a provider and its documentation."""
    _report([_run(lambda state: state.lifecycle.remove_provider(provider))])


@app.command()
def ensure(
    providers: Annotated[
        list[str] | None,
        typer.Argument(help="Providers to install if missing (default: ensure_installed setting)"),
    ] = None,
) -> None:
    """Install every listed provider that is not installed yet, one at a time."""

    async def action(state: AppState) -> dict[str, OperationResult]:
        names = providers or state.settings.ensure_installed
        return await state.lifecycle.ensure_installed(names)

    _report(list(_run(action).values()))


@app.command("list-installed")
def list_installed() -> None:
    """Print installed providers."""

    async def action(state: AppState) -> list[str]:
        return state.lifecycle.list_installed()

    for name in _run(action):
        typer.echo(name)


@app.command("list-available")
def list_available() -> None:
    """Print providers listed in the registry."""

    async def action(state: AppState) -> list[str]:
        return state.lifecycle.list_available()

    for name in _run(action):
        typer.echo(name)


@app.command()
def reindex(provider: Annotated[str, typer.Argument(help="Provider name")]) -> None:
    """Rebuild the resource index of an installed provider."""
    _report([_run(lambda state: state.lifecycle.reindex_provider(provider))])
