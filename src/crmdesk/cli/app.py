"""CLI app setup and common utilities.

This module creates the main Typer app, resolves configuration in the app
callback and hands the composed services to every command through the
Typer context.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

import typer
from typer import Context, Typer

from crmdesk import __version__
from crmdesk.config import BACKEND_MOCK, Config
from crmdesk.connectors.base import ConnectorError
from crmdesk.crm.backends.base import CRMError
from crmdesk.crm.services import CRMServices, build_services
from crmdesk.logging_config import setup_logging

T = TypeVar("T")

# Initialize Typer app
app = Typer(
    name="crmdesk",
    help="crmdesk: inspect CRM contacts, deals, tasks, activities and comments.",
)


# =============================================================================
# Global Context Object
# =============================================================================


class CLIState:
    """Shared state object for CLI commands."""

    def __init__(self):
        self.config: Optional[Config] = None
        self.services: Optional[CRMServices] = None


def get_services(ctx: Context) -> CRMServices:
    """Get the service container from the Typer context.

    Raises:
        RuntimeError: If called before the init_app callback.
    """
    if ctx.obj is not None and ctx.obj.services is not None:
        return ctx.obj.services
    raise RuntimeError("CRM services not initialized - this is a bug")


def run_async(awaitable: Awaitable[T]) -> T:
    """Run a service call, turning data-access errors into a clean exit.

    Raises:
        typer.Exit: On any CRM or connector error.
    """
    try:
        return asyncio.run(awaitable)
    except CRMError as e:
        typer.echo(f"❌ {e}", err=True)
        for label, message in getattr(e, "field_errors", {}).items():
            typer.echo(f"   {label}: {message}", err=True)
        raise typer.Exit(1)
    except ConnectorError as e:
        typer.echo(f"❌ Record service error: {e}", err=True)
        raise typer.Exit(1)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"crmdesk {__version__}")
        raise typer.Exit()


@app.callback()
def init_app(
    ctx: Context,
    backend: Optional[str] = typer.Option(
        None,
        "--backend",
        "-b",
        help="Storage backend: mock or remote (default: CRM_BACKEND or mock)",
    ),
    seed: bool = typer.Option(
        True, "--seed/--no-seed", help="Load sample records into the mock backend"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: CRM_LOG_LEVEL or INFO)"
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Initialize configuration, logging and the CRM services.

    The mock backend keeps data in memory for the duration of one command,
    so it is seeded with sample records unless --no-seed is given.
    """
    try:
        config = Config()
    except ValueError as e:
        typer.echo(f"❌ Invalid configuration: {e}", err=True)
        raise typer.Exit(1)
    if backend:
        config.backend = backend.strip().lower()
    setup_logging(log_level or config.log_level)

    ctx.ensure_object(CLIState)
    ctx.obj.config = config

    try:
        ctx.obj.services = build_services(config, seed=seed and config.backend == BACKEND_MOCK)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)
