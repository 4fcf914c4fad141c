"""Helpers shared by the stockfolio CLI commands."""

import json
from contextlib import contextmanager
from typing import Any, Iterator

import click
from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel

from stockfolio.errors import LedgerError

console = Console()

DATE_TYPE = click.DateTime(formats=["%Y-%m-%d"])


def error_panel(error: LedgerError) -> Panel:
    """Render a ledger error as a red panel."""
    body = f"[red]{error.message}[/red]\n\n[dim]{error.kind}[/dim]"
    return Panel(body, title="[bold red]Error[/bold red]", border_style="red")


@contextmanager
def handle_errors() -> Iterator[None]:
    """Show a LedgerError as a red panel and exit with status 1."""
    try:
        yield
    except LedgerError as e:
        console.print(error_panel(e))
        raise SystemExit(1)


def get_service(ctx: click.Context):
    """Build the ledger service from the global CLI options.

    The service is created once per invocation and closed with the context.
    """
    from stockfolio.config import load_config
    from stockfolio.service import LedgerService

    obj = ctx.ensure_object(dict)
    if "service" not in obj:
        config = load_config(obj.get("config_path"))
        service = LedgerService.from_config(config, db_path=obj.get("db_path"))
        ctx.call_on_close(service.close)
        obj["service"] = service
    return obj["service"]


def echo_json(data: Any) -> None:
    """Print models (or lists of models) as indented JSON."""
    if isinstance(data, BaseModel):
        payload = data.model_dump(mode="json")
    elif isinstance(data, list):
        payload = [
            item.model_dump(mode="json") if isinstance(item, BaseModel) else item
            for item in data
        ]
    else:
        payload = data
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def pnl_color(value: float) -> str:
    return "green" if value >= 0 else "red"


def format_signed(value: float) -> str:
    """Format an amount with an explicit sign, colored by direction."""
    color = pnl_color(value)
    sign = "+" if value >= 0 else ""
    return f"[{color}]{sign}{value:,.2f}[/{color}]"


def format_rate(rate: float) -> str:
    """Format a fractional rate as a signed, colored percentage."""
    color = pnl_color(rate)
    sign = "+" if rate >= 0 else ""
    return f"[{color}]{sign}{rate * 100:.2f}%[/{color}]"
