"""Maintenance commands for the stockfolio CLI."""

import click
from rich.panel import Panel

from stockfolio.cli.common import console, get_service, handle_errors


@click.command()
@click.option(
    "--confirm",
    is_flag=True,
    default=False,
    help="Skip confirmation prompt.",
)
@click.pass_context
def reset(ctx: click.Context, confirm: bool) -> None:
    """Delete every lot, open and closed.

    \b
    Examples:
      stockfolio reset           # Reset with confirmation
      stockfolio reset --confirm # Reset without confirmation
    """
    with handle_errors():
        service = get_service(ctx)
        total = service.store.count()
        open_count = service.store.count(status="OPEN")

        console.print("[bold cyan]Database Reset[/bold cyan]\n")
        console.print(f"Database:      [yellow]{service.store.db_path}[/yellow]")
        console.print(f"Records:       [yellow]{total}[/yellow]")
        console.print(f"Open lots:     [yellow]{open_count}[/yellow]\n")

        if not confirm:
            if not click.confirm("Are you sure you want to delete all records?"):
                console.print("[dim]Reset cancelled.[/dim]")
                return

        service.reset_database()

    console.print(Panel(
        f"[green]All records have been deleted.[/green]\n\n"
        f"Removed: {total}",
        title="[bold green]Reset Complete[/bold green]",
        border_style="green",
    ))
