"""Lot commands for the stockfolio CLI.

Records buys, sells all or part of a lot, and lists lots.
"""

from datetime import date, datetime
from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from stockfolio.cli.common import (
    DATE_TYPE,
    console,
    echo_json,
    format_rate,
    format_signed,
    get_service,
    handle_errors,
)


def _to_date(value: Optional[datetime]) -> date:
    return value.date() if value is not None else date.today()


def _lots_table(positions: list, title: str) -> Table:
    """Build a table of lots, showing sale columns when any lot is closed."""
    show_sales = any(p.is_closed for p in positions)

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Code", style="bold")
    table.add_column("Name")
    table.add_column("Portfolio")
    table.add_column("Buy Date")
    table.add_column("Qty", justify="right")
    table.add_column("Buy Price", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Status")
    if show_sales:
        table.add_column("Sell Date")
        table.add_column("Sell Price", justify="right")
        table.add_column("P&L", justify="right")

    for p in positions:
        status = "[green]OPEN[/green]" if p.is_open else "[dim]CLOSED[/dim]"
        row = [
            p.id,
            p.code,
            p.name,
            p.portfolio,
            p.buy_date.isoformat(),
            str(p.quantity),
            f"{p.buy_price:,.2f}",
            f"{p.cost:,.2f}",
            status,
        ]
        if show_sales:
            if p.is_closed and p.sell_price is not None:
                row += [
                    p.sell_date.isoformat() if p.sell_date else "",
                    f"{p.sell_price:,.2f}",
                    format_signed(p.profit_loss or 0.0),
                ]
            else:
                row += ["", "", ""]
        table.add_row(*row)
    return table


@click.command()
@click.argument("code")
@click.argument("qty", type=int)
@click.argument("price", type=float)
@click.option("-n", "--name", default=None, help="Display name. Defaults to the code.")
@click.option(
    "-d", "--date", "buy_date",
    type=DATE_TYPE,
    default=None,
    help="Buy date (YYYY-MM-DD). Defaults to today.",
)
@click.option("-p", "--portfolio", default=None, help="Portfolio to record the lot in.")
@click.pass_context
def buy(
    ctx: click.Context,
    code: str,
    qty: int,
    price: float,
    name: Optional[str],
    buy_date: Optional[datetime],
    portfolio: Optional[str],
) -> None:
    """Record a new lot.

    CODE is the instrument code (e.g. sh600519).
    QTY is the number of units bought, PRICE the price per unit.

    \b
    Examples:
      stockfolio buy sh600519 100 1650.5
      stockfolio buy sz000001 500 11.2 --portfolio growth --date 2024-03-01
    """
    with handle_errors():
        service = get_service(ctx)
        position = service.buy(
            code=code,
            name=name,
            buy_price=price,
            buy_date=_to_date(buy_date),
            quantity=qty,
            portfolio=portfolio,
        )

    console.print(Panel(
        f"[bold green]Lot recorded[/bold green]\n\n"
        f"ID:        {position.id}\n"
        f"Code:      {position.code} ({position.name})\n"
        f"Portfolio: {position.portfolio}\n"
        f"Quantity:  {position.quantity}\n"
        f"Price:     {position.buy_price:,.2f}\n"
        f"Cost:      {position.cost:,.2f}\n"
        f"Date:      {position.buy_date.isoformat()}",
        title="[bold green]Bought[/bold green]",
        border_style="green",
    ))


@click.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of a table.")
@click.pass_context
def positions(ctx: click.Context, as_json: bool) -> None:
    """List open lots.

    \b
    Examples:
      stockfolio positions
      stockfolio positions --json
    """
    with handle_errors():
        open_positions = get_service(ctx).get_positions()

    if as_json:
        echo_json(open_positions)
        return

    if not open_positions:
        console.print("[dim]No open positions.[/dim]")
        return

    console.print(_lots_table(open_positions, "Open Positions"))
    total_cost = sum(p.cost for p in open_positions)
    console.print(f"\n[bold]Total cost:[/bold] {total_cost:,.2f}")


@click.command()
@click.argument("code")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of a table.")
@click.pass_context
def records(ctx: click.Context, code: str, as_json: bool) -> None:
    """Show every lot of CODE, open and closed.

    \b
    Examples:
      stockfolio records sh600519
    """
    with handle_errors():
        lots = get_service(ctx).get_position_records(code)

    if as_json:
        echo_json(lots)
        return

    if not lots:
        console.print(f"[dim]No records for {code}.[/dim]")
        return

    console.print(_lots_table(lots, f"Records: {code}"))


@click.command("close")
@click.argument("position_id", metavar="ID")
@click.argument("price", type=float)
@click.option(
    "-d", "--date", "sell_date",
    type=DATE_TYPE,
    default=None,
    help="Sale date (YYYY-MM-DD). Defaults to today.",
)
@click.pass_context
def close_position(
    ctx: click.Context,
    position_id: str,
    price: float,
    sell_date: Optional[datetime],
) -> None:
    """Sell a whole lot at PRICE.

    \b
    Examples:
      stockfolio close 3f2a... 1720.0
    """
    with handle_errors():
        service = get_service(ctx)
        service.close_position(position_id, price, _to_date(sell_date))
        closed = service.store.get(position_id)

    console.print(Panel(
        f"[bold]Lot closed[/bold]\n\n"
        f"ID:        {closed.id}\n"
        f"Code:      {closed.code}\n"
        f"Quantity:  {closed.quantity}\n"
        f"Buy/Sell:  {closed.buy_price:,.2f} -> {closed.sell_price:,.2f}\n"
        f"P&L:       {format_signed(closed.profit_loss)} ({format_rate(closed.profit_loss_rate)})\n"
        f"Held:      {closed.holding_days} days",
        title="[bold cyan]Closed[/bold cyan]",
        border_style="cyan",
    ))


@click.command()
@click.argument("position_id", metavar="ID")
@click.argument("qty", type=int)
@click.argument("price", type=float)
@click.option(
    "-d", "--date", "sell_date",
    type=DATE_TYPE,
    default=None,
    help="Sale date (YYYY-MM-DD). Defaults to today.",
)
@click.pass_context
def reduce(
    ctx: click.Context,
    position_id: str,
    qty: int,
    price: float,
    sell_date: Optional[datetime],
) -> None:
    """Sell QTY units of a lot at PRICE, keeping the rest open.

    \b
    Examples:
      stockfolio reduce 3f2a... 40 1720.0
    """
    with handle_errors():
        service = get_service(ctx)
        sold = service.sell_part(position_id, qty, price, _to_date(sell_date))
        remaining = service.store.get(position_id)

    console.print(Panel(
        f"[bold]Lot reduced[/bold]\n\n"
        f"ID:        {remaining.id}\n"
        f"Code:      {remaining.code}\n"
        f"Sold:      {sold.quantity} @ {sold.sell_price:,.2f}\n"
        f"Realized:  {format_signed(sold.profit_loss)}\n"
        f"Remaining: {remaining.quantity}",
        title="[bold cyan]Reduced[/bold cyan]",
        border_style="cyan",
    ))


@click.command("delete")
@click.argument("position_id", metavar="ID")
@click.option("-y", "--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
@click.pass_context
def delete_position(ctx: click.Context, position_id: str, yes: bool) -> None:
    """Permanently delete a lot record.

    \b
    Examples:
      stockfolio delete 3f2a...
      stockfolio delete 3f2a... --yes
    """
    with handle_errors():
        service = get_service(ctx)
        position = service.store.get(position_id)

        if not yes:
            if not click.confirm(
                f"Delete {position.status} lot {position.code} x{position.quantity} ({position.id})?"
            ):
                console.print("[dim]Delete cancelled.[/dim]")
                return

        service.delete_position(position_id)

    console.print(f"[green]Deleted lot {position_id}[/green]")


@click.command()
@click.argument("code")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of a panel.")
@click.pass_context
def stats(ctx: click.Context, code: str, as_json: bool) -> None:
    """Show open-lot totals for CODE.

    \b
    Examples:
      stockfolio stats sh600519
    """
    with handle_errors():
        position_stats = get_service(ctx).get_position_stats(code)

    if as_json:
        echo_json(position_stats)
        return

    console.print(Panel(
        f"Open lots:     {position_stats.record_count}\n"
        f"Total qty:     {position_stats.total_quantity}\n"
        f"Total cost:    {position_stats.total_cost:,.2f}\n"
        f"Avg cost:      {position_stats.avg_cost_price:,.4f}",
        title=f"[bold]{position_stats.code}[/bold]",
        border_style="cyan",
    ))
