"""Portfolio commands for the stockfolio CLI.

Shows unrealized P&L per portfolio, closed-trade results and cost
summaries.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from stockfolio.cli.common import (
    console,
    echo_json,
    format_rate,
    format_signed,
    get_service,
    handle_errors,
)


@click.command()
@click.option("-m", "--mock", is_flag=True, default=False, help="Use simulated quotes.")
@click.option(
    "-t", "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Quote lookup timeout in seconds.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of tables.")
@click.pass_context
def pnl(ctx: click.Context, mock: bool, timeout: Optional[float], as_json: bool) -> None:
    """Show unrealized P&L of open lots, per portfolio and instrument.

    Every open instrument needs a quote; if any is missing nothing is
    shown and the missing codes are reported.

    \b
    Examples:
      stockfolio pnl
      stockfolio pnl --mock
      stockfolio pnl --timeout 3 --json
    """
    with handle_errors():
        service = get_service(ctx)
        view = service.get_portfolio_profit_loss_view(use_mock=mock, timeout=timeout)

    if as_json:
        echo_json(view)
        return

    if not view:
        console.print("[dim]No open positions.[/dim]")
        return

    if service.uses_mock_quotes(mock):
        console.print("[yellow]Using simulated quotes[/yellow]\n")

    for portfolio in view:
        table = Table(
            title=f"Portfolio: {portfolio.portfolio}",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Code", style="bold")
        table.add_column("Name")
        table.add_column("Lots", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("Cost %", justify="right")
        table.add_column("Value %", justify="right")
        table.add_column("P&L", justify="right")
        table.add_column("P&L %", justify="right")
        table.add_column("Buy In", justify="right")
        table.add_column("Sell Out", justify="right")

        # Largest position first
        targets = sorted(
            portfolio.target_profit_losses,
            key=lambda t: t.current_position_rate,
            reverse=True,
        )
        for target in targets:
            table.add_row(
                target.code,
                target.name,
                str(len(target.position_profit_losses)),
                f"{target.real_price:,.2f}",
                f"{target.cost_position_rate * 100:.1f}%",
                f"{target.current_position_rate * 100:.1f}%",
                format_signed(target.target_profit_loss),
                format_rate(target.target_profit_loss_rate),
                f"{target.recommended_buy_in_point:,.2f}",
                f"{target.recommended_sale_out_point:,.2f}",
            )

        console.print(table)
        console.print(
            f"Cost: {portfolio.sum_position_cost:,.2f}   "
            f"P&L: {format_signed(portfolio.sum_profit_losses)} "
            f"({format_rate(portfolio.sum_profit_losses_rate)})   "
            f"Full position: {portfolio.full_position:,.0f}\n"
        )


@click.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of tables.")
@click.pass_context
def closed(ctx: click.Context, as_json: bool) -> None:
    """Show closed trades and realized P&L statistics.

    \b
    Examples:
      stockfolio closed
      stockfolio closed --json
    """
    with handle_errors():
        summary = get_service(ctx).get_closed_trades_summary()

    if as_json:
        echo_json(summary)
        return

    if not summary.trades:
        console.print("[dim]No closed trades.[/dim]")
        return

    table = Table(title="Closed Trades", show_header=True, header_style="bold cyan")
    table.add_column("Sold", style="dim")
    table.add_column("Code", style="bold")
    table.add_column("Portfolio")
    table.add_column("Qty", justify="right")
    table.add_column("Buy", justify="right")
    table.add_column("Sell", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("P&L %", justify="right")
    table.add_column("Days", justify="right")

    for trade in summary.trades:
        table.add_row(
            trade.sell_date.isoformat(),
            trade.code,
            trade.portfolio,
            str(trade.quantity),
            f"{trade.buy_price:,.2f}",
            f"{trade.sell_price:,.2f}",
            format_signed(trade.profit_loss),
            format_rate(trade.profit_loss_rate),
            str(trade.holding_days),
        )

    console.print(table)

    s = summary.statistics
    console.print(Panel(
        f"Trades:          {s.total_trades} "
        f"([green]{s.profitable_trades} won[/green], [red]{s.loss_trades} lost[/red])\n"
        f"Win rate:        {s.win_rate * 100:.1f}%\n"
        f"Total P&L:       {format_signed(s.total_profit_loss)}\n"
        f"Avg P&L rate:    {format_rate(s.average_profit_loss_rate)}\n"
        f"Best / worst:    {format_signed(s.max_profit)} / {format_signed(s.max_loss)}\n"
        f"Avg holding:     {s.average_holding_days:.1f} days",
        title="[bold]Statistics[/bold]",
        border_style="cyan",
    ))


@click.command()
@click.pass_context
def portfolios(ctx: click.Context) -> None:
    """List portfolios that hold open lots."""
    with handle_errors():
        names = get_service(ctx).get_portfolios()

    if not names:
        console.print("[dim]No portfolios with open positions.[/dim]")
        return

    for name in names:
        console.print(name)


@click.command()
@click.argument("portfolio", required=False)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of a table.")
@click.pass_context
def summary(ctx: click.Context, portfolio: Optional[str], as_json: bool) -> None:
    """Show the cost summary of PORTFOLIO, or of every portfolio.

    No quotes are needed.

    \b
    Examples:
      stockfolio summary
      stockfolio summary growth
    """
    with handle_errors():
        service = get_service(ctx)
        if portfolio is None:
            summaries = service.get_all_portfolio_summaries()
        else:
            summaries = [service.get_portfolio_summary(portfolio)]

    if as_json:
        echo_json(summaries)
        return

    if not summaries:
        console.print("[dim]No open positions.[/dim]")
        return

    table = Table(title="Portfolio Summary", show_header=True, header_style="bold cyan")
    table.add_column("Portfolio", style="bold")
    table.add_column("Lots", justify="right")
    table.add_column("Codes", justify="right")
    table.add_column("Total Cost", justify="right")

    for item in summaries:
        codes = {p.code for p in item.positions}
        table.add_row(
            item.portfolio,
            str(item.record_count),
            str(len(codes)),
            f"{item.total_cost:,.2f}",
        )

    console.print(table)
