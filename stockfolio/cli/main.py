"""Main CLI entry point for stockfolio.

Subcommands are registered as ``module:attribute`` targets and imported on
first use, so ``stockfolio --help`` never touches the database or the quote
providers.
"""

import importlib
from pathlib import Path
from typing import Optional

import click


class LazyGroup(click.Group):
    """Click group resolving subcommands from import targets on demand."""

    def __init__(self, *args, lazy_subcommands: Optional[dict[str, str]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = dict(lazy_subcommands or {})

    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted(self.commands.keys() | self._lazy_subcommands.keys())

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        target = self._lazy_subcommands.get(cmd_name)
        if cmd_name in self.commands or target is None:
            return self.commands.get(cmd_name)

        module_path, _, attr_name = target.partition(":")
        cmd = getattr(importlib.import_module(module_path), attr_name, None)
        if not isinstance(cmd, click.Command):
            raise click.ClickException(f"{target} is not a click command")

        self.add_command(cmd, cmd_name)
        return cmd


LAZY_SUBCOMMANDS = {
    # Lots
    "buy": "stockfolio.cli.positions:buy",
    "positions": "stockfolio.cli.positions:positions",
    "records": "stockfolio.cli.positions:records",
    "close": "stockfolio.cli.positions:close_position",
    "reduce": "stockfolio.cli.positions:reduce",
    "delete": "stockfolio.cli.positions:delete_position",
    "stats": "stockfolio.cli.positions:stats",
    # Portfolio views
    "pnl": "stockfolio.cli.portfolio:pnl",
    "closed": "stockfolio.cli.portfolio:closed",
    "portfolios": "stockfolio.cli.portfolio:portfolios",
    "summary": "stockfolio.cli.portfolio:summary",
    # Maintenance
    "reset": "stockfolio.cli.admin:reset",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="stockfolio")
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Database file. Overrides the config file and STOCKFOLIO_DB.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file. Defaults to ~/.config/stockfolio/config.toml.",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    db_path: Optional[Path],
    config_path: Optional[Path],
    verbose: bool,
) -> None:
    """stockfolio - track stock lots across portfolios and their P&L.

    Record buys, sell all or part of a lot, and see realized and
    unrealized profit and loss against live or simulated quotes.

    \b
    Quick Start:
      stockfolio buy sh600519 100 1650.5   # Record a lot
      stockfolio positions                 # View open lots
      stockfolio pnl                       # Unrealized P&L per portfolio
    """
    from stockfolio.logging_config import setup_logging

    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path
    ctx.obj["config_path"] = config_path


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
