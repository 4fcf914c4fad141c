"""CLI commands for stockfolio.

This package provides the command-line client for the position ledger:
recording lots, reducing and closing them, and viewing profit and loss.
"""

from stockfolio.cli.main import cli, main

__all__ = ["cli", "main"]
