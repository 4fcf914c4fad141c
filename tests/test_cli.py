"""Tests for the stockfolio command-line client."""

import json
import tempfile
from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from stockfolio.cli.main import LAZY_SUBCOMMANDS, LazyGroup, cli


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def run(temp_dir: Path, monkeypatch):
    """Invoke the CLI against a temporary database and empty config."""
    monkeypatch.delenv("STOCKFOLIO_DB", raising=False)
    runner = CliRunner()
    base = ["--db", str(temp_dir / "test.db"), "--config", str(temp_dir / "none.toml")]

    def invoke(*args, input=None):
        return runner.invoke(cli, base + list(args), input=input)

    return invoke


def _buy(run, *args) -> dict:
    """Buy through the CLI and return the new lot as JSON."""
    result = run("buy", *args)
    assert result.exit_code == 0, result.output
    positions = json.loads(run("positions", "--json").output)
    return positions[-1]


class TestCommandRegistry:
    def test_every_lazy_command_loads(self):
        ctx = click.Context(cli)
        for name in LAZY_SUBCOMMANDS:
            command = cli.get_command(ctx, name)
            assert command is not None
            assert command.name == name

    def test_unknown_command(self, run):
        result = run("nope")
        assert result.exit_code != 0

    def test_target_must_be_a_command(self):
        group = LazyGroup(lazy_subcommands={"broken": "stockfolio.cli.common:console"})

        with pytest.raises(click.ClickException):
            group.get_command(click.Context(group), "broken")
        assert group.list_commands(click.Context(group)) == ["broken"]


class TestLotCommands:
    def test_buy_and_positions(self, run):
        lot = _buy(
            run, "sh600519", "100", "1650.5",
            "--name", "Moutai", "--date", "2024-03-01", "-p", "growth",
        )

        assert lot["code"] == "sh600519"
        assert lot["name"] == "Moutai"
        assert lot["quantity"] == 100
        assert lot["buy_price"] == 1650.5
        assert lot["buy_date"] == "2024-03-01"
        assert lot["portfolio"] == "growth"
        assert lot["status"] == "OPEN"

        table = run("positions")
        assert table.exit_code == 0
        assert "Open Positions" in table.output

    def test_invalid_buy_shows_error_panel(self, run):
        result = run("buy", "X", "0", "10")

        assert result.exit_code == 1
        assert "Error" in result.output
        assert "VALIDATION" in result.output

    def test_reduce_then_close(self, run):
        lot = _buy(run, "X", "100", "10", "--date", "2024-01-01")

        reduced = run("reduce", lot["id"], "40", "12", "--date", "2024-01-05")
        assert reduced.exit_code == 0, reduced.output
        assert "Reduced" in reduced.output

        [sold] = [r for r in json.loads(run("records", "X", "--json").output) if r["parent_id"]]
        assert sold["profit_loss"] == pytest.approx(80.0)
        assert f"Realized:  {sold['profit_loss']:+,.2f}" in reduced.output

        [remaining] = json.loads(run("positions", "--json").output)
        assert remaining["id"] == lot["id"]
        assert remaining["quantity"] == 60

        closed = run("close", lot["id"], "9", "--date", "2024-01-10")
        assert closed.exit_code == 0, closed.output

        assert json.loads(run("positions", "--json").output) == []
        records = json.loads(run("records", "X", "--json").output)
        assert sorted(r["quantity"] for r in records) == [40, 60]
        assert all(r["status"] == "CLOSED" for r in records)

    def test_reduce_whole_lot_is_rejected(self, run):
        lot = _buy(run, "X", "100", "10")

        result = run("reduce", lot["id"], "100", "12")

        assert result.exit_code == 1
        assert "VALIDATION" in result.output
        assert json.loads(run("positions", "--json").output)[0]["quantity"] == 100

    def test_close_twice(self, run):
        lot = _buy(run, "X", "100", "10")
        assert run("close", lot["id"], "11").exit_code == 0

        result = run("close", lot["id"], "12")

        assert result.exit_code == 1
        assert "INVALID_STATE" in result.output

    def test_close_unknown(self, run):
        result = run("close", "missing", "11")

        assert result.exit_code == 1
        assert "NOT_FOUND" in result.output

    def test_delete_with_prompt(self, run):
        lot = _buy(run, "X", "100", "10")

        cancelled = run("delete", lot["id"], input="n\n")
        assert cancelled.exit_code == 0
        assert len(json.loads(run("positions", "--json").output)) == 1

        deleted = run("delete", lot["id"], input="y\n")
        assert deleted.exit_code == 0
        assert json.loads(run("positions", "--json").output) == []

    def test_delete_yes(self, run):
        lot = _buy(run, "X", "100", "10")

        assert run("delete", lot["id"], "--yes").exit_code == 0
        assert run("delete", lot["id"], "--yes").exit_code == 1

    def test_stats(self, run):
        _buy(run, "X", "100", "10")
        _buy(run, "X", "50", "13")

        result = run("stats", "X", "--json")

        assert result.exit_code == 0
        stats = json.loads(result.output)
        assert stats["record_count"] == 2
        assert stats["total_quantity"] == 150
        assert stats["total_cost"] == 1650


class TestPortfolioCommands:
    def test_pnl_with_mock_quotes(self, run):
        _buy(run, "AB", "100", "10", "-p", "P")

        result = run("pnl", "--mock", "--json")

        assert result.exit_code == 0, result.output
        [portfolio] = json.loads(result.output)
        assert portfolio["portfolio"] == "P"
        assert portfolio["full_position"] == 50000
        assert portfolio["sum_profit_losses"] == pytest.approx(100.0)
        assert portfolio["target_profit_losses"][0]["real_price"] == 11.0

        table = run("pnl", "--mock")
        assert table.exit_code == 0
        assert "Portfolio: P" in table.output
        assert "Using simulated quotes" in table.output

    def test_pnl_empty(self, run):
        result = run("pnl", "--json")

        assert result.exit_code == 0
        assert json.loads(result.output) == []

    def test_pnl_rejects_bad_timeout(self, run):
        assert run("pnl", "--timeout", "0").exit_code == 2

    def test_closed(self, run):
        lot = _buy(run, "X", "100", "10", "--date", "2024-01-01")
        run("reduce", lot["id"], "40", "12", "--date", "2024-01-05")

        result = run("closed", "--json")

        assert result.exit_code == 0
        summary = json.loads(result.output)
        assert len(summary["trades"]) == 1
        assert summary["trades"][0]["parent_id"] == lot["id"]
        assert summary["statistics"]["total_profit_loss"] == pytest.approx(80.0)

        assert "Closed Trades" in run("closed").output

    def test_portfolios_and_summary(self, run):
        _buy(run, "X", "10", "10", "-p", "p1")
        _buy(run, "Y", "10", "20", "-p", "p2")

        listed = run("portfolios")
        assert listed.output.split() == ["p1", "p2"]

        summaries = json.loads(run("summary", "--json").output)
        assert [s["portfolio"] for s in summaries] == ["p1", "p2"]

        [one] = json.loads(run("summary", "p2", "--json").output)
        assert one["total_cost"] == 200


class TestAdminCommands:
    def test_reset_confirm(self, run):
        _buy(run, "X", "10", "10")

        result = run("reset", "--confirm")

        assert result.exit_code == 0
        assert "Reset Complete" in result.output
        assert json.loads(run("positions", "--json").output) == []

    def test_reset_cancelled(self, run):
        _buy(run, "X", "10", "10")

        result = run("reset", input="n\n")

        assert result.exit_code == 0
        assert len(json.loads(run("positions", "--json").output)) == 1


class TestConfigFile:
    def test_bad_config_shows_error(self, temp_dir: Path):
        config_path = temp_dir / "bad.toml"
        config_path.write_text("[quotes\n")

        result = CliRunner().invoke(
            cli, ["--db", str(temp_dir / "test.db"), "--config", str(config_path), "positions"]
        )

        assert result.exit_code == 1
        assert "CONFIGURATION" in result.output

    def test_configured_mock_source_is_announced(self, temp_dir: Path):
        config_path = temp_dir / "mock.toml"
        config_path.write_text('[quotes]\nsource = "mock"\n')
        base = ["--db", str(temp_dir / "test.db"), "--config", str(config_path)]
        runner = CliRunner()
        runner.invoke(cli, base + ["buy", "AB", "100", "10"])

        result = runner.invoke(cli, base + ["pnl"])

        assert result.exit_code == 0, result.output
        assert "Using simulated quotes" in result.output
