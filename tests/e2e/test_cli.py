# ABOUTME: End-to-end tests for the shelfmeta CLI root group.
# ABOUTME: Tests help output, version flag, and subcommand registration via Click's CliRunner.

from click.testing import CliRunner

from shelfmeta.cli import cli


class TestCliHelp:
    """E2e tests for top-level help."""

    def test_help_lists_commands(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("collect", "review", "harvest"):
            assert command in result.output

    def test_collect_help(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["collect", "--help"])
        assert result.exit_code == 0
        assert "--refresh" in result.output
        assert "--dry-run" in result.output

    def test_unknown_command_fails(self) -> None:
        runner = CliRunner()
        result = runner.invoke(cli, ["catalog"])
        assert result.exit_code == 2


class TestCliVersion:
    """E2e tests for version flag."""

    def test_version(self) -> None:
        """--version flag shows version."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
