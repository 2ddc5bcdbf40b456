"""Smoke tests for the click command tree."""

from click.testing import CliRunner

from villagemarket.cli.main import cli


def test_help_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for name in ("serve", "migrate", "users", "shops"):
        assert name in result.output


def test_users_list_rejects_unknown_role():
    result = CliRunner().invoke(cli, ["users", "list", "--role", "MAYOR"])
    assert result.exit_code != 0


def test_migrate_without_config(tmp_path):
    result = CliRunner().invoke(cli, ["migrate", "--config", str(tmp_path / "missing.ini")])
    assert result.exit_code == 1
    assert "not found" in result.output
