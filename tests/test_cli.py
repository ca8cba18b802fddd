"""shiftctl commands that need no database."""

from typer.testing import CliRunner

from secureshift.cli import app
from secureshift.core.security import decode_token

runner = CliRunner()


def test_token_command_mints_decodable_token():
    result = runner.invoke(app, ["token", "--user-id", "5", "--role", "guard"])
    assert result.exit_code == 0, result.output
    payload = decode_token(result.output.strip())
    assert payload["sub"] == "5"
    assert payload["role"] == "guard"


def test_help_lists_command_groups():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("db", "roles", "token", "serve"):
        assert name in result.output
