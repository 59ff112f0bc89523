"""Tests for the CLI interface."""

import json
from unittest.mock import patch

import pytest

from twm import __version__
from twm.cli import app
from twm.config import CONFIG_FILE_NAME, CONFIG_SCHEMA_FILE_NAME
from twm.exceptions import ConfigError, TwmError
from twm.handler import OpenOptions


@pytest.fixture
def mock_handler():
    """Replace config loading and the handler so no tmux or terminal is needed."""
    with patch("twm.cli.load_config") as mock_load, patch("twm.cli.Handler") as mock_cls:
        yield mock_cls.return_value, mock_load


def test_cli_help(cli_runner):
    result = cli_runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "--existing" in result.output
    assert "--make-default-config" in result.output


def test_version(cli_runner):
    result = cli_runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"twm version {__version__}" in result.output


def test_print_config_schema(cli_runner):
    result = cli_runner.invoke(app, ["--print-config-schema"])

    assert result.exit_code == 0
    assert "workspace_definitions" in json.loads(result.stdout)["properties"]


def test_print_layout_config_schema(cli_runner):
    result = cli_runner.invoke(app, ["--print-layout-config-schema"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["required"] == ["layout"]


def test_make_default_config(cli_runner, tmp_path):
    result = cli_runner.invoke(app, ["--make-default-config", "--path", str(tmp_path)])

    assert result.exit_code == 0
    assert (tmp_path / CONFIG_FILE_NAME).is_file()
    assert (tmp_path / CONFIG_SCHEMA_FILE_NAME).is_file()

    again = cli_runner.invoke(app, ["--make-default-config", "--path", str(tmp_path)])
    assert again.exit_code == 1
    assert "already exists" in " ".join(again.output.split())


def test_workspace_flow_options(cli_runner, mock_handler):
    handler, _ = mock_handler

    result = cli_runner.invoke(app, ["-p", "/src/proj", "-n", "custom", "-l", "-d"])

    assert result.exit_code == 0
    handler.handle_workspace_selection.assert_called_once_with(
        OpenOptions(path="/src/proj", name="custom", choose_layout=True, dont_attach=True)
    )


def test_default_is_workspace_picker(cli_runner, mock_handler):
    handler, _ = mock_handler

    result = cli_runner.invoke(app, [])

    assert result.exit_code == 0
    handler.handle_workspace_selection.assert_called_once_with(OpenOptions())


def test_existing_flow(cli_runner, mock_handler):
    handler, _ = mock_handler

    result = cli_runner.invoke(app, ["--existing"])

    assert result.exit_code == 0
    handler.handle_existing_session_selection.assert_called_once_with()
    handler.handle_workspace_selection.assert_not_called()


def test_group_flow_ignores_path_and_layout(cli_runner, mock_handler):
    handler, _ = mock_handler

    result = cli_runner.invoke(app, ["-g", "-d", "-l", "-p", "/src/proj"])

    assert result.exit_code == 0
    handler.handle_group_session_selection.assert_called_once_with(OpenOptions(dont_attach=True))


def test_twm_error_exits_with_message(cli_runner, mock_handler):
    handler, _ = mock_handler
    handler.handle_workspace_selection.side_effect = TwmError("No tmux sessions are running")

    result = cli_runner.invoke(app, [])

    assert result.exit_code == 1
    assert "Error: No tmux sessions are running" in result.output


def test_config_error_exits(cli_runner, mock_handler):
    _, mock_load = mock_handler
    mock_load.side_effect = ConfigError("Invalid twm configuration in twm.yaml")

    result = cli_runner.invoke(app, [])

    assert result.exit_code == 1
    assert "Invalid twm configuration" in " ".join(result.output.split())
