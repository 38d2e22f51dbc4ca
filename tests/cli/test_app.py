"""Tests for the service-daemon CLI."""

import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from service_daemon.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logger():
    """The commands add sinks bound to the runner's captured stderr."""
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_order_command():
    """The order command prints the solved order and the subscriber table."""
    result = runner.invoke(app, ["order"])

    assert result.exit_code == 0
    assert "ExService0" in result.output
    assert "ExService3" in result.output
    assert "ExSomeEvent: 0 -> 1 -> 2 -> 3" in result.output


def test_example_command():
    """The example command runs the services and stops cleanly."""
    result = runner.invoke(app, ["example", "--duration", "0.3", "--interval", "0.01", "--log-level", "warning"])

    assert result.exit_code == 0
    assert "stopped cleanly" in result.output


def test_no_args_shows_help():
    result = runner.invoke(app, [])

    assert "example" in result.output
    assert "order" in result.output
