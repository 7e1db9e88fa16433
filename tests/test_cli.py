"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from sensillum import __version__, cli as cli_module
from sensillum.core.config import settings as settings_module


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def served(monkeypatch):
    """Capture run_server calls instead of starting uvicorn."""
    calls = []

    def fake_run_server(config, tracker=None, *, access_log=False):
        calls.append({"config": config, "tracker": tracker, "access_log": access_log})

    monkeypatch.setattr(cli_module, "run_server", fake_run_server)
    monkeypatch.setattr(cli_module, "configure_logging", lambda level: None)
    monkeypatch.setattr(settings_module, "_settings", None)
    for name in (
        "SENSILLUM_PORT",
        "SENSILLUM_PREFIX",
        "SENSILLUM_PRIVACY_MODE",
        "SENSILLUM_NODE",
        "SENSILLUM_REDACT_HEADERS",
    ):
        monkeypatch.delenv(name, raising=False)
    return calls


class TestServeCommand:
    """Test the serve command."""

    @pytest.mark.unit
    def test_defaults(self, runner, served):
        result = runner.invoke(cli_module.cli, ["serve"])

        assert result.exit_code == 0, result.output
        config = served[0]["config"]
        assert config.port == 3030
        assert config.redact_prefixes == ("authorization", "proxy-authorization")
        assert served[0]["access_log"] is False

    @pytest.mark.unit
    def test_options_override_environment(self, runner, served, monkeypatch):
        """Test command-line options win over SENSILLUM_* variables."""
        # Arrange
        monkeypatch.setenv("SENSILLUM_PORT", "8000")
        monkeypatch.setenv("SENSILLUM_NODE", "env-node")

        # Act
        result = runner.invoke(
            cli_module.cli,
            [
                "serve",
                "-p", "8080",
                "-n", "web-1",
                "-x", "/api/",
                "-r", "X-Token-",
                "-r", "cookie",
                "--privacy",
                "--access-log",
            ],
        )

        # Assert
        assert result.exit_code == 0, result.output
        config = served[0]["config"]
        assert config.port == 8080
        assert config.node_name == "web-1"
        assert config.url_prefix == "/api"
        assert config.redact_prefixes == ("x-token-", "cookie")
        assert config.privacy_mode is True
        assert served[0]["access_log"] is True
        assert "Privacy mode enabled" in result.output
        assert "Serving under URL prefix /api" in result.output

    @pytest.mark.unit
    def test_invalid_prefix(self, runner, served):
        result = runner.invoke(cli_module.cli, ["serve", "--prefix", "api"])

        assert result.exit_code == 2
        assert "must start with /" in result.output
        assert served == []

    @pytest.mark.unit
    def test_invalid_environment(self, runner, served, monkeypatch):
        monkeypatch.setenv("SENSILLUM_PORT", "70000")

        result = runner.invoke(cli_module.cli, ["serve"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    @pytest.mark.unit
    def test_heartbeat_interval_must_be_positive(self, runner, served):
        result = runner.invoke(cli_module.cli, ["serve", "--heartbeat-interval", "0"])

        assert result.exit_code == 2


class TestInfoCommands:
    """Test version output."""

    @pytest.mark.unit
    def test_version_option(self, runner):
        result = runner.invoke(cli_module.cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    @pytest.mark.unit
    def test_info(self, runner):
        result = runner.invoke(cli_module.cli, ["info"])

        assert result.exit_code == 0
        assert result.output.startswith(f"sensillum {__version__}")
        assert "(built " in result.output
