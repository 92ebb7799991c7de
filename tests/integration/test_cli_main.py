#!/usr/bin/env python3
"""
Integration tests for the top-level ``expenses`` command group.
"""

import pytest
from click.testing import CliRunner

from expenses.cli.main import main
from expenses.core.config import Config


@pytest.mark.integration
class TestMainCommands:
    def setup_method(self):
        self.runner = CliRunner()

    def test_help_lists_commands(self):
        result = self.runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ["auth", "config", "diagnose", "explain", "sync", "version"]:
            assert command in result.output

    def test_version(self):
        result = self.runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "Expense Dashboard v0.1.0" in result.output
        assert "Author:" in result.output

    def test_config_redacts_secrets(self, test_config):
        result = self.runner.invoke(main, ["config"], obj={"config": test_config})

        assert result.exit_code == 0
        assert "Current Configuration:" in result.output
        assert "client_id: oauth2client_00009TestClient" in result.output
        assert "client_secret: ***REDACTED***" in result.output
        assert "mnzconf.test-secret" not in result.output

    def test_config_show_secrets(self, test_config):
        result = self.runner.invoke(main, ["config", "--show-secrets"], obj={"config": test_config})

        assert result.exit_code == 0
        assert "client_secret: mnzconf.test-secret" in result.output

    def test_verbose_prints_environment(self, test_config):
        result = self.runner.invoke(main, ["--verbose", "version"], obj={"config": test_config})

        assert result.exit_code == 0
        assert "Environment: test" in result.output

    def test_invalid_environment_is_reported(self, monkeypatch):
        monkeypatch.setenv("BASELINE_BUCKETS", "broken")
        result = self.runner.invoke(main, ["version"])

        assert result.exit_code == 1
        assert "Invalid BASELINE_BUCKETS entry" in result.output


@pytest.mark.integration
class TestDiagnose:
    def setup_method(self):
        self.runner = CliRunner()

    def test_clean_configuration(self, test_config):
        result = self.runner.invoke(main, ["diagnose"], obj={"config": test_config})

        assert result.exit_code == 0
        assert "Monzo OAuth Diagnostics" in result.output
        assert "Token storage: encrypted" in result.output
        assert "✅ No configuration problems found" in result.output

    def test_missing_settings_fail(self):
        result = self.runner.invoke(main, ["diagnose"], obj={"config": Config.from_environment()})

        assert result.exit_code == 1
        assert "Client ID: NOT SET" in result.output
        assert "❌ MONZO_CLIENT_ID is missing" in result.output
        assert "5 configuration problem(s) found" in result.output

    def test_problems_are_not_repeated(self, monkeypatch, monzo_env):
        monkeypatch.setenv("TOKEN_ENCRYPTION_KEY", "abc")
        result = self.runner.invoke(main, ["diagnose"], obj={"config": Config.from_environment()})

        assert result.exit_code == 1
        assert result.output.count("TOKEN_ENCRYPTION_KEY must be 32, 48 or 64 hex characters") == 1
