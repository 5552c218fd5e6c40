"""Tests for the command line entry point"""

import pytest

from solana_watcher import main
from solana_watcher.config import Settings
from solana_watcher.exceptions import ConfigurationException


class TestCli:
    def test_parse_args(self):
        args = main.parse_args(["--replay", "events.jsonl", "--json", "--log-level", "debug"])
        assert args.replay == "events.jsonl"
        assert args.json is True
        assert args.log_level == "debug"
        assert args.config is None

    def test_flags_override_settings(self, monkeypatch):
        settings = Settings(RPC_URL="http://localhost:8899", OUTPUT_JSON=False, LOG_LEVEL="INFO")
        monkeypatch.setattr(main, "get_settings", lambda: settings)

        result = main.build_settings(main.parse_args(["--json", "--log-level", "debug", "--config", "w.yaml"]))
        assert result.OUTPUT_JSON is True
        assert result.LOG_LEVEL == "DEBUG"
        assert result.WATCH_CONFIG_PATH == "w.yaml"

    def test_missing_rpc_url_is_fatal(self, monkeypatch):
        monkeypatch.setattr(main, "get_settings", lambda: Settings(RPC_URL=None))
        with pytest.raises(ConfigurationException):
            main.build_settings(main.parse_args([]))

    def test_run_returns_error_code_without_rpc_url(self, monkeypatch):
        monkeypatch.setattr(main, "get_settings", lambda: Settings(RPC_URL=None))
        assert main.run([]) == 2
