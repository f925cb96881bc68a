"""
tests/test_config.py — YAML Configuration Loader
=================================================
"""

from __future__ import annotations

import pytest

from modledger.config import ModLedgerConfig, load_config
from modledger.constants import DEFAULT_LEADERBOARD_TITLE


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "absent.yaml")
        assert cfg == ModLedgerConfig()
        assert cfg.recovery_page_size == 100
        assert cfg.recovery_max_messages == 500
        assert cfg.leaderboard_title == DEFAULT_LEADERBOARD_TITLE

    def test_reads_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "bot_prefix: '?'\n"
            "dashboard_port: 9000\n"
            "recovery_page_size: 50\n"
            "recovery_max_messages: 200\n"
            "leaderboard_title: Top Mods\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.bot_prefix == "?"
        assert cfg.dashboard_port == 9000
        assert (cfg.recovery_page_size, cfg.recovery_max_messages) == (50, 200)
        assert cfg.leaderboard_title == "Top Mods"

    def test_env_var_points_at_file(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("recovery_max_messages: 42\n", encoding="utf-8")
        monkeypatch.setenv("MODLEDGER_CONFIG", str(path))
        assert load_config().recovery_max_messages == 42

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == ModLedgerConfig()

    @pytest.mark.parametrize("key", ["recovery_page_size", "recovery_max_messages"])
    def test_non_positive_bounds_rejected(self, tmp_path, key):
        path = tmp_path / "config.yaml"
        path.write_text(f"{key}: 0\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(path)
