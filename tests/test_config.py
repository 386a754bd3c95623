"""
tests/test_config.py — YAML configuration loader
=================================================
"""

from __future__ import annotations

import pytest

from streakboard.config import StreakboardConfig, load_config


class TestLoadConfig:
    def test_minimal_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("app_name: Streakboard\napi_port: 8000\n", encoding="utf-8")
        cfg = load_config(path)
        assert cfg == StreakboardConfig(app_name="Streakboard", api_port=8000)
        assert cfg.challenges_per_day == 3
        assert cfg.anti_repeat_weight == 0.2

    def test_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "app_name: Campus\napi_port: '9001'\nchallenges_per_day: 4\n"
            "anti_repeat_days: 3\nreconcile_interval_hours: 6\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.api_port == 9001
        assert cfg.challenges_per_day == 4
        assert cfg.anti_repeat_days == 3
        assert cfg.reconcile_interval_hours == 6

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("api_port: 8000\n", encoding="utf-8")
        with pytest.raises(KeyError):
            load_config(path)
