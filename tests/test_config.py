"""Tests for configuration loading and logging setup."""

import json
import logging
from datetime import time

import pytest

from dailyflow.config import (
    get_default_config,
    load_config,
    merge_config,
    reminder_time,
    resolve_config,
    timer_durations,
)
from dailyflow.log import setup_logging


class TestLoadConfig:
    """Tests for reading config files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("timer:\n  work_minutes: 50\n  break_minutes: 10\n")
        assert load_config(str(path)) == {"timer": {"work_minutes": 50, "break_minutes": 10}}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"reminder": {"time": "21:30"}}))
        assert load_config(str(path))["reminder"]["time"] == "21:30"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestResolveConfig:
    """Tests for merging user config over defaults."""

    def test_defaults_without_path(self, monkeypatch):
        monkeypatch.delenv("DAILYFLOW_CONFIG", raising=False)
        assert resolve_config() == get_default_config()

    def test_merges_sections(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("timer:\n  work_minutes: 40\n")

        config = resolve_config(str(path))

        assert config["timer"] == {"work_minutes": 40, "break_minutes": 5}
        assert config["reminder"]["time"] == "23:59"

    def test_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("logging:\n  level: DEBUG\n")
        monkeypatch.setenv("DAILYFLOW_CONFIG", str(path))

        assert resolve_config()["logging"]["level"] == "DEBUG"

    def test_merge_does_not_mutate_base(self):
        base = get_default_config()
        merge_config(base, {"timer": {"work_minutes": 1}})
        assert base["timer"]["work_minutes"] == 25


class TestDurations:
    """Tests for timer lengths and reminder time."""

    def test_free_tier_ignores_overrides(self):
        config = merge_config(get_default_config(), {"timer": {"work_minutes": 50}})
        assert timer_durations(config, premium=False) == (25, 5)

    def test_premium_uses_overrides(self):
        config = merge_config(get_default_config(), {"timer": {"work_minutes": 50, "break_minutes": 10}})
        assert timer_durations(config, premium=True) == (50, 10)

    def test_premium_rejects_zero(self):
        config = {"timer": {"work_minutes": 0}}
        with pytest.raises(ValueError):
            timer_durations(config, premium=True)

    def test_reminder_time_string(self):
        assert reminder_time({"reminder": {"time": "21:30"}}) == time(21, 30)

    def test_reminder_time_default(self):
        assert reminder_time({}) == time(23, 59)

    def test_reminder_time_from_unquoted_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("reminder:\n  time: 22:15\n")
        config = resolve_config(str(path))
        assert reminder_time(config) == time(22, 15)


class TestSetupLogging:
    """Tests for setup_logging."""

    def teardown_method(self):
        logger = logging.getLogger("dailyflow")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "dailyflow.log"
        logger = setup_logging("INFO", str(log_file))
        logging.getLogger("dailyflow.board").info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "[INFO] dailyflow.board: hello" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_replaces_handler(self):
        setup_logging("INFO")
        logger = setup_logging("DEBUG")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back(self):
        assert setup_logging("LOUD").level == logging.WARNING
