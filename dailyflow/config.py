"""Configuration management."""

import copy
import json
import os
from datetime import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from dailyflow.reminders import END_OF_DAY_REMINDER
from dailyflow.timer import BREAK_MINUTES, WORK_MINUTES


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file."""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() in [".yaml", ".yml"]:
            return yaml.safe_load(f) or {}
        elif path.suffix.lower() == ".json":
            return json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "timer": {
            "work_minutes": WORK_MINUTES,
            "break_minutes": BREAK_MINUTES,
        },
        "reminder": {
            "time": END_OF_DAY_REMINDER.strftime("%H:%M"),
        },
        "logging": {
            "level": "WARNING",
            "file": None,
        },
    }


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay ``override`` on ``base`` section by section."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Build the effective configuration.

    Uses ``config_path``, else the DAILYFLOW_CONFIG environment variable;
    with neither, the defaults apply unchanged.
    """
    config_path = config_path or os.environ.get("DAILYFLOW_CONFIG")
    defaults = get_default_config()
    if not config_path:
        return defaults
    return merge_config(defaults, load_config(config_path))


def timer_durations(config: Dict[str, Any], premium: bool) -> Tuple[int, int]:
    """Return (work, break) minutes. Custom lengths are a premium feature."""
    if not premium:
        return WORK_MINUTES, BREAK_MINUTES

    timer = config.get("timer", {})
    work = int(timer.get("work_minutes", WORK_MINUTES))
    rest = int(timer.get("break_minutes", BREAK_MINUTES))
    if work <= 0 or rest <= 0:
        raise ValueError(f"Timer lengths must be positive, got {work}/{rest}")
    return work, rest


def reminder_time(config: Dict[str, Any]) -> time:
    raw = config.get("reminder", {}).get("time") or END_OF_DAY_REMINDER.strftime("%H:%M")
    # YAML reads an unquoted 23:59 as a sexagesimal integer.
    if isinstance(raw, int):
        return time(raw // 60, raw % 60)
    hours, minutes = str(raw).split(":")
    return time(int(hours), int(minutes))
