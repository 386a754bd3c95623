"""
streakboard.config — YAML Configuration Loader
===============================================

Reads ``config.yaml`` for **infrastructure-only** settings (app identity,
API port, daily challenge sampling, background job cadence).  Point values
and reward steps live in the ``settings`` database table so they can be
tuned without a redeploy.

Usage::

    from streakboard.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.app_name)          # "Streakboard"
    print(cfg.challenges_per_day)  # 3
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object — infrastructure only.
# Gameplay tuning lives in the DB ``settings`` table.
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StreakboardConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    app_name: str

    # API
    api_port: int

    # Display only: engine calendar days are always UTC
    timezone: str = "UTC"

    # Daily challenges
    challenges_per_day: int = 3
    anti_repeat_days: int = 7
    anti_repeat_weight: float = 0.2

    # Background jobs
    reconcile_interval_hours: int = 24


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> StreakboardConfig:
    """Read *path* and return a :class:`StreakboardConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return StreakboardConfig(
        app_name=raw["app_name"],
        api_port=int(raw["api_port"]),
        timezone=raw.get("timezone", "UTC"),
        challenges_per_day=int(raw.get("challenges_per_day", 3)),
        anti_repeat_days=int(raw.get("anti_repeat_days", 7)),
        anti_repeat_weight=float(raw.get("anti_repeat_weight", 0.2)),
        reconcile_interval_hours=int(raw.get("reconcile_interval_hours", 24)),
    )
