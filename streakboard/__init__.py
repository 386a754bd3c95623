"""
Streakboard — Gamified Progress Tracking for Students
=======================================================
Turns assignment and custom-task completion into points, streaks,
achievements, daily challenges, private leaderboards and milestone
rewards.  Assignment data is pushed in by an upstream sync service;
only completion events feed the rules engine.

Package layout::

    streakboard/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Levels, invite alphabet, timing thresholds
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Settings, achievement, challenge & reward catalogs
    ├── engine/
    │   ├── clock.py       # UTC day helpers
    │   ├── scoring.py     # Assignment timing points
    │   ├── streaks.py     # Streak / shield state machine
    │   ├── achievements.py # Achievement predicate registry
    │   └── challenges.py  # Roulette sampling + progress rules
    ├── services/
    │   ├── ledger_service.py      # Points ledger (source of truth)
    │   ├── streak_service.py      # Streak persistence + event log
    │   ├── assignment_service.py  # Assignment completion / sync ingest
    │   ├── task_service.py        # Custom task CRUD + completion
    │   ├── achievement_service.py # Unlock evaluation
    │   ├── challenge_service.py   # Daily challenge generation / progress
    │   ├── leaderboard_service.py # Invite-coded private groups
    │   ├── milestone_service.py   # 50-point milestone rewards
    │   ├── recompute_queue.py     # Per-user ordered background work
    │   └── locks.py               # Per-user mutation locks
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT auth + DB dependencies
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
