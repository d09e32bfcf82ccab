"""Runtime configuration for PlanIt seating.

Values come from the environment (optionally a ``.env`` file in the working
directory) and fall back to the defaults the planner UI uses.
"""
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


# Backend
API_URL = os.getenv("PLANIT_API_URL", "http://localhost:5000").strip().rstrip("/")
API_TOKEN = os.getenv("PLANIT_API_TOKEN", "").strip()
HTTP_TIMEOUT = _env_float("PLANIT_HTTP_TIMEOUT", 15.0)

# Timers (seconds)
AUTOSAVE_DELAY_SECONDS = _env_float("PLANIT_AUTOSAVE_DELAY", 3.0)
SYNC_POLL_INTERVAL_SECONDS = _env_float("PLANIT_SYNC_POLL_INTERVAL", 20.0)

# Table capacity bounds for manual edits
MIN_TABLE_CAPACITY = _env_int("PLANIT_MIN_TABLE_CAPACITY", 4)
MAX_TABLE_CAPACITY = _env_int("PLANIT_MAX_TABLE_CAPACITY", 30)
DEFAULT_TABLE_CAPACITY = _env_int("PLANIT_DEFAULT_TABLE_CAPACITY", 10)

# Reconciliation tuning
MIN_SYNC_TABLE_SIZE = _env_int("PLANIT_MIN_SYNC_TABLE_SIZE", 8)
SYNC_TABLE_GROWTH = _env_float("PLANIT_SYNC_TABLE_GROWTH", 1.5)
MERGE_OCCUPANCY_RATIO = _env_float("PLANIT_MERGE_OCCUPANCY_RATIO", 1 / 3)
AMBIGUITY_DISPLACED_THRESHOLD = _env_int("PLANIT_AMBIGUITY_THRESHOLD", 2)

# Display
TABLE_LABEL = os.getenv("PLANIT_TABLE_LABEL", "Table").strip() or "Table"
UNKNOWN_GUEST = "unknown guest"
UNKNOWN_TABLE = "unknown table"

LOG_LEVEL = os.getenv("PLANIT_LOG_LEVEL", "INFO").strip().upper() or "INFO"
