"""
Configuration constants and environment setup.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# PATHS
# =============================================================================

PROJECT_ROOT = Path(__file__).parent.parent.parent
DB_PATH = Path(
    os.environ.get("WORKBOARD_DB_PATH", PROJECT_ROOT / "data" / "db" / "workboard.db")
)

# =============================================================================
# TIMELINE CONFIGURATION
# =============================================================================

TASK_ITEM_PREFIX = "task-"  # e.g., "task-42"

DEFAULT_EVENT_TYPE = "busy"
DEFAULT_EVENT_STATUS = "confirmed"
DEFAULT_EVENT_TITLE = "Untitled Event"
EVENT_TYPES = {"busy", "free", "meeting", "out-of-office", "personal"}

DEFAULT_TASK_TITLE = "Untitled Task"
DEFAULT_TASK_STATUS = "todo"
DEFAULT_TASK_PRIORITY = "medium"
DEFAULT_PROJECT_NAME = "Unnamed Project"
DEFAULT_WORKSPACE_NAME = "Unnamed Workspace"

# Stored task status -> display color key (anything else passes through)
TASK_STATUS_COLOR_KEYS = {
    "not_started": "todo",
    "in_progress": "in-progress",
    "completed": "done",
}

STATUS_COLORS = {
    "busy": "#f43f5e",
    "free": "#22c55e",
    "meeting": "#3b82f6",
    "out-of-office": "#8b5cf6",
    "personal": "#f59e0b",
    "todo": "#64748b",
    "in-progress": "#0ea5e9",
    "done": "#10b981",
    "blocked": "#ef4444",
}

# Avatar background palette, indexed by a hash of the user id
AVATAR_COLORS = [
    "#FF5733",
    "#33FF57",
    "#3357FF",
    "#FF33F5",
    "#F5FF33",
    "#33FFF5",
    "#FF8333",
    "#8333FF",
    "#33FF83",
    "#FF3383",
]
DEFAULT_AVATAR_COLOR = "#6366F1"

# Strings treated as "no value" inside assigned_to encodings
EMPTY_ID_MARKERS = {"undefined", "null"}

# =============================================================================
# ROSTER CACHE
# =============================================================================

ROSTER_CACHE_TTL_SECONDS = float(os.environ.get("ROSTER_CACHE_TTL_SECONDS", "300"))

# =============================================================================
# API CONFIGURATION
# =============================================================================

WORKBOARD_API_KEY = os.environ.get("WORKBOARD_API_KEY", "")
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
API_DEBUG = os.environ.get("API_DEBUG", "false").lower() == "true"
MAX_RANGE_DAYS = int(os.environ.get("MAX_RANGE_DAYS", "366"))
API_VERSION = "1.0.0"

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
