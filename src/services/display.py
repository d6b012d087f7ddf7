"""
Display classification for timeline items.
"""

from core.config import (
    DEFAULT_EVENT_TYPE,
    DEFAULT_TASK_STATUS,
    STATUS_COLORS,
    TASK_STATUS_COLOR_KEYS,
)
from models.events import CalendarItem, ItemKind


def is_editable(item: CalendarItem) -> bool:
    """Only the user's own events can be edited; task and teammate items are read-only."""
    return item.kind is ItemKind.PERSONAL_EVENT


def normalize_task_status(status: str | None) -> str:
    """Map stored task statuses to color keys (not_started -> todo, etc.)."""
    status = status or DEFAULT_TASK_STATUS
    return TASK_STATUS_COLOR_KEYS.get(status, status)


def color_key(item: CalendarItem) -> str:
    """Task items are keyed by status, events by their type."""
    if item.kind is ItemKind.TASK_DUE_DATE:
        return normalize_task_status(item.status)
    return item.type or DEFAULT_EVENT_TYPE


def color_for(item: CalendarItem) -> str:
    """Hex color for an item, falling back to the 'busy' color for unknown keys."""
    return STATUS_COLORS.get(color_key(item), STATUS_COLORS[DEFAULT_EVENT_TYPE])
