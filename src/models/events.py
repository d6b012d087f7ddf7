"""
Data models for calendar events, tasks and timeline items.

Rows coming out of the store are TypedDicts; the normalized items handed to
callers are frozen dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TypedDict

from models.users import UserReference


class Workspace(TypedDict, total=False):
    """Workspace row."""
    id: str
    name: str
    user_id: str


class Project(TypedDict, total=False):
    """Project row."""
    id: str
    name: str
    workspace_id: str
    created_by: str | None


class RawTask(TypedDict, total=False):
    """Task row as stored. `assigned_to` may hold any of the raw owner encodings."""
    id: str
    project_id: str
    title: str
    description: str | None
    due_date: str | None
    status: str | None
    priority: str | None
    assigned_to: Any


class RawEvent(TypedDict, total=False):
    """Calendar event in the shape returned by the store (start/end already mapped)."""
    id: str
    user_id: str
    title: str
    description: str
    type: str
    start: str
    end: str
    all_day: bool
    location: str
    status: str


class ItemKind(str, Enum):
    """Origin of a timeline item."""

    PERSONAL_EVENT = "PersonalEvent"
    TASK_DUE_DATE = "TaskDueDate"
    TEAMMATE_EVENT = "TeammateEvent"


@dataclass(frozen=True)
class CalendarItem:
    """Normalized calendar entry, whatever its source."""

    id: str
    title: str
    description: str
    start: datetime
    end: datetime
    all_day: bool
    kind: ItemKind
    source_ref: str
    type: str | None = None
    location: str | None = None
    status: str | None = None
    priority: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    workspace_id: str | None = None
    workspace_name: str | None = None
    owner_id: str | None = None
    assignees: tuple[UserReference, ...] = field(default_factory=tuple)
