"""Pydantic response models for API endpoints."""

from datetime import date, datetime

from pydantic import BaseModel

from core.config import DEFAULT_TASK_PRIORITY, DEFAULT_TASK_STATUS, DEFAULT_TASK_TITLE
from models.events import CalendarItem
from models.timeline import FetchError
from models.users import UserReference
from services.display import color_for, color_key, is_editable
from services.owners import get_user_color, get_user_initials, normalize_owner_ids


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class UserReferenceResponse(BaseModel):
    """Resolved assignee with avatar display data."""

    id: str
    display_name: str
    avatar_url: str | None = None
    placeholder: bool = False
    initials: str
    color: str

    @classmethod
    def from_reference(cls, user: UserReference) -> "UserReferenceResponse":
        return cls(
            id=user.id,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            placeholder=user.placeholder,
            initials=get_user_initials(user.display_name),
            color=get_user_color(user.id),
        )


class CalendarItemResponse(BaseModel):
    """One timeline item plus its display classification."""

    id: str
    title: str
    description: str
    start: datetime
    end: datetime
    all_day: bool
    kind: str
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
    assignees: list[UserReferenceResponse] = []
    editable: bool
    color_key: str
    color: str

    @classmethod
    def from_item(cls, item: CalendarItem) -> "CalendarItemResponse":
        return cls(
            id=item.id,
            title=item.title,
            description=item.description,
            start=item.start,
            end=item.end,
            all_day=item.all_day,
            kind=item.kind.value,
            source_ref=item.source_ref,
            type=item.type,
            location=item.location,
            status=item.status,
            priority=item.priority,
            project_id=item.project_id,
            project_name=item.project_name,
            workspace_id=item.workspace_id,
            workspace_name=item.workspace_name,
            owner_id=item.owner_id,
            assignees=[UserReferenceResponse.from_reference(a) for a in item.assignees],
            editable=is_editable(item),
            color_key=color_key(item),
            color=color_for(item),
        )


class FetchErrorResponse(BaseModel):
    """A source that failed while building the timeline."""

    source: str
    message: str
    scope_id: str | None = None

    @classmethod
    def from_error(cls, error: FetchError) -> "FetchErrorResponse":
        return cls(source=error.source, message=error.message, scope_id=error.scope_id)


class TimelineResponse(BaseModel):
    """Unified timeline for a user and date range."""

    user_id: str
    start: date
    end: date
    items: list[CalendarItemResponse]
    personal_events_failed: bool  # UI shows a non-fatal banner when true
    errors: list[FetchErrorResponse] = []


class AssigneesResponse(BaseModel):
    """Resolved assignees of one task, in assignment order."""

    task_id: str
    assignees: list[UserReferenceResponse]


class AssignedTaskResponse(BaseModel):
    """A task assigned to the user, with where it lives."""

    id: str
    title: str
    description: str = ""
    status: str
    priority: str
    due_date: str | None = None
    project_id: str
    project_name: str
    workspace_id: str
    workspace_name: str
    assignee_ids: list[str]

    @classmethod
    def from_task(cls, task: dict) -> "AssignedTaskResponse":
        return cls(
            id=str(task["id"]),
            title=task.get("title") or DEFAULT_TASK_TITLE,
            description=task.get("description") or "",
            status=task.get("status") or DEFAULT_TASK_STATUS,
            priority=task.get("priority") or DEFAULT_TASK_PRIORITY,
            due_date=task.get("due_date") or None,
            project_id=task["project_id"],
            project_name=task["project_name"],
            workspace_id=task["workspace_id"],
            workspace_name=task["workspace_name"],
            assignee_ids=normalize_owner_ids(task.get("assigned_to")),
        )


class AssignedTasksResponse(BaseModel):
    """Tasks assigned to a user, open ones first, with counts per status."""

    user_id: str
    tasks: list[AssignedTaskResponse]
    status_counts: dict[str, int]
    errors: list[FetchErrorResponse] = []


class EventResponse(BaseModel):
    """Calendar event as stored."""

    id: str
    user_id: str | None = None
    title: str
    description: str = ""
    type: str
    start: str
    end: str
    all_day: bool
    location: str = ""
    status: str
