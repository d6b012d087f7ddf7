"""API Pydantic models."""

from .requests import EventCreateRequest, EventUpdateRequest
from .responses import (
    AssignedTaskResponse,
    AssignedTasksResponse,
    AssigneesResponse,
    CalendarItemResponse,
    ErrorCodes,
    ErrorResponse,
    EventResponse,
    FetchErrorResponse,
    HealthResponse,
    TimelineResponse,
    UserReferenceResponse,
)

__all__ = [
    "AssignedTaskResponse",
    "AssignedTasksResponse",
    "AssigneesResponse",
    "CalendarItemResponse",
    "ErrorCodes",
    "ErrorResponse",
    "EventCreateRequest",
    "EventResponse",
    "EventUpdateRequest",
    "FetchErrorResponse",
    "HealthResponse",
    "TimelineResponse",
    "UserReferenceResponse",
]
