"""Pydantic request models for calendar event endpoints."""

from pydantic import BaseModel


class EventCreateRequest(BaseModel):
    """New calendar event. Timestamps are ISO-8601 strings."""

    user_id: str
    title: str
    description: str | None = None
    start_time: str
    end_time: str
    all_day: bool = False
    type: str = "busy"
    location: str | None = None
    status: str | None = None


class EventUpdateRequest(BaseModel):
    """Partial update; only fields that are sent are changed."""

    title: str | None = None
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    all_day: bool | None = None
    type: str | None = None
    location: str | None = None
    status: str | None = None
