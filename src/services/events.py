"""
Calendar event create/update/delete on top of the store collaborator.
"""

import logging
from datetime import date, datetime

from core.database import EVENT_FIELDS
from core.store import TimelineStore
from core.validation import validate_event_payload

logger = logging.getLogger(__name__)


class EventNotFoundError(LookupError):
    """No calendar event with the given id."""


def normalize_event_fields(event_data: dict) -> dict:
    """
    Map caller field names onto calendar_events columns.

    `start`/`end` are accepted as aliases; explicit `start_time`/`end_time`
    win. Unknown keys are dropped and dates are serialized to ISO strings.
    """
    fields = {}
    for alias, column in (("start", "start_time"), ("end", "end_time")):
        if alias in event_data and column not in event_data:
            fields[column] = event_data[alias]

    for key in EVENT_FIELDS:
        if key in event_data:
            fields[key] = event_data[key]

    for key, value in fields.items():
        if isinstance(value, (datetime, date)):
            fields[key] = value.isoformat()
    return fields


def _raise_if_invalid(errors: list[str]):
    if errors:
        raise ValueError("\n".join(errors))


async def create_event(store: TimelineStore, event_data: dict) -> dict:
    """
    Validate and create a calendar event.

    Raises:
        ValueError: with one validation message per line
    """
    fields = normalize_event_fields(event_data)
    _raise_if_invalid(validate_event_payload(fields))

    event = await store.create_calendar_event(fields)
    logger.info("Created calendar event %s for user %s", event["id"], fields["user_id"])
    return event


async def update_event(store: TimelineStore, event_id: str, updates: dict) -> dict:
    """
    Validate and apply a partial update.

    Raises:
        EventNotFoundError: if the event doesn't exist
        ValueError: with one validation message per line
    """
    existing = await store.get_calendar_event(event_id)
    if existing is None:
        raise EventNotFoundError(event_id)

    fields = normalize_event_fields(updates)
    # Ownership moves only through delete + create
    fields.pop("user_id", None)
    _raise_if_invalid(validate_event_payload(fields, partial=True, existing=existing))

    event = await store.update_calendar_event(event_id, fields)
    if event is None:
        raise EventNotFoundError(event_id)
    logger.info("Updated calendar event %s (%s)", event_id, ", ".join(sorted(fields)) or "no fields")
    return event


async def delete_event(store: TimelineStore, event_id: str) -> None:
    """
    Raises:
        EventNotFoundError: if the event doesn't exist
    """
    if not await store.delete_calendar_event(event_id):
        raise EventNotFoundError(event_id)
    logger.info("Deleted calendar event %s", event_id)
