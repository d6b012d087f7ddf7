"""
Calendar event payload validation.
"""

from core.config import EVENT_TYPES
from services.calendar import parse_timestamp

REQUIRED_EVENT_FIELDS = ("user_id", "title", "start_time", "end_time")


def validate_event_payload(
    payload: dict, partial: bool = False, existing: dict | None = None
) -> list[str]:
    """
    Validate a calendar event payload and return a list of error messages.

    Checks:
    1. Required fields are present (create only; updates may be partial)
    2. Timestamps parse as ISO dates/datetimes
    3. End is not before start, using `existing` values for fields the
       update leaves out
    4. Type is a known event type
    """
    errors = []

    # Check 1: Required fields
    if not partial:
        for field in REQUIRED_EVENT_FIELDS:
            value = payload.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"Missing {field}")
    elif "title" in payload and not str(payload["title"] or "").strip():
        errors.append("Title cannot be empty")

    # Check 2: Timestamps
    parsed = {}
    for field in ("start_time", "end_time"):
        if payload.get(field) in (None, ""):
            continue
        parsed[field] = parse_timestamp(payload[field])
        if parsed[field] is None:
            errors.append(f"Invalid {field} '{payload[field]}', expected ISO-8601")

    # Check 3: Ordering
    existing = existing or {}
    start = parsed.get("start_time") or parse_timestamp(existing.get("start"))
    end = parsed.get("end_time") or parse_timestamp(existing.get("end"))
    if start and end:
        try:
            if end < start:
                errors.append("End time cannot be before start time")
        except TypeError:
            errors.append("Start and end times must both include or both omit a timezone")

    # Check 4: Type
    event_type = payload.get("type")
    if event_type is not None and event_type not in EVENT_TYPES:
        valid = ", ".join(sorted(EVENT_TYPES))
        errors.append(f"Invalid event type '{event_type}' (expected one of: {valid})")

    if "all_day" in payload and not isinstance(payload["all_day"], bool):
        errors.append("all_day must be true or false")

    return errors
