"""Timeline, assigned task, task assignee and calendar event endpoints."""

import logging
import sqlite3
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from api.dependencies import get_roster_cache, get_store, verify_api_key
from api.logging import RequestLog, log_request
from api.models.requests import EventCreateRequest, EventUpdateRequest
from api.models.responses import (
    AssignedTaskResponse,
    AssignedTasksResponse,
    AssigneesResponse,
    CalendarItemResponse,
    ErrorCodes,
    EventResponse,
    FetchErrorResponse,
    TimelineResponse,
    UserReferenceResponse,
)
from core.config import DB_PATH, MAX_RANGE_DAYS
from core.store import TimelineStore
from services.calendar import TimelineAggregator, month_range
from services.events import EventNotFoundError, create_event, delete_event, update_event
from services.owners import RosterCache
from services.reports import count_tasks_by_status
from services.tasks import TaskNotFoundError, get_assigned_tasks, get_task_assignees

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _bad_request(error: str, details: list[str]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": error, "code": ErrorCodes.INVALID_REQUEST, "details": details},
    )


def _not_found(error: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"error": error, "code": ErrorCodes.NOT_FOUND, "details": []},
    )


def _validation_failed(e: ValueError) -> HTTPException:
    details = [line.strip() for line in str(e).split("\n") if line.strip()]
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "error": "Calendar event validation failed",
            "code": ErrorCodes.VALIDATION_ERROR,
            "details": details,
        },
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "Internal server error", "code": ErrorCodes.INTERNAL_ERROR, "details": []},
    )


def parse_date_param(name: str, value: str | None) -> date | None:
    """Parse a YYYY-MM-DD query parameter."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise _bad_request(f"Invalid {name} format", ["Expected format: YYYY-MM-DD"])


def resolve_range(start_str: str | None, end_str: str | None) -> tuple[date, date]:
    """
    Date range for a timeline request.

    Missing bounds default to the month of whichever bound was given, or the
    current month.
    """
    start = parse_date_param("start", start_str)
    end = parse_date_param("end", end_str)
    if start is None and end is None:
        return month_range(date.today())
    if start is None:
        start = month_range(end)[0]
    if end is None:
        end = month_range(start)[1]

    if start > end:
        raise _bad_request("Invalid date range", [f"start {start} is after end {end}"])
    if (end - start).days + 1 > MAX_RANGE_DAYS:
        raise _bad_request(
            "Date range too large", [f"At most {MAX_RANGE_DAYS} days per request"]
        )
    return start, end


def _write_log(request_log: RequestLog, store: TimelineStore):
    request_log.finish()
    try:
        log_request(request_log, getattr(store, "db_path", DB_PATH))
    except sqlite3.Error as e:
        # Request still succeeds without its log row
        logger.warning("Could not write request log %s: %s", request_log.request_id, e)


# =============================================================================
# TIMELINE
# =============================================================================


@router.get("/users/{user_id}/timeline", response_model=TimelineResponse)
async def get_timeline_endpoint(
    request: Request,
    user_id: str,
    start: str | None = Query(None, description="First day (YYYY-MM-DD); defaults to start of month"),
    end: str | None = Query(None, description="Last day (YYYY-MM-DD); defaults to end of month"),
    store: TimelineStore = Depends(get_store),
    roster_cache: RosterCache = Depends(get_roster_cache),
    _api_key: str = Depends(verify_api_key),
):
    """
    Unified calendar timeline: the user's events, task due dates, teammates' events.

    Sources that fail are listed in `errors` and contribute no items; the
    request itself still succeeds.
    """
    request_log = RequestLog(
        endpoint="/v1/users/{user_id}/timeline",
        method="GET",
        client_ip=get_client_ip(request),
        user_id=user_id,
        range_start=start,
        range_end=end,
    )

    try:
        start_date, end_date = resolve_range(start, end)
        request_log.range_start = start_date.isoformat()
        request_log.range_end = end_date.isoformat()

        aggregator = TimelineAggregator(store, roster_cache)
        timeline = await aggregator.build_timeline(user_id, start_date, end_date)

        request_log.status_code = 200
        request_log.items_returned = len(timeline.items)
        request_log.record_fetch_errors(timeline.errors)

        return TimelineResponse(
            user_id=user_id,
            start=start_date,
            end=end_date,
            items=[CalendarItemResponse.from_item(item) for item in timeline.items],
            personal_events_failed=timeline.personal_events_failed,
            errors=[FetchErrorResponse.from_error(error) for error in timeline.errors],
        )

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    except Exception as e:
        request_log.record_unexpected(e)
        raise _internal_error()

    finally:
        _write_log(request_log, store)


# =============================================================================
# TASKS
# =============================================================================


@router.get("/tasks/{task_id}/assignees", response_model=AssigneesResponse)
async def get_task_assignees_endpoint(
    request: Request,
    task_id: str,
    store: TimelineStore = Depends(get_store),
    roster_cache: RosterCache = Depends(get_roster_cache),
    _api_key: str = Depends(verify_api_key),
):
    """Resolved assignees of a task; unknown ids come back as placeholders."""
    request_log = RequestLog(
        endpoint="/v1/tasks/{task_id}/assignees",
        method="GET",
        client_ip=get_client_ip(request),
    )

    try:
        try:
            assignees = await get_task_assignees(store, task_id, roster_cache)
        except TaskNotFoundError:
            raise _not_found(f"Task '{task_id}' not found")

        request_log.status_code = 200
        request_log.items_returned = len(assignees)
        return AssigneesResponse(
            task_id=task_id,
            assignees=[UserReferenceResponse.from_reference(user) for user in assignees],
        )

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    except Exception as e:
        request_log.record_unexpected(e)
        raise _internal_error()

    finally:
        _write_log(request_log, store)


@router.get("/users/{user_id}/tasks", response_model=AssignedTasksResponse)
async def get_assigned_tasks_endpoint(
    request: Request,
    user_id: str,
    store: TimelineStore = Depends(get_store),
    _api_key: str = Depends(verify_api_key),
):
    """
    Every task assigned to the user across their workspaces, open ones first.

    Workspaces or projects that fail to load are listed in `errors`.
    """
    request_log = RequestLog(
        endpoint="/v1/users/{user_id}/tasks",
        method="GET",
        client_ip=get_client_ip(request),
        user_id=user_id,
    )

    try:
        assigned = await get_assigned_tasks(store, user_id)

        request_log.status_code = 200
        request_log.items_returned = len(assigned.tasks)
        request_log.record_fetch_errors(assigned.errors)

        return AssignedTasksResponse(
            user_id=user_id,
            tasks=[AssignedTaskResponse.from_task(task) for task in assigned.tasks],
            status_counts=count_tasks_by_status(assigned.tasks),
            errors=[FetchErrorResponse.from_error(error) for error in assigned.errors],
        )

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    except Exception as e:
        request_log.record_unexpected(e)
        raise _internal_error()

    finally:
        _write_log(request_log, store)


# =============================================================================
# CALENDAR EVENTS
# =============================================================================


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    request: Request,
    payload: EventCreateRequest,
    store: TimelineStore = Depends(get_store),
    _api_key: str = Depends(verify_api_key),
):
    """Create a personal calendar event."""
    request_log = RequestLog(
        endpoint="/v1/events",
        method="POST",
        client_ip=get_client_ip(request),
        user_id=payload.user_id,
    )

    try:
        try:
            event = await create_event(store, payload.model_dump())
        except ValueError as e:
            raise _validation_failed(e)

        request_log.status_code = 201
        return EventResponse(**event)

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    except Exception as e:
        request_log.record_unexpected(e)
        raise _internal_error()

    finally:
        _write_log(request_log, store)


@router.patch("/events/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    request: Request,
    event_id: str,
    payload: EventUpdateRequest,
    store: TimelineStore = Depends(get_store),
    _api_key: str = Depends(verify_api_key),
):
    """Update the given fields of a calendar event."""
    request_log = RequestLog(
        endpoint="/v1/events/{event_id}",
        method="PATCH",
        client_ip=get_client_ip(request),
    )

    try:
        try:
            event = await update_event(store, event_id, payload.model_dump(exclude_unset=True))
        except EventNotFoundError:
            raise _not_found(f"Event '{event_id}' not found")
        except ValueError as e:
            raise _validation_failed(e)

        request_log.status_code = 200
        request_log.user_id = event.get("user_id")
        return EventResponse(**event)

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    except Exception as e:
        request_log.record_unexpected(e)
        raise _internal_error()

    finally:
        _write_log(request_log, store)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    request: Request,
    event_id: str,
    store: TimelineStore = Depends(get_store),
    _api_key: str = Depends(verify_api_key),
):
    """Delete a calendar event."""
    request_log = RequestLog(
        endpoint="/v1/events/{event_id}",
        method="DELETE",
        client_ip=get_client_ip(request),
    )

    try:
        try:
            await delete_event(store, event_id)
        except EventNotFoundError:
            raise _not_found(f"Event '{event_id}' not found")

        request_log.status_code = 204
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    except HTTPException as e:
        request_log.record_http_error(e)
        raise

    except Exception as e:
        request_log.record_unexpected(e)
        raise _internal_error()

    finally:
        _write_log(request_log, store)
