"""
Timeline aggregation: personal events, task due dates and teammate events.

The aggregator walks workspaces -> projects -> tasks, turns every task with a
due date into an all-day item, and merges those with the user's own events
and their teammates' events. Every collaborator call is wrapped into a
FetchOutcome; a failed branch contributes nothing and is recorded on the
resulting Timeline, but never stops the other branches.
"""

import asyncio
import calendar
import logging
from datetime import date, datetime, time
from typing import Any, Awaitable, Callable

from core.config import (
    DEFAULT_EVENT_TITLE,
    DEFAULT_EVENT_TYPE,
    DEFAULT_PROJECT_NAME,
    DEFAULT_TASK_PRIORITY,
    DEFAULT_TASK_STATUS,
    DEFAULT_TASK_TITLE,
    DEFAULT_WORKSPACE_NAME,
    TASK_ITEM_PREFIX,
)
from core.store import TimelineStore
from models.events import CalendarItem, ItemKind
from models.timeline import (
    PERSONAL_SOURCE,
    PROJECTS_SOURCE,
    ROSTER_SOURCE,
    TASKS_SOURCE,
    TEAMMATE_EVENTS_SOURCE,
    TEAMMATES_SOURCE,
    WORKSPACES_SOURCE,
    FetchError,
    FetchOutcome,
    Timeline,
)
from models.users import UserReference
from services.owners import (
    RosterCache,
    collect_owner_ids,
    resolve_owners,
    user_reference_from_row,
)

logger = logging.getLogger(__name__)


# =============================================================================
# DATE UTILITIES
# =============================================================================


def as_date(value: date | str) -> date:
    """Accept a date or a 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value[:10], "%Y-%m-%d").date()


def month_range(day: date) -> tuple[date, date]:
    """First and last day of the month containing `day` (default calendar view)."""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse an ISO date or datetime into a datetime.

    Date-only values become midnight. Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    try:
        text = str(value).strip().replace("Z", "+00:00")
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), time.min)
        return datetime.fromisoformat(text)
    except ValueError:
        return None


# =============================================================================
# ITEM MAPPING
# =============================================================================


def task_item_id(task_id: Any) -> str:
    """Timeline id for a task, prefixed so it can't collide with event ids."""
    return f"{TASK_ITEM_PREFIX}{task_id}"


def event_to_item(event: dict, kind: ItemKind) -> CalendarItem | None:
    """Map a store event to a CalendarItem. Returns None if it has no usable start."""
    start = parse_timestamp(event.get("start") or event.get("start_time"))
    if start is None:
        logger.warning("Skipping event %s with unparseable start %r", event.get("id"), event.get("start"))
        return None
    end = parse_timestamp(event.get("end") or event.get("end_time")) or start

    event_id = str(event.get("id"))
    return CalendarItem(
        id=event_id,
        title=event.get("title") or DEFAULT_EVENT_TITLE,
        description=event.get("description") or "",
        start=start,
        end=end,
        all_day=bool(event.get("all_day")),
        kind=kind,
        source_ref=event_id,
        type=event.get("type") or DEFAULT_EVENT_TYPE,
        location=event.get("location") or None,
        status=event.get("status") or None,
        owner_id=str(event["user_id"]) if event.get("user_id") else None,
    )


def task_to_item(task: dict, roster: list[UserReference] | None = None) -> CalendarItem | None:
    """
    Map a due task (already carrying project/workspace context) to an all-day item.

    Returns None if the due date can't be parsed.
    """
    due = parse_timestamp(task.get("due_date"))
    if due is None:
        logger.warning("Skipping task %s with unparseable due date %r", task.get("id"), task.get("due_date"))
        return None

    task_id = str(task.get("id"))
    return CalendarItem(
        id=task_item_id(task_id),
        title=task.get("title") or DEFAULT_TASK_TITLE,
        description=task.get("description") or "",
        start=due,
        end=due,
        all_day=True,
        kind=ItemKind.TASK_DUE_DATE,
        source_ref=task_id,
        type="task",
        status=task.get("status") or DEFAULT_TASK_STATUS,
        priority=task.get("priority") or DEFAULT_TASK_PRIORITY,
        project_id=task.get("project_id"),
        project_name=task.get("project_name") or DEFAULT_PROJECT_NAME,
        workspace_id=task.get("workspace_id"),
        workspace_name=task.get("workspace_name") or DEFAULT_WORKSPACE_NAME,
        assignees=tuple(resolve_owners(task.get("assigned_to"), roster or [])),
    )


# =============================================================================
# FETCH OUTCOMES
# =============================================================================


async def attempt(
    source: str,
    fetch: Callable[..., Awaitable[Any]],
    *args: Any,
    scope_id: str | None = None,
) -> FetchOutcome[list]:
    """Run one list-returning collaborator call and capture its outcome."""
    try:
        value = await fetch(*args)
    except Exception as e:
        message = str(e) or e.__class__.__name__
        if scope_id:
            logger.warning("Error fetching %s for %s: %s", source, scope_id, message)
        else:
            logger.warning("Error fetching %s: %s", source, message)
        return FetchOutcome(error=FetchError(source=source, message=message, scope_id=scope_id))

    if value is None:
        return FetchOutcome(value=[])
    if not isinstance(value, list):
        message = f"expected a list, got {type(value).__name__}"
        logger.warning("Invalid %s data for %s: %s", source, scope_id or "request", message)
        return FetchOutcome(error=FetchError(source=source, message=message, scope_id=scope_id))
    return FetchOutcome(value=value)


# =============================================================================
# AGGREGATOR
# =============================================================================


class TimelineAggregator:
    """
    Builds the unified timeline for one user and date range.

    Parameters
    ----------
    store : TimelineStore
        Read collaborator for workspaces, tasks, events and users.
    roster_cache : RosterCache, optional
        Known-user cache shared across calls; a private one is created if omitted.
    """

    def __init__(self, store: TimelineStore, roster_cache: RosterCache | None = None):
        self.store = store
        self.roster_cache = roster_cache if roster_cache is not None else RosterCache()

    async def aggregate(
        self, user_id: str | None, start_date: date | str, end_date: date | str
    ) -> list[CalendarItem]:
        """Personal events, then task due dates, then teammate events."""
        timeline = await self.build_timeline(user_id, start_date, end_date)
        return timeline.items

    async def build_timeline(
        self, user_id: str | None, start_date: date | str, end_date: date | str
    ) -> Timeline:
        """
        Aggregate all sources into a Timeline.

        Raises:
            ValueError: if start_date is after end_date
        """
        start, end = as_date(start_date), as_date(end_date)
        if start > end:
            raise ValueError(f"Start date {start} is after end date {end}")

        # Nothing to aggregate without an identity
        if not user_id:
            return Timeline()

        user_id = str(user_id)
        start_str, end_str = start.isoformat(), end.isoformat()
        logger.info("Loading timeline for user %s from %s to %s", user_id, start_str, end_str)

        personal, tasks, teammates = await asyncio.gather(
            self._personal_events(user_id, start_str, end_str),
            self._task_items(user_id),
            self._teammate_events(user_id, start_str, end_str),
        )

        timeline = Timeline()
        for items, errors in (personal, tasks, teammates):
            timeline.items.extend(items)
            timeline.errors.extend(errors)

        logger.info(
            "Timeline for user %s: %d items (%d personal, %d tasks, %d teammate), %d fetch errors",
            user_id,
            len(timeline.items),
            len(personal[0]),
            len(tasks[0]),
            len(teammates[0]),
            len(timeline.errors),
        )
        return timeline

    # -- personal events ------------------------------------------------------

    async def _personal_events(
        self, user_id: str, start: str, end: str
    ) -> tuple[list[CalendarItem], list[FetchError]]:
        outcome = await attempt(PERSONAL_SOURCE, self.store.get_user_events, user_id, start, end)
        items = self._events_to_items(outcome.unwrap_or([]), ItemKind.PERSONAL_EVENT)
        logger.debug("Loaded %d user events", len(items))
        return items, [outcome.error] if outcome.error else []

    # -- tasks ----------------------------------------------------------------

    async def collect_tasks(
        self, user_id: str, keep: Callable[[dict], bool]
    ) -> tuple[list[dict], list[FetchError]]:
        """
        Walk the user's workspaces -> projects -> tasks and return the tasks
        accepted by `keep`, each tagged with project and workspace context.

        A failing workspace or project contributes no tasks and one FetchError;
        its siblings are unaffected.
        """
        workspaces_outcome = await attempt(WORKSPACES_SOURCE, self.store.get_workspaces, user_id)
        if workspaces_outcome.error:
            return [], [workspaces_outcome.error]
        workspaces = [w for w in workspaces_outcome.unwrap_or([]) if w and w.get("id")]
        logger.debug("Found %d workspaces for user %s", len(workspaces), user_id)

        branches = await asyncio.gather(*(self._workspace_tasks(w, keep) for w in workspaces))
        tasks: list[dict] = []
        errors: list[FetchError] = []
        for branch_tasks, branch_errors in branches:
            tasks.extend(branch_tasks)
            errors.extend(branch_errors)
        return tasks, errors

    async def _task_items(self, user_id: str) -> tuple[list[CalendarItem], list[FetchError]]:
        due_tasks, errors = await self.collect_tasks(
            user_id, keep=lambda task: bool(task.get("due_date"))
        )
        logger.debug("Total tasks with due dates: %d", len(due_tasks))

        roster, roster_error = await self._load_roster(collect_owner_ids(due_tasks))
        if roster_error:
            errors.append(roster_error)

        items = []
        for task in due_tasks:
            item = task_to_item(task, roster)
            if item is not None:
                items.append(item)
        return items, errors

    async def _workspace_tasks(
        self, workspace: dict, keep: Callable[[dict], bool]
    ) -> tuple[list[dict], list[FetchError]]:
        workspace_id = str(workspace["id"])
        outcome = await attempt(
            PROJECTS_SOURCE,
            self.store.get_projects_for_workspace,
            workspace_id,
            scope_id=workspace_id,
        )
        if outcome.error:
            return [], [outcome.error]

        projects = [p for p in outcome.unwrap_or([]) if p and p.get("id")]
        branches = await asyncio.gather(
            *(self._project_tasks(workspace, project, keep) for project in projects)
        )

        tasks: list[dict] = []
        errors: list[FetchError] = []
        for branch_tasks, branch_error in branches:
            tasks.extend(branch_tasks)
            if branch_error:
                errors.append(branch_error)
        return tasks, errors

    async def _project_tasks(
        self, workspace: dict, project: dict, keep: Callable[[dict], bool]
    ) -> tuple[list[dict], FetchError | None]:
        project_id = str(project["id"])
        outcome = await attempt(
            TASKS_SOURCE, self.store.get_tasks_for_project, project_id, scope_id=project_id
        )
        if outcome.error:
            return [], outcome.error

        kept = [
            {
                **task,
                "project_id": project_id,
                "project_name": project.get("name") or DEFAULT_PROJECT_NAME,
                "workspace_id": str(workspace["id"]),
                "workspace_name": workspace.get("name") or DEFAULT_WORKSPACE_NAME,
            }
            for task in outcome.unwrap_or([])
            if task and keep(task)
        ]
        logger.debug("Kept %d tasks in project %s", len(kept), project.get("name") or project_id)
        return kept, None

    async def _load_roster(
        self, user_ids: list[str]
    ) -> tuple[list[UserReference], FetchError | None]:
        """Known users for the given ids, fetching only those not already cached."""
        if not user_ids:
            return [], None

        error = None
        missing = self.roster_cache.missing(user_ids)
        if missing:
            outcome = await attempt(ROSTER_SOURCE, self.store.get_users, missing)
            error = outcome.error
            fetched = (user_reference_from_row(row) for row in outcome.unwrap_or([]) if row)
            self.roster_cache.put_many(user for user in fetched if user is not None)
        return self.roster_cache.lookup(user_ids), error

    # -- teammates ------------------------------------------------------------

    async def _teammate_events(
        self, user_id: str, start: str, end: str
    ) -> tuple[list[CalendarItem], list[FetchError]]:
        teammates_outcome = await attempt(TEAMMATES_SOURCE, self.store.get_teammates, user_id)
        if teammates_outcome.error:
            return [], [teammates_outcome.error]

        teammate_ids = []
        for teammate in teammates_outcome.unwrap_or([]):
            if teammate and teammate.get("id") and str(teammate["id"]) != user_id:
                teammate_ids.append(str(teammate["id"]))
        if not teammate_ids:
            logger.debug("No teammates found")
            return [], []

        outcome = await attempt(
            TEAMMATE_EVENTS_SOURCE, self.store.get_teammate_events, teammate_ids, start, end
        )
        items = self._events_to_items(outcome.unwrap_or([]), ItemKind.TEAMMATE_EVENT)
        logger.debug("Loaded %d teammate events", len(items))
        return items, [outcome.error] if outcome.error else []

    @staticmethod
    def _events_to_items(events: list[dict], kind: ItemKind) -> list[CalendarItem]:
        items = []
        for event in events:
            if not event or event.get("id") in (None, ""):
                continue
            item = event_to_item(event, kind)
            if item is not None:
                items.append(item)
        return items
