"""
Task lookups: one task's assignees, and every task assigned to a user.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from core.store import TimelineStore
from models.timeline import ROSTER_SOURCE, FetchError
from models.users import AssignmentSet
from services.calendar import TimelineAggregator, attempt, parse_timestamp
from services.owners import (
    RosterCache,
    normalize_owner_entries,
    normalize_owner_ids,
    resolve_owners,
    user_reference_from_row,
)

logger = logging.getLogger(__name__)

COMPLETED_STATUS = "completed"


class TaskNotFoundError(LookupError):
    """No task with the given id."""


@dataclass
class AssignedTasks:
    """Tasks assigned to one user, plus the branches that could not be read."""

    tasks: list[dict] = field(default_factory=list)
    errors: list[FetchError] = field(default_factory=list)


async def get_task_assignees(
    store: TimelineStore, task_id: str, roster_cache: RosterCache | None = None
) -> AssignmentSet:
    """
    Resolve a task's `assigned_to` against known users.

    Unknown ids come back as placeholders. A failing user lookup is logged
    and degrades to placeholders rather than an error.

    Raises:
        TaskNotFoundError: if the task doesn't exist
    """
    task = await store.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)

    ids = [e for e in normalize_owner_entries(task.get("assigned_to")) if isinstance(e, str)]
    cache = roster_cache if roster_cache is not None else RosterCache()
    missing = cache.missing(ids)
    if missing:
        outcome = await attempt(ROSTER_SOURCE, store.get_users, missing, scope_id=str(task_id))
        fetched = (user_reference_from_row(row) for row in outcome.unwrap_or([]) if row)
        cache.put_many(user for user in fetched if user is not None)

    return resolve_owners(task.get("assigned_to"), cache.lookup(ids))


def is_assigned_to(task: dict, user_id: str) -> bool:
    return str(user_id) in normalize_owner_ids(task.get("assigned_to"))


def _due_day(task: dict) -> date | None:
    due = parse_timestamp(task.get("due_date"))
    return due.date() if due else None


def sort_assigned_tasks(tasks: list[dict]) -> list[dict]:
    """Open tasks before completed ones, then by due date; undated tasks last."""

    def key(task: dict):
        due = _due_day(task)
        return (task.get("status") == COMPLETED_STATUS, due is None, due or date.min)

    return sorted(tasks, key=key)


async def get_assigned_tasks(store: TimelineStore, user_id: str | None) -> AssignedTasks:
    """
    Every task in the user's workspaces whose assignees include `user_id`,
    with project and workspace context, in work order (see sort_assigned_tasks).

    Failing workspaces or projects are recorded in `errors` and skipped.
    """
    if not user_id:
        return AssignedTasks()

    user_id = str(user_id)
    aggregator = TimelineAggregator(store)
    tasks, errors = await aggregator.collect_tasks(
        user_id, keep=lambda task: is_assigned_to(task, user_id)
    )
    logger.info("Found %d tasks assigned to user %s", len(tasks), user_id)
    return AssignedTasks(tasks=sort_assigned_tasks(tasks), errors=errors)
