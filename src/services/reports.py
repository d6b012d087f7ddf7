"""
Plain-text agenda formatting for timeline items, and task summaries.
"""

from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping
from datetime import date

from core.config import DEFAULT_TASK_STATUS, DEFAULT_TASK_TITLE
from models.events import CalendarItem, ItemKind
from services.display import color_key, is_editable
from services.owners import normalize_owner_ids

KIND_LABELS = {
    ItemKind.PERSONAL_EVENT: "event",
    ItemKind.TASK_DUE_DATE: "task",
    ItemKind.TEAMMATE_EVENT: "teammate",
}


def format_date_display(d: date) -> str:
    """Format date as 'Fri Nov 7, 2025' (platform-safe, no zero-padding)."""
    return f"{d.strftime('%a %b')} {d.day}, {d.year}"


def format_time_range(item: CalendarItem) -> str:
    """'09:00-10:30', or 'all day'."""
    if item.all_day:
        return "all day"
    return f"{item.start.strftime('%H:%M')}-{item.end.strftime('%H:%M')}"


def group_by_day(items: list[CalendarItem]) -> dict[date, list[CalendarItem]]:
    """Items keyed by start date, days ascending; all-day items first within a day."""
    days: dict[date, list[CalendarItem]] = defaultdict(list)
    for item in items:
        days[item.start.date()].append(item)
    return {
        day: sorted(days[day], key=lambda i: (not i.all_day, i.start.replace(tzinfo=None)))
        for day in sorted(days)
    }


def format_item_line(item: CalendarItem) -> str:
    """One agenda line, e.g. '  all day  [task] Ship release (in-progress) - Web / Acme'."""
    line = f"  {format_time_range(item):<11} [{KIND_LABELS[item.kind]}] {item.title}"
    if item.kind is ItemKind.TASK_DUE_DATE:
        line += f" ({color_key(item)}) - {item.project_name} / {item.workspace_name}"
        if item.assignees:
            line += " @ " + ", ".join(a.display_name for a in item.assignees)
    elif not is_editable(item) and item.owner_id:
        line += f" ({item.owner_id})"
    return line


def format_agenda(items: list[CalendarItem]) -> list[str]:
    """Agenda lines grouped under a heading per day."""
    lines = []
    for day, day_items in group_by_day(items).items():
        lines.append(format_date_display(day))
        lines.extend(format_item_line(item) for item in day_items)
        lines.append("")
    return lines


# =============================================================================
# TASK SUMMARIES
# =============================================================================


def count_tasks_by_status(tasks: Iterable[Mapping]) -> dict[str, int]:
    """Task counts per raw status, most common first; missing status counts as the default."""
    counts = Counter(task.get("status") or DEFAULT_TASK_STATUS for task in tasks)
    return dict(counts.most_common())


def count_tasks_by_assignee(tasks: Iterable[Mapping]) -> dict[str, int]:
    """
    Task counts per assignee id, most common first.

    A task with several assignees counts once for each; unassigned tasks are
    not counted.
    """
    counts: Counter[str] = Counter()
    for task in tasks:
        counts.update(normalize_owner_ids(task.get("assigned_to")))
    return dict(counts.most_common())


def format_task_summary(tasks: list[dict]) -> list[str]:
    """Assigned-task list followed by counts per status."""
    lines = []
    for task in tasks:
        due = str(task.get("due_date") or "")[:10] or "no date"
        lines.append(
            f"  {due:<11} [{task.get('status') or DEFAULT_TASK_STATUS}] "
            f"{task.get('title') or DEFAULT_TASK_TITLE} - "
            f"{task.get('project_name')} / {task.get('workspace_name')}"
        )
    if tasks:
        lines.append("")
    lines.extend(
        f"  {status}: {count}" for status, count in count_tasks_by_status(tasks).items()
    )
    return lines
