"""
SQLite database operations for workspaces, tasks and calendar events.
"""

import sqlite3
import uuid
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from core.config import (
    DB_PATH,
    DEFAULT_EVENT_STATUS,
    DEFAULT_EVENT_TITLE,
    DEFAULT_EVENT_TYPE,
)
from services.owners import normalize_owner_ids

USER_COLUMNS = "id, name, email, avatar_url"
EVENT_COLUMNS = (
    "id, user_id, title, description, start_time, end_time, all_day, type, location, status"
)

# Writable calendar_events columns
EVENT_FIELDS = (
    "user_id",
    "title",
    "description",
    "start_time",
    "end_time",
    "all_day",
    "type",
    "location",
    "status",
)


def get_connection(db_path: Path = DB_PATH) -> sqlite3.Connection:
    """Get a database connection with dict-style rows."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _day_after(date_str: str) -> str:
    """'2025-11-30' -> '2025-12-01'. Used as an exclusive upper bound."""
    return (date.fromisoformat(date_str[:10]) + timedelta(days=1)).isoformat()


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


# =============================================================================
# USERS
# =============================================================================


def get_users(conn: sqlite3.Connection, user_ids: list[str]) -> list[dict]:
    """Fetch user rows for the given ids (unknown ids are simply absent)."""
    if not user_ids:
        return []
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT {USER_COLUMNS} FROM users WHERE id IN ({_placeholders(user_ids)})",
        [str(user_id) for user_id in user_ids],
    )
    return [dict(row) for row in cursor.fetchall()]


def _user_workspace_ids(conn: sqlite3.Connection, user_id: str) -> list[str]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id FROM workspaces WHERE user_id = ?
        UNION
        SELECT workspace_id FROM workspace_members WHERE user_id = ?
        """,
        (user_id, user_id),
    )
    return [row[0] for row in cursor.fetchall()]


def get_teammates(conn: sqlite3.Connection, user_id: str) -> list[dict]:
    """
    Users sharing a workspace with `user_id`.

    A teammate owns or is a member of one of the user's workspaces, created a
    project in one, or is assigned to a task in one. Sorted by name.
    """
    workspace_ids = _user_workspace_ids(conn, user_id)
    if not workspace_ids:
        return []

    marks = _placeholders(workspace_ids)
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT user_id FROM workspaces WHERE id IN ({marks})
        UNION
        SELECT user_id FROM workspace_members WHERE workspace_id IN ({marks})
        UNION
        SELECT created_by FROM projects WHERE workspace_id IN ({marks})
        """,
        workspace_ids * 3,
    )
    candidate_ids = {row[0] for row in cursor.fetchall() if row[0]}

    # assigned_to is stored in several encodings, so parse it in Python
    cursor.execute(
        f"""
        SELECT t.assigned_to FROM tasks t
        JOIN projects p ON p.id = t.project_id
        WHERE p.workspace_id IN ({marks}) AND t.assigned_to IS NOT NULL
        """,
        workspace_ids,
    )
    for (assigned_to,) in cursor.fetchall():
        candidate_ids.update(normalize_owner_ids(assigned_to))

    candidate_ids.discard(user_id)
    teammates = get_users(conn, sorted(candidate_ids))
    teammates.sort(key=lambda u: (u.get("name") or u.get("email") or "").lower())
    return teammates


# =============================================================================
# WORKSPACES, PROJECTS, TASKS
# =============================================================================


def get_workspaces(conn: sqlite3.Connection, user_id: str) -> list[dict]:
    """Workspaces the user owns or is a member of."""
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id, name, user_id FROM workspaces
        WHERE user_id = ?
           OR id IN (SELECT workspace_id FROM workspace_members WHERE user_id = ?)
        ORDER BY created_at, name
        """,
        (user_id, user_id),
    )
    return [dict(row) for row in cursor.fetchall()]


def get_projects_for_workspace(conn: sqlite3.Connection, workspace_id: str) -> list[dict]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id, name, workspace_id, created_by FROM projects
        WHERE workspace_id = ?
        ORDER BY created_at, name
        """,
        (workspace_id,),
    )
    return [dict(row) for row in cursor.fetchall()]


def get_tasks_for_project(conn: sqlite3.Connection, project_id: str) -> list[dict]:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id, project_id, title, description, due_date, status, priority, assigned_to
        FROM tasks
        WHERE project_id = ?
        ORDER BY created_at
        """,
        (project_id,),
    )
    return [dict(row) for row in cursor.fetchall()]


def get_task(conn: sqlite3.Connection, task_id: str) -> dict | None:
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id, project_id, title, description, due_date, status, priority, assigned_to
        FROM tasks WHERE id = ?
        """,
        (task_id,),
    )
    row = cursor.fetchone()
    return dict(row) if row else None


# =============================================================================
# CALENDAR EVENTS
# =============================================================================


def event_from_row(row: sqlite3.Row | dict) -> dict:
    """Map a calendar_events row to the start/end shape callers expect."""
    row = dict(row)
    return {
        "id": row["id"],
        "user_id": row.get("user_id"),
        "title": row.get("title") or DEFAULT_EVENT_TITLE,
        "description": row.get("description") or "",
        "type": row.get("type") or DEFAULT_EVENT_TYPE,
        "start": row.get("start_time"),
        "end": row.get("end_time"),
        "all_day": bool(row.get("all_day")),
        "location": row.get("location") or "",
        "status": row.get("status") or DEFAULT_EVENT_STATUS,
    }


def _get_events(
    conn: sqlite3.Connection, user_ids: list[str], start_date: str, end_date: str
) -> list[dict]:
    if not user_ids:
        return []
    cursor = conn.cursor()
    cursor.execute(
        f"""
        SELECT {EVENT_COLUMNS} FROM calendar_events
        WHERE user_id IN ({_placeholders(user_ids)})
          AND start_time >= ?
          AND end_time < ?
        ORDER BY start_time
        """,
        [*user_ids, start_date, _day_after(end_date)],
    )
    return [event_from_row(row) for row in cursor.fetchall()]


def get_user_events(
    conn: sqlite3.Connection, user_id: str, start_date: str, end_date: str
) -> list[dict]:
    """Events owned by the user within [start_date, end_date] (whole days, inclusive)."""
    return _get_events(conn, [user_id], start_date, end_date)


def get_teammate_events(
    conn: sqlite3.Connection, teammate_ids: list[str], start_date: str, end_date: str
) -> list[dict]:
    return _get_events(conn, [str(t) for t in teammate_ids], start_date, end_date)


def get_calendar_event(conn: sqlite3.Connection, event_id: str) -> dict | None:
    cursor = conn.cursor()
    cursor.execute(f"SELECT {EVENT_COLUMNS} FROM calendar_events WHERE id = ?", (event_id,))
    row = cursor.fetchone()
    return event_from_row(row) if row else None


def create_calendar_event(conn: sqlite3.Connection, event_data: dict) -> dict:
    """Insert an event and return it in start/end shape."""
    event_id = str(event_data.get("id") or uuid.uuid4())
    values = {
        "user_id": event_data["user_id"],
        "title": event_data["title"],
        "description": event_data.get("description"),
        "start_time": event_data["start_time"],
        "end_time": event_data["end_time"],
        "all_day": 1 if event_data.get("all_day") else 0,
        "type": event_data.get("type") or DEFAULT_EVENT_TYPE,
        "location": event_data.get("location"),
        "status": event_data.get("status") or DEFAULT_EVENT_STATUS,
    }
    now = _now()
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO calendar_events (
            id, user_id, title, description, start_time, end_time,
            all_day, type, location, status, created_at, last_modified
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (event_id, *values.values(), now, now),
    )
    conn.commit()
    return get_calendar_event(conn, event_id)


def update_calendar_event(
    conn: sqlite3.Connection, event_id: str, updates: dict
) -> dict | None:
    """Apply the given column updates. Returns the updated event, or None if it doesn't exist."""
    changes = {key: updates[key] for key in EVENT_FIELDS if key in updates}
    if "all_day" in changes:
        changes["all_day"] = 1 if changes["all_day"] else 0
    changes["last_modified"] = _now()

    assignments = ", ".join(f"{column} = ?" for column in changes)
    cursor = conn.cursor()
    cursor.execute(
        f"UPDATE calendar_events SET {assignments} WHERE id = ?",
        (*changes.values(), event_id),
    )
    conn.commit()
    if cursor.rowcount == 0:
        return None
    return get_calendar_event(conn, event_id)


def delete_calendar_event(conn: sqlite3.Connection, event_id: str) -> bool:
    """Delete an event. Returns False if it didn't exist."""
    cursor = conn.cursor()
    cursor.execute("DELETE FROM calendar_events WHERE id = ?", (event_id,))
    conn.commit()
    return cursor.rowcount > 0
