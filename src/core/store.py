"""
Persistence collaborator interface and its SQLite-backed implementation.

The aggregator and the event service only ever talk to a TimelineStore, so
tests can hand them an in-memory fake instead of a database.
"""

import asyncio
import sqlite3
from pathlib import Path
from typing import Any, Callable, Protocol

from core import database
from core.config import DB_PATH


class TimelineStore(Protocol):
    """Async read/write operations the timeline and event services depend on."""

    async def get_workspaces(self, user_id: str) -> list[dict]: ...

    async def get_projects_for_workspace(self, workspace_id: str) -> list[dict]: ...

    async def get_tasks_for_project(self, project_id: str) -> list[dict]: ...

    async def get_task(self, task_id: str) -> dict | None: ...

    async def get_users(self, user_ids: list[str]) -> list[dict]: ...

    async def get_user_events(self, user_id: str, start_date: str, end_date: str) -> list[dict]: ...

    async def get_teammates(self, user_id: str) -> list[dict]: ...

    async def get_teammate_events(
        self, teammate_ids: list[str], start_date: str, end_date: str
    ) -> list[dict]: ...

    async def get_calendar_event(self, event_id: str) -> dict | None: ...

    async def create_calendar_event(self, event_data: dict) -> dict: ...

    async def update_calendar_event(self, event_id: str, updates: dict) -> dict | None: ...

    async def delete_calendar_event(self, event_id: str) -> bool: ...


class SqliteStore:
    """
    TimelineStore over the workboard SQLite database.

    Each call opens its own connection and runs in a worker thread, so
    concurrent aggregation branches never share a connection.
    """

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = Path(db_path)

    def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        conn = database.get_connection(self.db_path)
        try:
            return func(conn, *args)
        finally:
            conn.close()

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(self._call, func, *args)

    def is_available(self) -> bool:
        """True if the database file exists and answers a trivial query."""
        if not self.db_path.exists():
            return False
        try:
            self._call(lambda conn: conn.execute("SELECT 1 FROM calendar_events LIMIT 1"))
        except sqlite3.Error:
            return False
        return True

    async def get_workspaces(self, user_id: str) -> list[dict]:
        return await self._run(database.get_workspaces, user_id)

    async def get_projects_for_workspace(self, workspace_id: str) -> list[dict]:
        return await self._run(database.get_projects_for_workspace, workspace_id)

    async def get_tasks_for_project(self, project_id: str) -> list[dict]:
        return await self._run(database.get_tasks_for_project, project_id)

    async def get_task(self, task_id: str) -> dict | None:
        return await self._run(database.get_task, task_id)

    async def get_users(self, user_ids: list[str]) -> list[dict]:
        return await self._run(database.get_users, list(user_ids))

    async def get_user_events(self, user_id: str, start_date: str, end_date: str) -> list[dict]:
        return await self._run(database.get_user_events, user_id, start_date, end_date)

    async def get_teammates(self, user_id: str) -> list[dict]:
        return await self._run(database.get_teammates, user_id)

    async def get_teammate_events(
        self, teammate_ids: list[str], start_date: str, end_date: str
    ) -> list[dict]:
        return await self._run(
            database.get_teammate_events, list(teammate_ids), start_date, end_date
        )

    async def get_calendar_event(self, event_id: str) -> dict | None:
        return await self._run(database.get_calendar_event, event_id)

    async def create_calendar_event(self, event_data: dict) -> dict:
        return await self._run(database.create_calendar_event, event_data)

    async def update_calendar_event(self, event_id: str, updates: dict) -> dict | None:
        return await self._run(database.update_calendar_event, event_id, updates)

    async def delete_calendar_event(self, event_id: str) -> bool:
        return await self._run(database.delete_calendar_event, event_id)
