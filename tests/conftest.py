"""
Pytest configuration and shared fixtures.
"""

import asyncio
import sqlite3
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class FakeStore:
    """
    In-memory TimelineStore.

    `failures` maps (method, key) -> exception to raise, where key is the
    first argument (use None to fail every call). `delays` maps method ->
    seconds to sleep before answering, to shuffle completion order.
    """

    def __init__(
        self,
        workspaces=None,
        projects=None,
        tasks=None,
        users=None,
        events=None,
        teammates=None,
        failures=None,
        delays=None,
    ):
        self.workspaces = workspaces or {}  # user_id -> [workspace]
        self.projects = projects or {}  # workspace_id -> [project]
        self.tasks = tasks or {}  # project_id -> [task]
        self.users = users or {}  # user_id -> user row
        self.events = list(events or [])  # event dicts with user_id
        self.teammates = teammates or {}  # user_id -> [user row]
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls = []

    async def _enter(self, name, key=None):
        self.calls.append((name, key))
        if self.delays.get(name):
            await asyncio.sleep(self.delays[name])
        for failure_key in ((name, key), (name, None)):
            if failure_key in self.failures:
                raise self.failures[failure_key]

    def called(self, name):
        return [key for method, key in self.calls if method == name]

    async def get_workspaces(self, user_id):
        await self._enter("get_workspaces", user_id)
        return list(self.workspaces.get(user_id, []))

    async def get_projects_for_workspace(self, workspace_id):
        await self._enter("get_projects_for_workspace", workspace_id)
        return list(self.projects.get(workspace_id, []))

    async def get_tasks_for_project(self, project_id):
        await self._enter("get_tasks_for_project", project_id)
        return list(self.tasks.get(project_id, []))

    async def get_task(self, task_id):
        await self._enter("get_task", task_id)
        for tasks in self.tasks.values():
            for task in tasks:
                if str(task["id"]) == str(task_id):
                    return dict(task)
        return None

    async def get_users(self, user_ids):
        await self._enter("get_users", tuple(user_ids))
        return [dict(self.users[u]) for u in user_ids if u in self.users]

    async def get_user_events(self, user_id, start_date, end_date):
        await self._enter("get_user_events", user_id)
        return [dict(e) for e in self.events if e.get("user_id") == user_id]

    async def get_teammates(self, user_id):
        await self._enter("get_teammates", user_id)
        return list(self.teammates.get(user_id, []))

    async def get_teammate_events(self, teammate_ids, start_date, end_date):
        await self._enter("get_teammate_events", tuple(teammate_ids))
        return [dict(e) for e in self.events if e.get("user_id") in teammate_ids]

    async def get_calendar_event(self, event_id):
        await self._enter("get_calendar_event", event_id)
        for event in self.events:
            if event["id"] == event_id:
                return dict(event)
        return None

    async def create_calendar_event(self, event_data):
        await self._enter("create_calendar_event")
        event = {
            "id": f"evt-{len(self.events) + 1}",
            "user_id": event_data["user_id"],
            "title": event_data["title"],
            "description": event_data.get("description") or "",
            "type": event_data.get("type") or "busy",
            "start": event_data["start_time"],
            "end": event_data["end_time"],
            "all_day": bool(event_data.get("all_day")),
            "location": event_data.get("location") or "",
            "status": event_data.get("status") or "confirmed",
        }
        self.events.append(event)
        return dict(event)

    async def update_calendar_event(self, event_id, updates):
        await self._enter("update_calendar_event", event_id)
        for event in self.events:
            if event["id"] == event_id:
                for key, value in updates.items():
                    column = {"start_time": "start", "end_time": "end"}.get(key, key)
                    event[column] = value
                return dict(event)
        return None

    async def delete_calendar_event(self, event_id):
        await self._enter("delete_calendar_event", event_id)
        before = len(self.events)
        self.events = [e for e in self.events if e["id"] != event_id]
        return len(self.events) < before


def run(coro):
    """Run a coroutine to completion from a sync test."""
    return asyncio.run(coro)


@pytest.fixture
def sample_event():
    """Sample personal event dictionary for testing."""
    return {
        "id": "42",
        "user_id": "u1",
        "title": "Design review",
        "description": "Walk through the new board layout",
        "type": "meeting",
        "start": "2025-11-03T09:00:00Z",
        "end": "2025-11-03T10:00:00Z",
        "all_day": False,
        "location": "Room 2",
        "status": "confirmed",
    }


@pytest.fixture
def sample_users():
    """Known users keyed by id."""
    return {
        "u1": {"id": "u1", "name": "Ada Lovelace", "email": "ada@example.com", "avatar_url": None},
        "u2": {"id": "u2", "name": "Grace Hopper", "email": "grace@example.com", "avatar_url": None},
        "u3": {"id": "u3", "name": "Alan Turing", "email": "alan@example.com", "avatar_url": None},
    }


@pytest.fixture
def fake_store(sample_event, sample_users):
    """One workspace, one project, two tasks (one due), one personal event."""
    return FakeStore(
        workspaces={"u1": [{"id": "w1", "name": "Acme", "user_id": "u1"}]},
        projects={"w1": [{"id": "p1", "name": "Website", "workspace_id": "w1"}]},
        tasks={
            "p1": [
                {
                    "id": "42",
                    "project_id": "p1",
                    "title": "Ship release",
                    "description": "",
                    "due_date": "2025-11-14",
                    "status": "in_progress",
                    "priority": "high",
                    "assigned_to": '["u1", "u9"]',
                },
                {
                    "id": "43",
                    "project_id": "p1",
                    "title": "Someday",
                    "due_date": None,
                    "status": "todo",
                    "priority": "low",
                    "assigned_to": None,
                },
            ]
        },
        users=sample_users,
        events=[sample_event],
    )


@pytest.fixture
def db_path(tmp_path):
    """Fresh workboard database with the full schema."""
    from scripts.init_db import create_database

    path = tmp_path / "db" / "workboard.db"
    create_database(path)
    return path


@pytest.fixture
def seeded_db(db_path):
    """Database with two users sharing a workspace, tasks and events."""
    conn = sqlite3.connect(db_path)
    conn.executemany(
        "INSERT INTO users (id, name, email) VALUES (?, ?, ?)",
        [
            ("u1", "Ada Lovelace", "ada@example.com"),
            ("u2", "Grace Hopper", "grace@example.com"),
            ("u3", "Alan Turing", "alan@example.com"),
            ("u4", "Outsider", "out@example.com"),
        ],
    )
    conn.executemany(
        "INSERT INTO workspaces (id, name, user_id, created_at) VALUES (?, ?, ?, ?)",
        [
            ("w1", "Acme", "u1", "2025-01-01"),
            ("w2", "Side Gig", "u2", "2025-01-02"),
            ("w3", "Elsewhere", "u4", "2025-01-03"),
        ],
    )
    conn.execute("INSERT INTO workspace_members (workspace_id, user_id) VALUES ('w2', 'u1')")
    conn.executemany(
        "INSERT INTO projects (id, workspace_id, name, created_by, created_at) VALUES (?, ?, ?, ?, ?)",
        [
            ("p1", "w1", "Website", "u1", "2025-01-01"),
            ("p2", "w2", "Mobile", "u2", "2025-01-02"),
            ("p3", "w3", "Hidden", "u4", "2025-01-03"),
        ],
    )
    conn.executemany(
        """
        INSERT INTO tasks (id, project_id, title, due_date, status, priority, assigned_to, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            ("t1", "p1", "Ship release", "2025-11-14", "in_progress", "high", '["u1","u3"]', "2025-01-01"),
            ("t2", "p1", "Backlog idea", None, "todo", "low", None, "2025-01-02"),
            ("t3", "p2", "App review", "2025-11-20", "not_started", "medium", "u2", "2025-01-03"),
            ("t4", "p3", "Not mine", "2025-11-21", "todo", "medium", None, "2025-01-04"),
        ],
    )
    conn.executemany(
        """
        INSERT INTO calendar_events (id, user_id, title, start_time, end_time, all_day, type)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            ("e1", "u1", "Standup", "2025-11-03T09:00:00", "2025-11-03T09:15:00", 0, "meeting"),
            ("e2", "u1", "Month end", "2025-11-30T16:00:00", "2025-11-30T17:00:00", 0, "busy"),
            ("e3", "u1", "Next month", "2025-12-01T09:00:00", "2025-12-01T10:00:00", 0, "busy"),
            ("e4", "u2", "Grace focus time", "2025-11-05T13:00:00", "2025-11-05T15:00:00", 0, "busy"),
            ("e5", "u4", "Outsider event", "2025-11-05T13:00:00", "2025-11-05T15:00:00", 0, "busy"),
        ],
    )
    conn.commit()
    conn.close()
    return db_path
