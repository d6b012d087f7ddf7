"""
Tests for the SQLite store, run against a temporary database.
"""

import sqlite3
import sys
from datetime import date
from pathlib import Path

from conftest import run
from core import database
from core.store import SqliteStore
from models.events import ItemKind
from services.calendar import TimelineAggregator


def test_create_database_is_idempotent(db_path):
    from scripts.init_db import create_database

    create_database(db_path)
    conn = sqlite3.connect(db_path)
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()

    assert {"users", "workspaces", "workspace_members", "projects", "tasks", "calendar_events"} <= tables
    assert {"api_requests", "api_request_details"} <= tables


class TestReads:
    def test_workspaces_include_memberships(self, seeded_db):
        conn = database.get_connection(seeded_db)
        workspaces = database.get_workspaces(conn, "u1")
        conn.close()

        assert [w["id"] for w in workspaces] == ["w1", "w2"]

    def test_tasks_for_project_in_creation_order(self, seeded_db):
        conn = database.get_connection(seeded_db)
        tasks = database.get_tasks_for_project(conn, "p1")
        conn.close()

        assert [t["id"] for t in tasks] == ["t1", "t2"]
        assert tasks[0]["assigned_to"] == '["u1","u3"]'

    def test_user_events_include_whole_end_day(self, seeded_db):
        conn = database.get_connection(seeded_db)
        events = database.get_user_events(conn, "u1", "2025-11-01", "2025-11-30")
        conn.close()

        assert [e["id"] for e in events] == ["e1", "e2"]
        assert events[0]["start"] == "2025-11-03T09:00:00"
        assert events[0]["all_day"] is False
        assert events[0]["status"] == "confirmed"

    def test_teammates_from_shared_workspaces_and_assignments(self, seeded_db):
        conn = database.get_connection(seeded_db)
        teammates = database.get_teammates(conn, "u1")
        conn.close()

        # u3 only appears through task assignment; u4 shares nothing
        assert [t["id"] for t in teammates] == ["u3", "u2"]

    def test_teammates_survive_corrupt_assignment(self, seeded_db):
        conn = database.get_connection(seeded_db)
        conn.execute(
            "INSERT INTO tasks (id, project_id, title, assigned_to) VALUES ('t9', 'p1', 'Bad', ?)",
            ("[" * 5000 + "]" * 5000,),
        )
        teammates = database.get_teammates(conn, "u1")
        conn.close()

        assert [t["id"] for t in teammates] == ["u3", "u2"]

    def test_teammates_for_user_without_workspaces(self, seeded_db):
        conn = database.get_connection(seeded_db)
        assert database.get_teammates(conn, "nobody") == []
        conn.close()

    def test_get_users_ignores_unknown_ids(self, seeded_db):
        conn = database.get_connection(seeded_db)
        users = database.get_users(conn, ["u2", "ghost"])
        conn.close()

        assert [u["name"] for u in users] == ["Grace Hopper"]


class TestEventWrites:
    def test_create_update_delete(self, db_path):
        conn = database.get_connection(db_path)
        event = database.create_calendar_event(
            conn,
            {
                "user_id": "u1",
                "title": "Planning",
                "start_time": "2025-11-04T10:00:00",
                "end_time": "2025-11-04T11:00:00",
            },
        )
        assert event["type"] == "busy"
        assert event["all_day"] is False

        updated = database.update_calendar_event(
            conn, event["id"], {"title": "Planning (moved)", "all_day": True, "bogus": 1}
        )
        assert updated["title"] == "Planning (moved)"
        assert updated["all_day"] is True

        assert database.delete_calendar_event(conn, event["id"]) is True
        assert database.get_calendar_event(conn, event["id"]) is None
        conn.close()

    def test_update_and_delete_missing_event(self, db_path):
        conn = database.get_connection(db_path)
        assert database.update_calendar_event(conn, "missing", {"title": "x"}) is None
        assert database.delete_calendar_event(conn, "missing") is False
        conn.close()


class TestSqliteStore:
    def test_is_available(self, seeded_db, tmp_path):
        assert SqliteStore(seeded_db).is_available() is True
        assert SqliteStore(tmp_path / "missing.db").is_available() is False

    def test_timeline_over_sqlite(self, seeded_db):
        store = SqliteStore(seeded_db)
        items = run(TimelineAggregator(store).aggregate("u1", date(2025, 11, 1), date(2025, 11, 30)))

        assert [i.id for i in items] == ["e1", "e2", "task-t1", "task-t3", "e4"]
        assert [i.kind for i in items] == [
            ItemKind.PERSONAL_EVENT,
            ItemKind.PERSONAL_EVENT,
            ItemKind.TASK_DUE_DATE,
            ItemKind.TASK_DUE_DATE,
            ItemKind.TEAMMATE_EVENT,
        ]

        release = items[2]
        assert [a.display_name for a in release.assignees] == ["Ada Lovelace", "Alan Turing"]
        assert release.workspace_name == "Acme"

        review = items[3]
        assert [a.id for a in review.assignees] == ["u2"]
        assert review.status == "not_started"


class TestDemoData:
    def test_seeded_demo_timeline_resolves_every_assignment_encoding(self, tmp_path):
        sys.path.insert(0, str(Path(__file__).parent / "fixtures"))
        from generate_demo_data import seed_database

        db_path = seed_database(tmp_path / "demo.db")
        store = SqliteStore(db_path)
        timeline = run(
            TimelineAggregator(store).build_timeline("user-1", date(2025, 11, 1), date(2025, 11, 30))
        )

        assert timeline.errors == []
        assert any(i.kind is ItemKind.PERSONAL_EVENT for i in timeline.items)
        for item in timeline.items:
            if item.kind is ItemKind.TASK_DUE_DATE:
                assert item.id.startswith("task-")
                # "deleted-user" has no users row, so it can only show up as a placeholder
                for ref in item.assignees:
                    assert ref.placeholder is (ref.id == "deleted-user")
