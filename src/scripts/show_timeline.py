#!/usr/bin/env python3
"""
Print a user's calendar timeline for one month.

Merges personal events, task due dates and teammate events from the
workboard database and prints them grouped by day.

Usage:
    uv run python src/scripts/show_timeline.py --user u1 --date 2025-11-07
    uv run python src/scripts/show_timeline.py --user u1 --tasks
"""

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH, LOG_FORMAT
from core.store import SqliteStore
from services.calendar import TimelineAggregator, month_range
from services.reports import format_agenda, format_task_summary
from services.tasks import get_assigned_tasks


def get_month_date_range(as_of_date_str: str | None) -> tuple[date, date]:
    """
    Calculate date range for the month view.

    Args:
        as_of_date_str: Optional date string (YYYY-MM-DD). Uses today if None.

    Returns:
        Tuple of (first_of_month, last_of_month)
    """
    if as_of_date_str:
        as_of = datetime.strptime(as_of_date_str, "%Y-%m-%d").date()
    else:
        as_of = date.today()
    return month_range(as_of)


async def main(
    user_id: str,
    as_of_date_str: str | None = None,
    db_path: Path = DB_PATH,
    show_tasks: bool = False,
):
    """Main entry point."""
    start_date, end_date = get_month_date_range(as_of_date_str)
    print(f"Timeline for {user_id} from {start_date} to {end_date}\n")

    store = SqliteStore(db_path)
    if not store.is_available():
        print(f"Database not found at {db_path}. Run src/scripts/init_db.py first.")
        return 1

    timeline = await TimelineAggregator(store).build_timeline(user_id, start_date, end_date)

    if timeline.personal_events_failed:
        print("Warning: your events could not be loaded; showing tasks and teammates only.\n")
    for error in timeline.errors:
        scope = f" ({error.scope_id})" if error.scope_id else ""
        print(f"  Could not load {error.source}{scope}: {error.message}")

    if timeline.items:
        for line in format_agenda(timeline.items):
            print(line)
        print(f"Total items: {len(timeline.items)}")
    else:
        print("Nothing scheduled.")

    if show_tasks:
        await print_assigned_tasks(store, user_id)
    return 0


async def print_assigned_tasks(store: SqliteStore, user_id: str):
    assigned = await get_assigned_tasks(store, user_id)
    print(f"\nTasks assigned to {user_id}: {len(assigned.tasks)}")
    for error in assigned.errors:
        scope = f" ({error.scope_id})" if error.scope_id else ""
        print(f"  Could not load {error.source}{scope}: {error.message}")
    for line in format_task_summary(assigned.tasks):
        print(line)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Show a user's monthly calendar timeline")
    parser.add_argument("--user", required=True, help="User id to build the timeline for.")
    parser.add_argument(
        "--date",
        help="Any date (YYYY-MM-DD) in the month to show. Defaults to today.",
    )
    parser.add_argument("--db", type=Path, default=DB_PATH, help="Path to the SQLite database.")
    parser.add_argument(
        "--tasks", action="store_true", help="Also list every task assigned to the user."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each fetch.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    sys.exit(asyncio.run(main(args.user, args.date, args.db, args.tasks)))
