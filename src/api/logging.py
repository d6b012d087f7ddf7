"""SQLite request logging for API."""

import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from fastapi import HTTPException

from api.models.responses import ErrorCodes
from models.timeline import FetchError

logger = logging.getLogger(__name__)

# api_requests columns, in insert order
REQUEST_COLUMNS = (
    "request_id",
    "timestamp",
    "endpoint",
    "method",
    "client_ip",
    "user_id",
    "range_start",
    "range_end",
    "status_code",
    "error_code",
    "error_message",
    "processing_time_ms",
    "items_returned",
)


@dataclass
class RequestLog:
    """One API call: what was asked for, how it ended, and anything worth keeping."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    endpoint: str = ""
    method: str = ""
    client_ip: str | None = None
    user_id: str | None = None
    range_start: str | None = None
    range_end: str | None = None
    status_code: int = 0
    error_code: str | None = None
    error_message: str | None = None
    processing_time_ms: int = 0
    items_returned: int | None = None
    details: list[tuple[str, str]] = field(default_factory=list)  # (type, message)
    started: float = field(default_factory=time.time, repr=False)

    def record_fetch_errors(self, errors: list[FetchError]):
        for error in errors:
            scope = f" {error.scope_id}" if error.scope_id else ""
            self.details.append(("fetch_failure", f"{error.source}{scope}: {error.message}"))

    def record_http_error(self, e: HTTPException):
        self.status_code = e.status_code
        if not isinstance(e.detail, dict):
            self.error_message = str(e.detail)
            return
        self.error_code = e.detail.get("code")
        self.error_message = e.detail.get("error")
        self.details.extend(("validation_error", d) for d in e.detail.get("details", []))

    def record_unexpected(self, e: Exception):
        self.status_code = 500
        self.error_code = ErrorCodes.INTERNAL_ERROR
        self.error_message = str(e)

    def finish(self):
        self.processing_time_ms = int((time.time() - self.started) * 1000)

    def row(self) -> tuple:
        return tuple(getattr(self, column) for column in REQUEST_COLUMNS)


def log_request(log: RequestLog, db_path: Path) -> None:
    """
    Write the request and its details to the api_requests tables.

    Nothing is written when the database file does not exist, so a missing
    log store never creates an empty database as a side effect.
    """
    if not Path(db_path).exists():
        logger.debug("Request log database %s missing, skipping %s", db_path, log.request_id)
        return

    placeholders = ", ".join("?" for _ in REQUEST_COLUMNS)
    conn = sqlite3.connect(db_path)
    try:
        with conn:
            conn.execute(
                f"INSERT INTO api_requests ({', '.join(REQUEST_COLUMNS)}) VALUES ({placeholders})",
                log.row(),
            )
            conn.executemany(
                "INSERT INTO api_request_details (request_id, detail_type, message) VALUES (?, ?, ?)",
                [(log.request_id, detail_type, message) for detail_type, message in log.details],
            )
    finally:
        conn.close()
