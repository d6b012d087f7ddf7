"""FastAPI dependencies for authentication and shared resources."""

import secrets

from fastapi import Header, HTTPException, status

from api.models.responses import ErrorCodes
from core.config import DB_PATH, WORKBOARD_API_KEY
from core.store import SqliteStore, TimelineStore
from services.owners import RosterCache

# One roster cache per process; entries expire after ROSTER_CACHE_TTL_SECONDS
_roster_cache = RosterCache()


def _auth_error(status_code: int, error: str, code: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": error, "code": code, "details": []},
    )


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Check the X-API-Key header against WORKBOARD_API_KEY.

    Raises:
        HTTPException: 500 if the server has no key configured, 401 if the
            header does not match
    """
    if not WORKBOARD_API_KEY:
        raise _auth_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "API key not configured on server",
            ErrorCodes.INTERNAL_ERROR,
        )

    # Constant-time comparison
    if not secrets.compare_digest(x_api_key, WORKBOARD_API_KEY):
        raise _auth_error(
            status.HTTP_401_UNAUTHORIZED, "Invalid or missing API key", ErrorCodes.UNAUTHORIZED
        )

    return x_api_key


def get_store() -> TimelineStore:
    """Persistence collaborator for request handlers."""
    return SqliteStore(DB_PATH)


def get_roster_cache() -> RosterCache:
    return _roster_cache
