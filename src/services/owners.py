"""
Task owner resolution.

Tasks store `assigned_to` in several shapes depending on which code path
wrote them: a bare id, a list of ids, a JSON string encoding a list of ids,
or a list of partial user objects. Everything here funnels those shapes
through one normalization step and resolves the ids against a roster of
known users.
"""

import json
import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any, Callable

from core.config import (
    AVATAR_COLORS,
    DEFAULT_AVATAR_COLOR,
    EMPTY_ID_MARKERS,
    ROSTER_CACHE_TTL_SECONDS,
)
from models.users import AssignmentSet, UserReference

logger = logging.getLogger(__name__)

OwnerEntry = str | UserReference


# =============================================================================
# REFERENCES
# =============================================================================


def placeholder_name(user_id: str) -> str:
    """Display name for an id with no known user, e.g. 'xyz123' -> 'X User'."""
    return f"{str(user_id)[:1].upper()} User"


def placeholder_reference(user_id: str) -> UserReference:
    """Synthesize a reference for an unresolvable id. Never persisted."""
    user_id = str(user_id)
    return UserReference(id=user_id, display_name=placeholder_name(user_id), placeholder=True)


def user_reference_from_row(row: Mapping[str, Any]) -> UserReference | None:
    """
    Build a UserReference from a user row or partial user object.

    Returns None when the object has no usable id.
    """
    user_id = row.get("id")
    if _is_blank(user_id):
        return None
    user_id = str(user_id).strip()

    name = row.get("display_name") or row.get("name") or row.get("email")
    avatar = row.get("avatar_url") or row.get("avatar")
    return UserReference(
        id=user_id,
        display_name=str(name) if name else placeholder_name(user_id),
        avatar_url=avatar or None,
        email=row.get("email") or None,
        placeholder=not name,
    )


# =============================================================================
# NORMALIZATION
# =============================================================================


def _is_blank(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return True
    if isinstance(value, str):
        text = value.strip()
        return not text or text.lower() in EMPTY_ID_MARKERS
    return not value


def _coerce_entry(item: Any) -> OwnerEntry | None:
    """Turn one element of an owner list into an id string or a reference."""
    if isinstance(item, UserReference):
        return None if _is_blank(item.id) else item
    if isinstance(item, Mapping):
        return user_reference_from_row(item)
    if isinstance(item, (list, tuple, set)):
        # Nested lists only show up in corrupted rows
        return None
    if _is_blank(item):
        return None
    return str(item).strip()


def _parse_owner_string(text: str) -> list[Any]:
    text = text.strip()
    if not text or text[0] not in '["{':
        return [text]
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        # Deeply nested arrays exhaust the decoder's recursion limit
        logger.warning("Unparseable assigned_to value %.80r, treating as unassigned", text)
        return []
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, (str, Mapping)):
        return [parsed]
    return []


def normalize_owner_entries(raw: Any) -> list[OwnerEntry]:
    """
    Flatten any raw `assigned_to` encoding into an ordered list of entries.

    Entries are id strings (still to be resolved) or UserReference values for
    objects that already carried an id. Falsy values and the strings
    'undefined' / 'null' are dropped. Duplicates are kept; resolution dedups.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        candidates = _parse_owner_string(raw)
    elif isinstance(raw, (UserReference, Mapping)):
        candidates = [raw]
    elif isinstance(raw, (list, tuple)):
        candidates = list(raw)
    else:
        candidates = [raw]

    entries = []
    for item in candidates:
        entry = _coerce_entry(item)
        if entry is not None:
            entries.append(entry)
    return entries


def normalize_owner_ids(raw: Any) -> list[str]:
    """Ordered, de-duplicated owner ids from any raw encoding."""
    ids: list[str] = []
    for entry in normalize_owner_entries(raw):
        user_id = entry.id if isinstance(entry, UserReference) else entry
        if user_id not in ids:
            ids.append(user_id)
    return ids


def collect_owner_ids(tasks: Iterable[Mapping[str, Any]]) -> list[str]:
    """Ids across all tasks that need a roster lookup (bare ids only)."""
    seen: dict[str, None] = {}
    for task in tasks:
        for entry in normalize_owner_entries(task.get("assigned_to")):
            if isinstance(entry, str):
                seen.setdefault(entry, None)
    return list(seen)


# =============================================================================
# RESOLUTION
# =============================================================================


def _index_roster(roster: Iterable[Any]) -> dict[str, UserReference]:
    index: dict[str, UserReference] = {}
    for user in roster or ():
        if isinstance(user, Mapping):
            user = user_reference_from_row(user)
        if not isinstance(user, UserReference) or _is_blank(user.id):
            continue
        index.setdefault(str(user.id), user)
    return index


def resolve_owners(raw: Any, roster: Iterable[Any] = ()) -> AssignmentSet:
    """
    Resolve a raw `assigned_to` value into an AssignmentSet.

    Ids are looked up in `roster` (UserReference values or user rows) by
    string equality; unknown ids become placeholder references. Objects that
    already carry an id are taken as-is. The first occurrence of each id wins.
    Malformed input yields an empty set; this function does not raise.
    """
    index = _index_roster(roster)
    resolved = AssignmentSet()
    for entry in normalize_owner_entries(raw):
        if isinstance(entry, UserReference):
            resolved.add(entry)
        else:
            resolved.add(index.get(entry) or placeholder_reference(entry))
    return resolved


# =============================================================================
# ROSTER CACHE
# =============================================================================


class RosterCache:
    """
    Known users keyed by id, with a fixed time-to-live per entry.

    Only real users are cached; placeholders are never stored. Entries older
    than `ttl_seconds` are dropped on read, and all expired entries are
    pruned whenever new users are stored.
    """

    def __init__(
        self,
        ttl_seconds: float = ROSTER_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[UserReference, float]] = {}

    def get(self, user_id: str) -> UserReference | None:
        key = str(user_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        user, stored_at = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return user

    def put_many(self, users: Iterable[UserReference]) -> None:
        now = self._clock()
        self._prune(now)
        for user in users:
            if user.placeholder:
                continue
            self._entries[str(user.id)] = (user, now)

    def _prune(self, now: float) -> None:
        expired = [
            key
            for key, (_, stored_at) in self._entries.items()
            if now - stored_at > self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]

    def missing(self, user_ids: Iterable[str]) -> list[str]:
        """Ids with no live cache entry, in input order."""
        return [user_id for user_id in user_ids if self.get(user_id) is None]

    def lookup(self, user_ids: Iterable[str]) -> list[UserReference]:
        """Live cached references for the given ids, skipping misses."""
        found = []
        for user_id in user_ids:
            user = self.get(user_id)
            if user is not None:
                found.append(user)
        return found

    def invalidate(self, user_id: str | None = None) -> None:
        """Drop one entry, or everything when no id is given."""
        if user_id is None:
            self._entries.clear()
        else:
            self._entries.pop(str(user_id), None)

    def __len__(self) -> int:
        return len(self._entries)


# =============================================================================
# AVATAR HELPERS
# =============================================================================


def get_user_initials(name: str | None) -> str:
    """First letters of the first and last words of a name ('Ada Lovelace' -> 'AL')."""
    if not name:
        return "U"
    parts = [part for part in name.split(" ") if part]
    if not parts:
        return "U"
    if len(parts) == 1:
        return parts[0][0].upper()
    return (parts[0][0] + parts[-1][0]).upper()


def get_user_color(user_id: str | None) -> str:
    """Stable avatar color for a user id."""
    if not user_id:
        return DEFAULT_AVATAR_COLOR

    # 32-bit string hash so the same id maps to the same color everywhere
    value = 0
    for char in str(user_id):
        value = (ord(char) + ((value << 5) - value)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return AVATAR_COLORS[abs(value) % len(AVATAR_COLORS)]
