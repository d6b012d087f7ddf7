"""
User identity models used by owner resolution.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator


@dataclass(frozen=True)
class UserReference:
    """Resolved identity. `placeholder` marks a reference synthesized from a bare id."""

    id: str
    display_name: str
    avatar_url: str | None = None
    email: str | None = None
    placeholder: bool = False


class AssignmentSet:
    """
    Ordered set of UserReference keyed by string id.

    Order is the insertion order of each id's first occurrence; adding an id
    that is already present is a no-op.
    """

    def __init__(self, members: Iterable[UserReference] = ()):
        self._members: dict[str, UserReference] = {}
        for member in members:
            self.add(member)

    def add(self, member: UserReference) -> bool:
        """Add a member unless its id is already present. Returns True if added."""
        key = str(member.id)
        if key in self._members:
            return False
        self._members[key] = member
        return True

    @property
    def ids(self) -> list[str]:
        return list(self._members)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, UserReference):
            item = item.id
        return str(item) in self._members

    def __iter__(self) -> Iterator[UserReference]:
        return iter(self._members.values())

    def __len__(self) -> int:
        return len(self._members)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssignmentSet):
            return NotImplemented
        return list(self) == list(other)

    def __repr__(self) -> str:
        return f"AssignmentSet({list(self)!r})"
