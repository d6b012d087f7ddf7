"""
Outcome types for timeline aggregation.

Each collaborator call made during aggregation produces a FetchOutcome that
either carries a value or a FetchError. The aggregator folds these into a
Timeline instead of letting exceptions escape.
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from models.events import CalendarItem

T = TypeVar("T")

# Source labels used in FetchError.source
PERSONAL_SOURCE = "personal_events"
WORKSPACES_SOURCE = "workspaces"
PROJECTS_SOURCE = "projects"
TASKS_SOURCE = "tasks"
TEAMMATES_SOURCE = "teammates"
TEAMMATE_EVENTS_SOURCE = "teammate_events"
ROSTER_SOURCE = "roster"


@dataclass(frozen=True)
class FetchError:
    """A collaborator call that raised or returned unusable data."""

    source: str
    message: str
    scope_id: str | None = None  # workspace/project id for per-branch failures


@dataclass(frozen=True)
class FetchOutcome(Generic[T]):
    """Result of one collaborator call: either `value` or `error` is set."""

    value: T | None = None
    error: FetchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        if self.error is not None or self.value is None:
            return default
        return self.value


@dataclass
class Timeline:
    """Aggregated items plus the failures recorded while building them."""

    items: list[CalendarItem] = field(default_factory=list)
    errors: list[FetchError] = field(default_factory=list)

    @property
    def personal_events_failed(self) -> bool:
        """Personal events are the primary source; callers surface a banner when they fail."""
        return any(e.source == PERSONAL_SOURCE for e in self.errors)
