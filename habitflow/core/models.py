import dataclasses
from datetime import UTC, datetime
from typing import Any

from .types import UNSET, Unset


def _now() -> datetime:
    return datetime.now(UTC)


@dataclasses.dataclass(frozen=True)
class Habit:
    id: str
    name: str
    icon: str
    color: str
    frequency: str
    target_count: int = 1
    description: str | None = None
    created_at: datetime = dataclasses.field(default_factory=_now)
    archived: bool = False


@dataclasses.dataclass(frozen=True)
class HabitCompletion:
    id: str
    habit_id: str
    count: int = 1
    completed_at: datetime = dataclasses.field(default_factory=_now)
    notes: str | None = None


@dataclasses.dataclass(frozen=True)
class MoodEntry:
    id: str
    mood_level: int
    emoji: str
    journal: str | None = None
    tags: list[str] = dataclasses.field(default_factory=list, hash=False)
    created_at: datetime = dataclasses.field(default_factory=_now)


@dataclasses.dataclass(frozen=True)
class PomodoroSession:
    id: str
    duration: int
    session_type: str
    habit_id: str | None = None
    completed: bool = False
    started_at: datetime = dataclasses.field(default_factory=_now)
    ended_at: datetime | None = None


@dataclasses.dataclass(frozen=True)
class Achievement:
    id: str
    achievement_type: str
    unlocked_at: datetime = dataclasses.field(default_factory=_now)
    data: Any = dataclasses.field(default=None, hash=False)


def present_fields(update: "HabitUpdate | MoodUpdate") -> dict[str, object]:
    """Slots of an update request that are set, in declaration order."""
    return {
        f.name: getattr(update, f.name)
        for f in dataclasses.fields(update)
        if getattr(update, f.name) is not UNSET
    }


@dataclasses.dataclass(frozen=True)
class HabitUpdate:
    name: str | Unset = UNSET
    description: str | None | Unset = UNSET
    icon: str | Unset = UNSET
    color: str | Unset = UNSET
    archived: bool | Unset = UNSET


@dataclasses.dataclass(frozen=True)
class MoodUpdate:
    """`tags` replaces the whole tag list when set."""

    mood_level: int | Unset = UNSET
    emoji: str | Unset = UNSET
    journal: str | None | Unset = UNSET
    tags: list[str] | Unset = dataclasses.field(default=UNSET, hash=False)
