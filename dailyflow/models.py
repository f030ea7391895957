"""Core models for dailyflow.

This module defines the core data structures of the task board:
- Task: A dataclass representing a single board item
- DayLog: An immutable archive of one closed day
- PomodoroSession: An immutable record of one completed timer phase
- Settings: The installation-wide settings record
- Status, Focus, Mood, FlowMode, Phase: Enums for the fields above
"""

from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

DAY_KEY_FORMAT = "%Y-%m-%d"
SETTINGS_VERSION = 1


class Status(Enum):
    """Board column of a task."""

    TODO = "todo"
    DOING = "doing"
    DONE = "done"


class Focus(Enum):
    """Life area a task belongs to."""

    WORK = "work"
    PERSONAL = "personal"
    LEARNING = "learning"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Mood(Enum):
    """How the user felt about a closed day."""

    GOOD = "good"
    MEH = "meh"
    HARD = "hard"

    @property
    def emoji(self) -> str:
        return _MOOD_EMOJI[self]


_MOOD_EMOJI = {
    Mood.GOOD: "\U0001F642",
    Mood.MEH: "\U0001F610",
    Mood.HARD: "\U0001F641",
}


class FlowMode(Enum):
    """Workflow methodology driving the board rules."""

    SCRUM = "scrum"
    KANBAN = "kanban"
    XP = "xp"

    @property
    def label(self) -> str:
        return "XP" if self is FlowMode.XP else self.value.capitalize()


class Phase(Enum):
    """Pomodoro timer phase."""

    WORK = "work"
    BREAK = "break"


def day_key(moment: Optional[Union[datetime, date]] = None) -> str:
    """Return the local calendar date of ``moment`` as ``YYYY-MM-DD``.

    Args:
        moment: Date or datetime to format. Defaults to now.

    Returns:
        The day key string
    """
    if moment is None:
        moment = datetime.now()
    return moment.strftime(DAY_KEY_FORMAT)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


@dataclass
class Task:
    """A task on the active board.

    Attributes:
        id: Opaque stable identifier
        title: Task description/title
        status: Current board column
        focus: Life area of the task
        created_at: Timestamp when the task was created
        updated_at: Timestamp of the last mutation
        rolled_over: True once the task was carried into a later day
        carried_over_from_day: Day key the task was last carried from
        committed_today: Scrum daily commitment flag
    """

    id: str
    title: str
    status: Status = Status.TODO
    focus: Focus = Focus.WORK
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None
    rolled_over: bool = False
    carried_over_from_day: Optional[str] = None
    committed_today: bool = False

    def __post_init__(self):
        if self.updated_at is None:
            self.updated_at = self.created_at

    def copy(self, **changes: Any) -> "Task":
        """Return a new Task with ``changes`` applied."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
            "focus": self.focus.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "rolledOver": self.rolled_over,
            "carriedOverFromDay": self.carried_over_from_day,
            "committedToday": self.committed_today,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        created_at = datetime.fromisoformat(data["createdAt"])
        return cls(
            id=str(data["id"]),
            title=data["title"],
            status=Status(data["status"]),
            focus=Focus(data["focus"]),
            created_at=created_at,
            updated_at=_parse_time(data.get("updatedAt")) or created_at,
            rolled_over=bool(data.get("rolledOver", False)),
            carried_over_from_day=data.get("carriedOverFromDay"),
            committed_today=bool(data.get("committedToday", False)),
        )


@dataclass(frozen=True)
class DayLog:
    """Archive of one closed day.

    The snapshot holds serialized task states taken at archival time, never
    live Task objects. Each entry is a read-only copy.
    """

    day_key: str
    mood: Mood
    mode: FlowMode
    tasks_snapshot: Tuple[Mapping[str, Any], ...]
    archived_at: datetime

    def __post_init__(self):
        object.__setattr__(
            self,
            "tasks_snapshot",
            tuple(MappingProxyType(dict(t)) for t in self.tasks_snapshot),
        )

    @property
    def done_count(self) -> int:
        return sum(1 for t in self.tasks_snapshot if t.get("status") == Status.DONE.value)

    @property
    def committed_count(self) -> int:
        return sum(1 for t in self.tasks_snapshot if t.get("committedToday", False))

    @property
    def committed_done_count(self) -> int:
        return sum(
            1
            for t in self.tasks_snapshot
            if t.get("committedToday", False) and t.get("status") == Status.DONE.value
        )

    def snapshot_tasks(self):
        """Rebuild the archived tasks as Task objects."""
        return [Task.from_dict(t) for t in self.tasks_snapshot]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dayKey": self.day_key,
            "mood": self.mood.value,
            "mode": self.mode.value,
            "tasksSnapshot": [dict(t) for t in self.tasks_snapshot],
            "archivedAt": self.archived_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DayLog":
        return cls(
            day_key=data["dayKey"],
            mood=Mood(data["mood"]),
            mode=FlowMode(data["mode"]),
            tasks_snapshot=tuple(dict(t) for t in data["tasksSnapshot"]),
            archived_at=datetime.fromisoformat(data["archivedAt"]),
        )


@dataclass(frozen=True)
class PomodoroSession:
    """One completed work or break phase."""

    day_key: str
    task_id: Optional[str]
    phase: Phase
    minutes: int
    started_at: datetime
    ended_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dayKey": self.day_key,
            "taskId": self.task_id,
            "phase": self.phase.value,
            "minutes": self.minutes,
            "startedAt": self.started_at.isoformat(),
            "endedAt": self.ended_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PomodoroSession":
        return cls(
            day_key=data["dayKey"],
            task_id=data.get("taskId"),
            phase=Phase(data["phase"]),
            minutes=int(data["minutes"]),
            started_at=datetime.fromisoformat(data["startedAt"]),
            ended_at=datetime.fromisoformat(data["endedAt"]),
        )


# Serialized key for each Settings field.
_SETTINGS_KEYS = {
    "mode": "mode",
    "dark_mode": "darkMode",
    "is_premium": "isPremium",
    "has_seen_onboarding": "hasSeenOnboarding",
}


@dataclass
class Settings:
    """Installation-wide settings record.

    Every field has a default, so a missing or partial stored record still
    yields a complete Settings object.

    Attributes:
        mode: Active workflow mode
        dark_mode: Dark theme flag
        is_premium: Premium entitlement flag
        has_seen_onboarding: Whether onboarding was completed
        version: Schema version of the stored record
    """

    mode: FlowMode = FlowMode.KANBAN
    dark_mode: bool = False
    is_premium: bool = False
    has_seen_onboarding: bool = False
    version: int = SETTINGS_VERSION

    @classmethod
    def field_names(cls):
        return [f.name for f in fields(cls) if f.name != "version"]

    @staticmethod
    def key_for(name: str) -> str:
        """Return the serialized key of a settings field.

        Raises:
            KeyError: If ``name`` is not a settings field
        """
        return _SETTINGS_KEYS[name]

    @staticmethod
    def encode_value(name: str, value: Any) -> Any:
        if name == "mode":
            return FlowMode(value).value
        return bool(value)

    @staticmethod
    def decode_value(name: str, value: Any) -> Any:
        if name == "mode":
            return FlowMode(value)
        return bool(value)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        for name in self.field_names():
            data[self.key_for(name)] = self.encode_value(name, getattr(self, name))
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        if not isinstance(data, dict):
            return cls()

        mode = FlowMode.KANBAN
        raw_mode = data.get("mode")
        if isinstance(raw_mode, str):
            try:
                mode = FlowMode(raw_mode)
            except ValueError:
                pass

        try:
            version = int(data.get("version", SETTINGS_VERSION))
        except (TypeError, ValueError):
            version = SETTINGS_VERSION

        def flag(key: str) -> bool:
            value = data.get(key)
            return value if isinstance(value, bool) else False

        return cls(
            mode=mode,
            dark_mode=flag("darkMode"),
            is_premium=flag("isPremium"),
            has_seen_onboarding=flag("hasSeenOnboarding"),
            version=version,
        )
