"""Storage layer for dailyflow.

This module provides an abstract storage interface and a concrete
implementation for persisting the board. The JsonStorage implementation keeps
one JSON document on disk, uses fcntl-based file locking, and replaces the
file atomically on every write.

The document is a flat key-value map:
- active_tasks_v1: list of serialized active tasks
- settings_v1: the settings record
- daylog_<day key>: one archived day
- pomodoro_<day key>: list of completed timer phases for that day
"""

import fcntl
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from dailyflow.models import SETTINGS_VERSION, DayLog, PomodoroSession, Settings, Task

logger = logging.getLogger(__name__)

ACTIVE_TASKS_KEY = "active_tasks_v1"
SETTINGS_KEY = "settings_v1"
DAY_LOG_PREFIX = "daylog_"
POMODORO_PREFIX = "pomodoro_"


def day_log_key(day_key: str) -> str:
    return f"{DAY_LOG_PREFIX}{day_key}"


def pomodoro_key(day_key: str) -> str:
    return f"{POMODORO_PREFIX}{day_key}"


class Storage(ABC):
    """Abstract base class for board storage implementations."""

    @abstractmethod
    def load_active_tasks(self) -> List[Task]:
        """Load the active (not archived) task list.

        Returns:
            List of Task objects in board order
        """
        pass

    @abstractmethod
    def save_active_tasks(self, tasks: List[Task]) -> None:
        """Replace the stored active task list.

        Args:
            tasks: Full task list to store
        """
        pass

    @abstractmethod
    def load_settings(self) -> Settings:
        """Load the settings record, defaulting every missing field."""
        pass

    @abstractmethod
    def save_settings(self, settings: Settings) -> None:
        """Store the whole settings record."""
        pass

    def get_setting(self, name: str) -> Any:
        """Read one settings field.

        Args:
            name: Settings field name (mode, dark_mode, is_premium,
                  has_seen_onboarding)

        Returns:
            The stored value, or the field default

        Raises:
            KeyError: If ``name`` is not a settings field
        """
        Settings.key_for(name)
        return getattr(self.load_settings(), name)

    def set_setting(self, name: str, value: Any) -> None:
        """Write one settings field without touching the others.

        Raises:
            KeyError: If ``name`` is not a settings field
        """
        Settings.key_for(name)
        settings = self.load_settings()
        setattr(settings, name, Settings.decode_value(name, value))
        self.save_settings(settings)

    @abstractmethod
    def save_day_log(self, log: DayLog) -> None:
        """Store a day archive, replacing any archive for the same day."""
        pass

    @abstractmethod
    def load_day_log(self, day_key: str) -> Optional[DayLog]:
        """Load the archive of one day.

        Returns:
            DayLog if the day was archived, None otherwise
        """
        pass

    @abstractmethod
    def load_all_day_logs(self) -> List[DayLog]:
        """Load every archived day, newest day key first."""
        pass

    @abstractmethod
    def append_pomodoro_session(self, session: PomodoroSession) -> None:
        """Append a completed timer phase to its day."""
        pass

    @abstractmethod
    def load_pomodoro_sessions(self, day_key: str) -> List[PomodoroSession]:
        """Load the completed timer phases of one day, oldest first."""
        pass

    @abstractmethod
    def delete(self) -> None:
        """Delete all data from storage."""
        pass


class JsonStorage(Storage):
    """JSON file-based storage implementation with file locking.

    Attributes:
        file_path: Path to the JSON storage file
    """

    def __init__(self, file_path: Optional[str] = None):
        """Initialize JsonStorage with a file path.

        Args:
            file_path: Path to the JSON file for storage. If None, uses
                      DAILYFLOW_DATA_PATH environment variable or defaults to
                      dailyflow.json
        """
        if file_path is None:
            file_path = os.environ.get("DAILYFLOW_DATA_PATH", "dailyflow.json")
        self.file_path = Path(file_path)

    def _read(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            return {}

        with open(self.file_path, "r", encoding="utf-8") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                content = f.read().strip()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        if not content:
            return {}
        return json.loads(content)

    @property
    def lock_path(self) -> Path:
        return self.file_path.with_name(self.file_path.name + ".lock")

    def _modify(self, mutate: Callable[[Dict[str, Any]], None]) -> None:
        """Apply ``mutate`` to the document and write it atomically.

        Writers serialize on a sidecar lock file, so a read-modify-write
        cycle never loses a concurrent change.
        """
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.lock_path, "w") as lock:
            fcntl.flock(lock.fileno(), fcntl.LOCK_EX)
            try:
                data = self._read()
                mutate(data)
                fd, tmp_path = tempfile.mkstemp(
                    dir=str(self.file_path.parent), prefix=self.file_path.name, suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f, ensure_ascii=False, indent=2)
                        f.flush()
                        os.fsync(f.fileno())
                    os.replace(tmp_path, self.file_path)
                except BaseException:
                    if os.path.exists(tmp_path):
                        os.unlink(tmp_path)
                    raise
            finally:
                fcntl.flock(lock.fileno(), fcntl.LOCK_UN)

    def _update(self, changes: Dict[str, Any]) -> None:
        self._modify(lambda data: data.update(changes))

    def load_active_tasks(self) -> List[Task]:
        raw = self._read().get(ACTIVE_TASKS_KEY) or []
        return [Task.from_dict(item) for item in raw]

    def save_active_tasks(self, tasks: List[Task]) -> None:
        self._update({ACTIVE_TASKS_KEY: [task.to_dict() for task in tasks]})

    def load_settings(self) -> Settings:
        return Settings.from_dict(self._read().get(SETTINGS_KEY))

    def save_settings(self, settings: Settings) -> None:
        self._update({SETTINGS_KEY: settings.to_dict()})

    def set_setting(self, name: str, value: Any) -> None:
        key = Settings.key_for(name)
        encoded = Settings.encode_value(name, value)

        def mutate(data: Dict[str, Any]) -> None:
            existing = data.get(SETTINGS_KEY)
            record = dict(existing) if isinstance(existing, dict) else {}
            record[key] = encoded
            record.setdefault("version", SETTINGS_VERSION)
            data[SETTINGS_KEY] = record

        self._modify(mutate)

    def save_day_log(self, log: DayLog) -> None:
        self._update({day_log_key(log.day_key): log.to_dict()})
        logger.info("Archived day %s (%d tasks)", log.day_key, len(log.tasks_snapshot))

    def load_day_log(self, day_key: str) -> Optional[DayLog]:
        raw = self._read().get(day_log_key(day_key))
        if not isinstance(raw, dict):
            return None
        return DayLog.from_dict(raw)

    def load_all_day_logs(self) -> List[DayLog]:
        data = self._read()
        logs = [
            DayLog.from_dict(value)
            for key, value in data.items()
            if key.startswith(DAY_LOG_PREFIX) and isinstance(value, dict)
        ]
        logs.sort(key=lambda log: log.day_key, reverse=True)
        return logs

    def append_pomodoro_session(self, session: PomodoroSession) -> None:
        key = pomodoro_key(session.day_key)

        def mutate(data: Dict[str, Any]) -> None:
            data[key] = list(data.get(key) or []) + [session.to_dict()]

        self._modify(mutate)
        logger.info(
            "Logged %s session of %d min for %s", session.phase.value, session.minutes, session.day_key
        )

    def load_pomodoro_sessions(self, day_key: str) -> List[PomodoroSession]:
        raw = self._read().get(pomodoro_key(day_key)) or []
        return [PomodoroSession.from_dict(item) for item in raw]

    def delete(self) -> None:
        """Delete the JSON storage file.

        If the file doesn't exist, this method does nothing.
        """
        for path in (self.file_path, self.lock_path):
            if path.exists():
                path.unlink()
