"""Task board for managing the active day.

This module provides the TaskBoard class that owns the live task list. It
checks every move against the rules of the active flow mode, persists the
full list after each change, and notifies subscribers so views and the
Pomodoro timer can follow along.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from dailyflow import rules
from dailyflow.models import FlowMode, Focus, Settings, Status, Task
from dailyflow.storage import JsonStorage, Storage

logger = logging.getLogger(__name__)

FREE_TASK_LIMIT = 15

TASK_LIMIT_REACHED = (
    f"Task limit reached ({FREE_TASK_LIMIT} tasks). Upgrade to Pro for unlimited tasks."
)
TASK_NOT_FOUND = "Task not found."
ONE_STEP_ONLY = "Tasks move one step at a time."
SCRUM_ONLY = "Commitments are only used in Scrum mode."

# Moves allowed by the board: one step along todo <-> doing <-> done.
_ALLOWED_MOVES = {
    (Status.TODO, Status.DOING),
    (Status.DOING, Status.DONE),
    (Status.DOING, Status.TODO),
    (Status.DONE, Status.DOING),
}


@dataclass
class Outcome:
    """Result of a board operation.

    Attributes:
        ok: True if the board changed
        message: User-facing reason when a rule blocked the operation; None
                 for silent no-ops such as a blank title
        task: The affected task, when there is one
    """

    ok: bool
    message: Optional[str] = None
    task: Optional[Task] = None

    def __bool__(self) -> bool:
        return self.ok


def new_task_id() -> str:
    return uuid.uuid4().hex[:8]


class TaskBoard:
    """The active day's task board.

    Attributes:
        storage: Storage backend for persisting tasks and settings
        settings: Settings record in use; mode and premium changes go
                  through the board so they are persisted
    """

    def __init__(
        self,
        storage: Optional[Storage] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize TaskBoard and load the active tasks.

        Args:
            storage: Storage implementation to use. If None, uses JsonStorage
                    with default file path.
            settings: Settings to use. If None, loads them from storage.
            clock: Source of the current time
        """
        self.storage = storage or JsonStorage()
        self.settings = settings if settings is not None else self.storage.load_settings()
        self.clock = clock
        self._tasks: List[Task] = self.storage.load_active_tasks()
        self._listeners: List[Callable[["TaskBoard"], None]] = []

    # Settings

    @property
    def mode(self) -> FlowMode:
        return self.settings.mode

    @property
    def is_premium(self) -> bool:
        return self.settings.is_premium

    def set_mode(self, mode: FlowMode) -> None:
        """Switch the flow mode.

        Limits only gate new moves; tasks already in Doing or committed stay
        where they are.
        """
        self.settings.mode = mode
        self.storage.set_setting("mode", mode)
        logger.info("Flow mode set to %s", mode.value)
        self._notify()

    def set_premium(self, is_premium: bool) -> None:
        self.settings.is_premium = is_premium
        self.storage.set_setting("is_premium", is_premium)
        self._notify()

    # Subscribers

    def subscribe(self, listener: Callable[["TaskBoard"], None]) -> None:
        """Register a callback invoked after every board change."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[["TaskBoard"], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _persist(self) -> None:
        self.storage.save_active_tasks(self._tasks)
        self._notify()

    # Reads

    @property
    def tasks(self) -> List[Task]:
        """Tasks in board order. The list is a copy; the tasks are not."""
        return list(self._tasks)

    def get_task(self, task_id: str) -> Optional[Task]:
        """Get a task by ID.

        Returns:
            Task object if found, None otherwise
        """
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def doing_tasks(self) -> List[Task]:
        return [t for t in self._tasks if t.status == Status.DOING]

    def counts(self) -> Dict[str, int]:
        """Return per-status counts plus commitment counters."""
        result = {status.value: 0 for status in Status}
        for task in self._tasks:
            result[task.status.value] += 1
        result["committed"] = rules.count_committed(self._tasks)
        result["committed_done"] = sum(
            1 for t in self._tasks if t.committed_today and t.status == Status.DONE
        )
        return result

    def visible_tasks(
        self,
        focus: Optional[Focus] = None,
        query: str = "",
        committed_only: bool = False,
        rolled_over_only: bool = False,
        status: Optional[Status] = None,
    ) -> List[Task]:
        """Filter the board the way the board views do.

        Args:
            focus: Only tasks of this focus area
            query: Case-insensitive substring of the title
            committed_only: Only tasks committed for today
            rolled_over_only: Only tasks carried over from an earlier day
            status: Only tasks in this column

        Returns:
            Matching tasks in board order
        """
        needle = query.strip().lower()
        result = []
        for task in self._tasks:
            if focus is not None and task.focus != focus:
                continue
            if needle and needle not in task.title.lower():
                continue
            if committed_only and not task.committed_today:
                continue
            if rolled_over_only and not task.rolled_over:
                continue
            if status is not None and task.status != status:
                continue
            result.append(task)
        return result

    # Mutations

    def add(self, title: str, focus: Focus = Focus.WORK) -> Outcome:
        """Add a new task to the To do column.

        Args:
            title: Task title; surrounding whitespace is dropped
            focus: Focus area of the task

        Returns:
            Outcome carrying the created task, or the reason it was refused
        """
        title = title.strip()
        if not title:
            return Outcome(False)

        if not self.is_premium and len(self._tasks) >= FREE_TASK_LIMIT:
            logger.info("Add refused: free task limit of %d reached", FREE_TASK_LIMIT)
            return Outcome(False, TASK_LIMIT_REACHED)

        now = self.clock()
        task = Task(
            id=new_task_id(),
            title=title,
            status=Status.TODO,
            focus=focus,
            created_at=now,
            updated_at=now,
        )
        self._tasks.append(task)
        self._persist()
        return Outcome(True, task=task)

    def edit(self, task_id: str, title: str, focus: Optional[Focus] = None) -> Outcome:
        """Rename a task and optionally move it to another focus area.

        A blank title leaves the task untouched.
        """
        task = self.get_task(task_id)
        if task is None:
            return Outcome(False, TASK_NOT_FOUND)

        title = title.strip()
        if not title:
            return Outcome(False, task=task)

        task.title = title
        if focus is not None:
            task.focus = focus
        task.updated_at = self.clock()
        self._persist()
        return Outcome(True, task=task)

    def delete(self, task_id: str) -> Outcome:
        """Remove a task.

        The returned outcome carries the removed task; passing it to
        restore() undoes the deletion.
        """
        task = self.get_task(task_id)
        if task is None:
            return Outcome(False, TASK_NOT_FOUND)

        self._tasks.remove(task)
        self._persist()
        return Outcome(True, task=task)

    def restore(self, task: Task) -> Outcome:
        """Re-insert a previously deleted task as it was."""
        if self.get_task(task.id) is not None:
            return Outcome(False, task=task)

        self._tasks.append(task)
        self._persist()
        return Outcome(True, task=task)

    def toggle_commit(self, task_id: str) -> Outcome:
        """Flip a task's daily commitment (Scrum mode only)."""
        task = self.get_task(task_id)
        if task is None:
            return Outcome(False, TASK_NOT_FOUND)

        if self.mode != FlowMode.SCRUM:
            return Outcome(False, SCRUM_ONLY, task)

        committing = not task.committed_today
        if committing and not rules.can_commit_more(self._tasks, self.mode):
            logger.info("Commit refused for %s: daily limit reached", task.id)
            return Outcome(False, rules.BLOCKED_COMMIT, task)

        task.committed_today = committing
        task.updated_at = self.clock()
        self._persist()
        return Outcome(True, task=task)

    def transition(self, task_id: str, target: Status) -> Outcome:
        """Move a task one column along todo <-> doing <-> done.

        Entering Doing from To do is gated by the WIP limit of the active
        mode; every other allowed move is unconditional.
        """
        task = self.get_task(task_id)
        if task is None:
            return Outcome(False, TASK_NOT_FOUND)

        if (task.status, target) not in _ALLOWED_MOVES:
            return Outcome(False, ONE_STEP_ONLY, task)

        if (
            task.status == Status.TODO
            and target == Status.DOING
            and not rules.can_move_to_doing(self._tasks, self.mode)
        ):
            logger.info("Move to doing refused for %s: WIP limit", task.id)
            return Outcome(False, rules.BLOCKED_WIP, task)

        task.status = target
        task.updated_at = self.clock()
        self._persist()
        return Outcome(True, task=task)

    def to_todo(self, task_id: str) -> Outcome:
        return self.transition(task_id, Status.TODO)

    def to_doing(self, task_id: str) -> Outcome:
        return self.transition(task_id, Status.DOING)

    def to_done(self, task_id: str) -> Outcome:
        return self.transition(task_id, Status.DONE)

    def replace_tasks(self, tasks: List[Task]) -> None:
        """Swap in a new active task list, as the day rollover does."""
        self._tasks = list(tasks)
        self._persist()
