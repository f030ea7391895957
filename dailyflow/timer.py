"""Pomodoro timer for the task board.

The timer alternates between a work phase and a break phase. While running
it is driven by a Ticker that calls TimerController.tick() once per second;
tick() is the whole state machine. When a phase runs out the completed phase
is logged as a PomodoroSession, the other phase begins, and the timer keeps
going unless a new work phase has no Doing task to work on.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from dailyflow.models import Phase, PomodoroSession, Task

logger = logging.getLogger(__name__)

WORK_MINUTES = 25
BREAK_MINUTES = 5

NO_TASK_ERROR = "Start a Doing task to use Pomodoro."


class Ticker(ABC):
    """Calls a callback at a fixed interval until cancelled."""

    @abstractmethod
    def start(self, callback: Callable[[], None]) -> None:
        """Begin calling ``callback``, replacing any earlier one."""
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop calling the callback. Must take effect before returning."""
        pass


class AsyncioTicker(Ticker):
    """Ticker running on the current asyncio event loop.

    Attributes:
        interval: Seconds between two callback calls
    """

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: Callable[[], None]) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(callback))

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, callback: Callable[[], None]) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                try:
                    callback()
                except Exception:
                    logger.exception("Tick callback failed")
        except asyncio.CancelledError:
            logger.debug("Ticker cancelled")
            raise


class TimerController:
    """Work/break countdown bound to one Doing task.

    Attributes:
        phase: Current phase
        remaining_seconds: Seconds left in the current phase
        running: Whether ticks count down
        phase_started_at: When the current phase first started running
        selected_task_id: Doing task the work phase is credited to
    """

    def __init__(
        self,
        day_key_provider: Callable[[], str],
        doing_tasks_provider: Callable[[], List[Task]],
        append_session: Callable[[PomodoroSession], None],
        work_minutes: int = WORK_MINUTES,
        break_minutes: int = BREAK_MINUTES,
        ticker: Optional[Ticker] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the timer in a paused work phase.

        Args:
            day_key_provider: Returns the day key sessions are logged under
            doing_tasks_provider: Returns the board's current Doing tasks
            append_session: Persists one completed phase
            work_minutes: Length of a work phase
            break_minutes: Length of a break phase
            ticker: Drives tick() while running. If None, the caller calls
                   tick() itself.
            clock: Source of the current time
        """
        if work_minutes <= 0 or break_minutes <= 0:
            raise ValueError("Phase lengths must be positive")

        self.day_key_provider = day_key_provider
        self.doing_tasks_provider = doing_tasks_provider
        self.append_session = append_session
        self.work_minutes = work_minutes
        self.break_minutes = break_minutes
        self.ticker = ticker
        self.clock = clock

        self.phase = Phase.WORK
        self.remaining_seconds = self.phase_total_seconds
        self.running = False
        self.phase_started_at: Optional[datetime] = None
        self.selected_task_id: Optional[str] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self._listeners: List[Callable[["TimerController"], None]] = []

        self.sync()

    def subscribe(self, listener: Callable[["TimerController"], None]) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[["TimerController"], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def phase_minutes(self) -> int:
        return self.work_minutes if self.phase == Phase.WORK else self.break_minutes

    @property
    def phase_total_seconds(self) -> int:
        return self.phase_minutes * 60

    @property
    def phase_elapsed_seconds(self) -> int:
        total = self.phase_total_seconds
        return max(0, min(total, total - self.remaining_seconds))

    @property
    def work_elapsed_seconds(self) -> int:
        """Live work seconds not yet logged; 0 during a break."""
        return self.phase_elapsed_seconds if self.phase == Phase.WORK else 0

    @property
    def remaining_text(self) -> str:
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def phase_label(self) -> str:
        return "Work" if self.phase == Phase.WORK else "Break"

    def sync(self) -> None:
        """Keep the selected task pointing at a current Doing task.

        Call this whenever the set of Doing tasks may have changed.
        """
        doing = self.doing_tasks_provider()
        if not doing:
            self.selected_task_id = None
        elif not any(t.id == self.selected_task_id for t in doing):
            self.selected_task_id = doing[0].id
        self._notify()

    def select_task(self, task_id: str) -> bool:
        """Credit the work phase to a Doing task.

        Returns:
            False, leaving the selection unchanged, if no Doing task has
            this id
        """
        if not any(t.id == task_id for t in self.doing_tasks_provider()):
            logger.info("Timer task %s refused: not in Doing", task_id)
            return False
        self.selected_task_id = task_id
        self._notify()
        return True

    def start(self, on_error: Optional[Callable[[str], None]] = None) -> bool:
        """Start or resume the countdown.

        A work phase needs a Doing task; without one ``on_error`` receives
        NO_TASK_ERROR and nothing changes.

        Returns:
            True if the timer is running afterwards
        """
        if on_error is not None:
            self.on_error = on_error
        if self.running:
            return True

        self.sync()
        if self.phase == Phase.WORK and self.selected_task_id is None:
            logger.info("Timer start refused: no Doing task")
            if self.on_error is not None:
                self.on_error(NO_TASK_ERROR)
            return False

        self.running = True
        if self.phase_started_at is None:
            self.phase_started_at = self.clock()
        if self.ticker is not None:
            self.ticker.start(self.tick)
        self._notify()
        return True

    def pause(self) -> None:
        """Stop counting down, keeping the remaining time."""
        if not self.running:
            return
        self.running = False
        if self.ticker is not None:
            self.ticker.cancel()
        self._notify()

    def reset(self) -> None:
        """Stop and rewind the current phase. Partial time is not logged."""
        self.running = False
        if self.ticker is not None:
            self.ticker.cancel()
        self.phase_started_at = None
        self.remaining_seconds = self.phase_total_seconds
        self._notify()

    def tick(self) -> None:
        """Advance the countdown by one second.

        If logging a finished phase fails the timer stops at zero and the
        error propagates; starting again retries the log.
        """
        if not self.running:
            return

        self.remaining_seconds = max(0, self.remaining_seconds - 1)
        if self.remaining_seconds > 0:
            self._notify()
            return

        self._complete_phase()

    def _complete_phase(self) -> None:
        now = self.clock()
        session = PomodoroSession(
            day_key=self.day_key_provider(),
            task_id=self.selected_task_id if self.phase == Phase.WORK else None,
            phase=self.phase,
            minutes=self.phase_minutes,
            started_at=self.phase_started_at or now,
            ended_at=now,
        )
        try:
            self.append_session(session)
        except Exception:
            # Stay at zero so the next start retries the log.
            self.running = False
            if self.ticker is not None:
                self.ticker.cancel()
            self._notify()
            raise

        self.phase = Phase.BREAK if self.phase == Phase.WORK else Phase.WORK
        self.remaining_seconds = self.phase_total_seconds
        self.phase_started_at = now

        self.sync()
        if self.phase == Phase.WORK and self.selected_task_id is None:
            logger.info("Timer stopped after break: no Doing task")
            self.running = False
            if self.ticker is not None:
                self.ticker.cancel()
        self._notify()
