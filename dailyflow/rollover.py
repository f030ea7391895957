"""End-of-day rollover.

Closing a day archives the board as a DayLog with the user's mood, then
starts the next day with every unfinished task carried over. Finished tasks
only live on in the archive.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from dailyflow.board import TaskBoard
from dailyflow.models import DayLog, Mood, Status, day_key
from dailyflow.timer import TimerController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaySummary:
    """What happened to the board when a day was closed."""

    day_key: str
    mood: Mood
    done_count: int
    total_count: int
    carried_count: int


def end_day(
    board: TaskBoard,
    timer: Optional[TimerController],
    mood: Optional[Mood],
    clock: Optional[Callable[[], datetime]] = None,
) -> Optional[DaySummary]:
    """Archive today's board and carry unfinished tasks into tomorrow.

    The timer is stopped and rewound first; a phase in progress is dropped
    without being logged. Without a mood nothing else happens.

    The archive is written before the active list is replaced, so an
    interruption between the two leaves the closed day recoverable.

    Args:
        board: Board of the day being closed
        timer: Pomodoro timer to freeze and resync, if any
        mood: How the day went; None aborts the rollover
        clock: Source of the current time. Defaults to the board's clock.

    Returns:
        DaySummary of the closed day, or None if aborted
    """
    if timer is not None:
        timer.pause()
        timer.reset()

    if mood is None:
        return None

    now = (clock or board.clock)()
    closed_day = day_key(now)
    tasks = board.tasks

    if board.storage.load_day_log(closed_day) is not None:
        logger.warning("Day %s was already archived; replacing its log", closed_day)

    log = DayLog(
        day_key=closed_day,
        mood=mood,
        mode=board.mode,
        tasks_snapshot=tuple(task.to_dict() for task in tasks),
        archived_at=now,
    )
    board.storage.save_day_log(log)

    carried = [
        task.copy(
            updated_at=now,
            rolled_over=True,
            carried_over_from_day=closed_day,
            committed_today=False,
        )
        for task in tasks
        if task.status != Status.DONE
    ]
    board.replace_tasks(carried)

    if timer is not None:
        timer.sync()

    summary = DaySummary(
        day_key=closed_day,
        mood=mood,
        done_count=log.done_count,
        total_count=len(tasks),
        carried_count=len(carried),
    )
    logger.info(
        "Closed %s: %d/%d done, %d carried over",
        closed_day,
        summary.done_count,
        summary.total_count,
        summary.carried_count,
    )
    return summary
