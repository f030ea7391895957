"""Reading back archived days and focus time."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dailyflow.models import DayLog, FlowMode, Mood, Phase, PomodoroSession
from dailyflow.storage import Storage
from dailyflow.timer import TimerController

HISTORY_DAYS_FREE = 7
HISTORY_DAYS_PREMIUM = 30


@dataclass
class HistoryStats:
    """Totals over the most recent archived days.

    Attributes:
        days: Number of archived days counted
        total_done: Tasks finished over those days
        average_done: Finished tasks per archived day
        pomodoros: Completed work phases over those days
        mood_counts: Days per mood
        most_common_mood: Most frequent mood, None without any days
    """

    days: int = 0
    total_done: int = 0
    average_done: float = 0.0
    pomodoros: int = 0
    mood_counts: Dict[Mood, int] = field(default_factory=lambda: {m: 0 for m in Mood})
    most_common_mood: Optional[Mood] = None


@dataclass
class DayDetail:
    log: DayLog
    sessions: List[PomodoroSession]

    @property
    def focus_minutes(self) -> int:
        return work_minutes(self.sessions)

    @property
    def work_sessions(self) -> int:
        return sum(1 for s in self.sessions if s.phase == Phase.WORK)


def history_window(premium: bool) -> int:
    return HISTORY_DAYS_PREMIUM if premium else HISTORY_DAYS_FREE


def filter_logs(logs: List[DayLog], mode: Optional[FlowMode] = None) -> List[DayLog]:
    if mode is None:
        return list(logs)
    return [log for log in logs if log.mode == mode]


def work_minutes(sessions: List[PomodoroSession]) -> int:
    return sum(s.minutes for s in sessions if s.phase == Phase.WORK)


def compute_stats(
    storage: Storage, premium: bool, logs: Optional[List[DayLog]] = None
) -> HistoryStats:
    """Summarize the last 7 archived days (30 for premium).

    Args:
        storage: Storage to read logs and sessions from
        premium: Whether the installation has the premium entitlement
        logs: Logs to summarize, newest first. Defaults to every stored log.

    Returns:
        HistoryStats over the newest days in the window
    """
    if logs is None:
        logs = storage.load_all_day_logs()
    recent = logs[: history_window(premium)]

    stats = HistoryStats(days=len(recent))
    for log in recent:
        stats.total_done += log.done_count
        stats.mood_counts[log.mood] += 1
        stats.pomodoros += sum(
            1 for s in storage.load_pomodoro_sessions(log.day_key) if s.phase == Phase.WORK
        )

    if recent:
        stats.average_done = stats.total_done / len(recent)
        # Ties go to the mood listed last.
        best = max(stats.mood_counts.values())
        stats.most_common_mood = next(
            m for m in reversed(list(Mood)) if stats.mood_counts[m] == best
        )
    return stats


def day_detail(storage: Storage, day_key: str) -> Optional[DayDetail]:
    """Look up an archived day.

    Returns:
        DayDetail with the day's sessions, or None if the day was never
        archived
    """
    log = storage.load_day_log(day_key)
    if log is None:
        return None
    return DayDetail(log=log, sessions=storage.load_pomodoro_sessions(day_key))


def focus_minutes_today(
    storage: Storage, day_key: str, timer: Optional[TimerController] = None
) -> int:
    """Logged work minutes of a day plus the running work phase, if any."""
    minutes = work_minutes(storage.load_pomodoro_sessions(day_key))
    if timer is not None:
        minutes += timer.work_elapsed_seconds // 60
    return minutes
