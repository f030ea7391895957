"""Workflow mode rules.

Each flow mode limits how many tasks may sit in Doing at once (WIP limit)
and how many tasks may be committed for the day. The functions here only
answer whether a move is allowed; callers decide what to do with a refusal.
"""

from typing import Iterable, Optional

from dailyflow.models import FlowMode, Status, Task

BLOCKED_WIP = "WIP limit is protecting you."
BLOCKED_COMMIT = "Commit limit reached (3 per day)."

_WIP_LIMITS = {
    FlowMode.KANBAN: 2,
    FlowMode.XP: 1,
    FlowMode.SCRUM: None,
}

_COMMIT_LIMITS = {
    FlowMode.SCRUM: 3,
}


def wip_limit(mode: FlowMode) -> Optional[int]:
    """Return the maximum number of Doing tasks for ``mode``, or None."""
    return _WIP_LIMITS[mode]


def daily_commit_limit(mode: FlowMode) -> Optional[int]:
    """Return the maximum number of committed tasks for ``mode``, or None."""
    return _COMMIT_LIMITS.get(mode)


def count_doing(tasks: Iterable[Task]) -> int:
    return sum(1 for t in tasks if t.status == Status.DOING)


def count_committed(tasks: Iterable[Task]) -> int:
    return sum(1 for t in tasks if t.committed_today)


def can_move_to_doing(tasks: Iterable[Task], mode: FlowMode) -> bool:
    """Check whether one more task may enter Doing.

    Args:
        tasks: Current board tasks
        mode: Active flow mode

    Returns:
        True if the mode has no WIP limit or Doing is below it
    """
    limit = wip_limit(mode)
    if limit is None:
        return True
    return count_doing(tasks) < limit


def can_commit_more(tasks: Iterable[Task], mode: FlowMode) -> bool:
    """Check whether one more task may be committed for today.

    Args:
        tasks: Current board tasks
        mode: Active flow mode

    Returns:
        True if the mode has no commit limit or commitments are below it
    """
    limit = daily_commit_limit(mode)
    if limit is None:
        return True
    return count_committed(tasks) < limit


def wip_label(tasks: Iterable[Task], mode: FlowMode) -> str:
    limit = wip_limit(mode)
    if limit is None:
        return "No WIP"
    return f"WIP {count_doing(tasks)}/{limit}"


def commit_label(tasks: Iterable[Task], mode: FlowMode) -> Optional[str]:
    # Progress of today's plan: committed tasks already done.
    limit = daily_commit_limit(mode)
    if limit is None:
        return None
    done = sum(1 for t in tasks if t.committed_today and t.status == Status.DONE)
    return f"Committed {done}/{limit}"
