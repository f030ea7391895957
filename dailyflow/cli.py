"""Command-line interface for dailyflow.

This module provides the CLI for the task board using argparse. It supports
the following commands:
- add, edit, delete: Manage tasks
- list: Show the board, optionally filtered
- start, done, todo, reopen: Move a task between columns
- commit: Toggle a task's daily commitment (Scrum)
- mode, settings: Inspect or change settings
- end-day: Archive today and carry unfinished tasks over
- history, day, stats: Read back archived days
- focus: Run the Pomodoro timer
- reminder: Show when the end-of-day reminder fires next
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dailyflow import rules
from dailyflow.board import TaskBoard
from dailyflow.config import reminder_time, resolve_config, timer_durations
from dailyflow.history import compute_stats, day_detail, filter_logs, focus_minutes_today, history_window
from dailyflow.log import setup_logging
from dailyflow.models import FlowMode, Focus, Mood, PomodoroSession, Status, Task, day_key
from dailyflow.reminders import next_reminder_at
from dailyflow.rollover import end_day
from dailyflow.storage import JsonStorage
from dailyflow.timer import AsyncioTicker, TimerController

logger = logging.getLogger(__name__)

FOCUS_CHOICES = [f.value for f in Focus]
STATUS_CHOICES = [s.value for s in Status]
MOOD_CHOICES = [m.value for m in Mood]
MODE_CHOICES = [m.value for m in FlowMode]
STATUS_ICONS = {Status.TODO: " ", Status.DOING: ">", Status.DONE: "✓"}


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="dailyflow",
        description="Daily task board with Scrum, Kanban and XP rules"
    )
    parser.add_argument("--data", help="Path to the data file (default: $DAILYFLOW_DATA_PATH)")
    parser.add_argument("--config", help="Path to a YAML or JSON config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log to stderr at INFO level")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    add_parser = subparsers.add_parser("add", help="Add a new task")
    add_parser.add_argument("title", help="Task title")
    add_parser.add_argument("--focus", choices=FOCUS_CHOICES, default="work",
                            help="Focus area (default: work)")

    list_parser = subparsers.add_parser("list", help="List tasks")
    list_parser.add_argument("--focus", choices=FOCUS_CHOICES, help="Only this focus area")
    list_parser.add_argument("--status", choices=STATUS_CHOICES, help="Only this column")
    list_parser.add_argument("--search", default="", help="Only titles containing this text")
    list_parser.add_argument("--committed", action="store_true", help="Only committed tasks")
    list_parser.add_argument("--rolled-over", action="store_true",
                             help="Only tasks carried over from earlier days")

    edit_parser = subparsers.add_parser("edit", help="Rename a task")
    edit_parser.add_argument("id", help="Task ID")
    edit_parser.add_argument("title", help="New title")
    edit_parser.add_argument("--focus", choices=FOCUS_CHOICES, help="New focus area")

    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("id", help="Task ID")

    for name, help_text in (
        ("start", "Move a task from To do to Doing"),
        ("done", "Move a task from Doing to Done"),
        ("todo", "Move a task from Doing back to To do"),
        ("reopen", "Move a task from Done back to Doing"),
        ("commit", "Toggle today's commitment of a task (Scrum)"),
    ):
        move_parser = subparsers.add_parser(name, help=help_text)
        move_parser.add_argument("id", help="Task ID")

    mode_parser = subparsers.add_parser("mode", help="Show or set the flow mode")
    mode_parser.add_argument("mode", nargs="?", choices=MODE_CHOICES, help="New flow mode")

    settings_parser = subparsers.add_parser("settings", help="Show or change settings")
    settings_parser.add_argument("--dark-mode", choices=["on", "off"])
    settings_parser.add_argument("--premium", choices=["on", "off"])
    settings_parser.add_argument("--onboarding-seen", action="store_true")

    end_parser = subparsers.add_parser("end-day", help="Close today and roll tasks over")
    end_parser.add_argument("mood", nargs="?", choices=MOOD_CHOICES, help="How was your day?")

    history_parser = subparsers.add_parser("history", help="List archived days")
    history_parser.add_argument("--mode", choices=MODE_CHOICES, help="Only days in this mode")

    day_parser = subparsers.add_parser("day", help="Show one archived day")
    day_parser.add_argument("day_key", help="Day as YYYY-MM-DD")

    subparsers.add_parser("stats", help="Show recent statistics")

    focus_parser = subparsers.add_parser("focus", help="Run the Pomodoro timer")
    focus_parser.add_argument("--task", help="Doing task to focus on (default: first)")
    focus_parser.add_argument("--phases", type=int,
                              help="Stop after this many phases (default: run until stopped)")
    focus_parser.add_argument("--tick-seconds", type=float, default=1.0, help=argparse.SUPPRESS)

    subparsers.add_parser("reminder", help="Show the next end-of-day reminder")

    return parser


def format_task(task: Task) -> str:
    line = f"[{STATUS_ICONS[task.status]}] #{task.id} {task.title} [{task.focus.value}] ({task.status.value})"
    if task.committed_today:
        line += " *committed"
    if task.carried_over_from_day:
        line += f" (from {task.carried_over_from_day})"
    return line


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def cmd_add(args: argparse.Namespace, board: TaskBoard) -> int:
    """Handle the 'add' command.

    Args:
        args: Parsed command-line arguments
        board: TaskBoard instance

    Returns:
        Exit code (0 for success, 1 if the task was refused)
    """
    outcome = board.add(args.title, Focus(args.focus))
    if not outcome:
        return _fail(outcome.message or "Task title cannot be empty.")

    task = outcome.task
    print(f"Task added: #{task.id} {task.title} [{task.focus.value}]")
    return 0


def cmd_list(args: argparse.Namespace, board: TaskBoard) -> int:
    """Handle the 'list' command.

    Args:
        args: Parsed command-line arguments
        board: TaskBoard instance

    Returns:
        Exit code (0 for success)
    """
    tasks = board.visible_tasks(
        focus=Focus(args.focus) if args.focus else None,
        query=args.search,
        committed_only=args.committed,
        rolled_over_only=args.rolled_over,
        status=Status(args.status) if args.status else None,
    )

    print(f"{board.mode.label} | {rules.wip_label(board.tasks, board.mode)}")
    commit = rules.commit_label(board.tasks, board.mode)
    if commit:
        print(commit)

    if not tasks:
        print("No tasks found.")
        return 0

    for task in tasks:
        print(format_task(task))

    return 0


def cmd_edit(args: argparse.Namespace, board: TaskBoard) -> int:
    outcome = board.edit(args.id, args.title, Focus(args.focus) if args.focus else None)
    if not outcome:
        return _fail(outcome.message or "Task title cannot be empty.")

    print(f"Task #{outcome.task.id} updated: {outcome.task.title}")
    return 0


def cmd_delete(args: argparse.Namespace, board: TaskBoard) -> int:
    """Handle the 'delete' command.

    Args:
        args: Parsed command-line arguments
        board: TaskBoard instance

    Returns:
        Exit code (0 for success, 1 for error)
    """
    outcome = board.delete(args.id)
    if not outcome:
        return _fail(f"Task #{args.id} not found.")

    print(f"Deleted \"{outcome.task.title}\"")
    return 0


_MOVES = {
    "start": (Status.DOING, "Started working on \"{title}\""),
    "done": (Status.DONE, "Completed \"{title}\""),
    "todo": (Status.TODO, "Moved \"{title}\" to To do"),
    "reopen": (Status.DOING, "Reopened \"{title}\""),
}


def cmd_move(args: argparse.Namespace, board: TaskBoard) -> int:
    """Handle 'start', 'done', 'todo' and 'reopen'."""
    target, template = _MOVES[args.command]
    outcome = board.transition(args.id, target)
    if not outcome:
        return _fail(outcome.message)

    print(template.format(title=outcome.task.title))
    return 0


def cmd_commit(args: argparse.Namespace, board: TaskBoard) -> int:
    outcome = board.toggle_commit(args.id)
    if not outcome:
        return _fail(outcome.message)

    state = "Committed" if outcome.task.committed_today else "Uncommitted"
    print(f"{state} \"{outcome.task.title}\"")
    return 0


def cmd_mode(args: argparse.Namespace, board: TaskBoard) -> int:
    if args.mode:
        board.set_mode(FlowMode(args.mode))
        print(f"Mode set to {board.mode.label}")
    else:
        print(board.mode.label)
    return 0


def cmd_settings(args: argparse.Namespace, board: TaskBoard) -> int:
    storage = board.storage
    if args.dark_mode:
        storage.set_setting("dark_mode", args.dark_mode == "on")
    if args.premium:
        board.set_premium(args.premium == "on")
    if args.onboarding_seen:
        storage.set_setting("has_seen_onboarding", True)

    settings = storage.load_settings()
    print(f"mode: {settings.mode.value}")
    print(f"dark_mode: {'on' if settings.dark_mode else 'off'}")
    print(f"premium: {'on' if settings.is_premium else 'off'}")
    print(f"onboarding_seen: {'yes' if settings.has_seen_onboarding else 'no'}")
    return 0


def cmd_end_day(args: argparse.Namespace, board: TaskBoard) -> int:
    """Handle the 'end-day' command.

    Returns:
        Exit code (0 for success, 1 if no mood was given)
    """
    summary = end_day(board, None, Mood(args.mood) if args.mood else None)
    if summary is None:
        return _fail("No mood given; the day was not closed.")

    print(f"Day {summary.day_key} closed {summary.mood.emoji}")
    print(f"Done: {summary.done_count}/{summary.total_count}")
    print(f"Carried over: {summary.carried_count}")
    return 0


def cmd_history(args: argparse.Namespace, board: TaskBoard) -> int:
    logs = filter_logs(
        board.storage.load_all_day_logs(), FlowMode(args.mode) if args.mode else None
    )
    if not logs:
        print("No archived days yet.")
        return 0

    for log in logs:
        print(
            f"{log.day_key} {log.mood.emoji} {log.mode.label}: "
            f"{log.done_count}/{len(log.tasks_snapshot)} done"
        )
    return 0


def cmd_day(args: argparse.Namespace, board: TaskBoard) -> int:
    detail = day_detail(board.storage, args.day_key)
    if detail is None:
        return _fail("Day log not found.")

    log = detail.log
    print(f"{log.day_key} {log.mood.emoji} {log.mood.value} ({log.mode.label})")
    print(f"Done: {log.done_count}/{len(log.tasks_snapshot)}")
    if log.mode == FlowMode.SCRUM:
        print(f"Committed done: {log.committed_done_count}/{log.committed_count}")
    print(f"Focus: {detail.focus_minutes} min in {detail.work_sessions} pomodoros")
    for task in log.snapshot_tasks():
        print(format_task(task))
    return 0


def cmd_stats(args: argparse.Namespace, board: TaskBoard) -> int:
    stats = compute_stats(board.storage, board.is_premium)
    print(f"Last {history_window(board.is_premium)} days ({stats.days} archived)")
    print(f"Tasks done: {stats.total_done}")
    print(f"Average per day: {stats.average_done:.1f}")
    print(f"Pomodoros: {stats.pomodoros}")
    if stats.most_common_mood is not None:
        print(f"Most common mood: {stats.most_common_mood.emoji} {stats.most_common_mood.value}")
    print(f"Focus today: {focus_minutes_today(board.storage, day_key(board.clock()))} min")
    return 0


def cmd_focus(args: argparse.Namespace, board: TaskBoard) -> int:
    """Handle the 'focus' command.

    Runs the timer in the foreground until the requested number of phases
    has completed, the timer stops on its own, or the user interrupts it.
    """
    config = resolve_config(args.config)
    work, rest = timer_durations(config, board.is_premium)
    completed: List[PomodoroSession] = []
    errors: List[str] = []

    def append_session(session: PomodoroSession) -> None:
        try:
            board.storage.append_pomodoro_session(session)
        except (OSError, ValueError) as e:
            errors.append(f"Could not save the {session.phase.value} session: {e}")
            raise
        completed.append(session)
        print(f"{session.phase.value.capitalize()} phase done ({session.minutes} min)")

    ticker = AsyncioTicker(args.tick_seconds)
    timer = TimerController(
        day_key_provider=lambda: day_key(board.clock()),
        doing_tasks_provider=board.doing_tasks,
        append_session=append_session,
        work_minutes=work,
        break_minutes=rest,
        ticker=ticker,
        clock=board.clock,
    )
    board.subscribe(lambda _: timer.sync())
    if args.task and not timer.select_task(args.task):
        return _fail(f"Task #{args.task} is not in Doing.")

    async def run() -> int:
        if not timer.start(on_error=errors.append):
            return _fail(errors[-1])
        print(f"{timer.phase_label} {timer.remaining_text} on #{timer.selected_task_id}")
        try:
            while timer.running and (args.phases is None or len(completed) < args.phases):
                await asyncio.sleep(ticker.interval)
        finally:
            timer.pause()
        if errors:
            return _fail(errors[-1])
        return 0

    try:
        return asyncio.run(run())
    except KeyboardInterrupt:
        print("Focus stopped.")
        return 0


def cmd_reminder(args: argparse.Namespace, board: TaskBoard) -> int:
    at = reminder_time(resolve_config(args.config))
    print(f"Next end-of-day reminder: {next_reminder_at(board.clock(), at):%Y-%m-%d %H:%M}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:]

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    config = resolve_config(args.config)
    log_config = config.get("logging", {})
    if args.verbose:
        setup_logging("INFO", log_config.get("file"))
    elif log_config.get("file"):
        setup_logging(log_config.get("level", "WARNING"), log_config["file"])

    board = TaskBoard(JsonStorage(args.data))

    # Dispatch to command handlers
    commands = {
        "add": cmd_add,
        "list": cmd_list,
        "edit": cmd_edit,
        "delete": cmd_delete,
        "start": cmd_move,
        "done": cmd_move,
        "todo": cmd_move,
        "reopen": cmd_move,
        "commit": cmd_commit,
        "mode": cmd_mode,
        "settings": cmd_settings,
        "end-day": cmd_end_day,
        "history": cmd_history,
        "day": cmd_day,
        "stats": cmd_stats,
        "focus": cmd_focus,
        "reminder": cmd_reminder,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    logger.debug("Running %s", args.command)
    return handler(args, board)


if __name__ == "__main__":
    sys.exit(main())
