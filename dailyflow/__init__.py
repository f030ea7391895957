"""dailyflow: a daily task board with flow-mode rules, a Pomodoro timer and
end-of-day rollover."""

__version__ = "1.0.0"
