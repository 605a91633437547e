from outcomeguard.period.clock import PeriodWindow, current_window, previous_window, window_for
from outcomeguard.period.lifecycle import PeriodManager, PeriodStatus

__all__ = [
    "PeriodManager",
    "PeriodStatus",
    "PeriodWindow",
    "current_window",
    "previous_window",
    "window_for",
]
