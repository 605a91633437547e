"""Period clock - pure functions of wall-clock time and duration.

Period id = UTC date (YYYYMMDD) + one-based slot number within the day,
zero-padded to 9 digits. Slots are aligned to UTC midnight.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

SECONDS_PER_DAY = 24 * 60 * 60
SLOT_DIGITS = 9


@dataclass(frozen=True)
class PeriodWindow:
    period_id: str
    duration: int
    start: datetime
    freeze_at: datetime
    end: datetime

    def is_open(self, now: datetime) -> bool:
        return self.start <= now < self.freeze_at

    def is_frozen(self, now: datetime) -> bool:
        return self.freeze_at <= now < self.end

    def has_ended(self, now: datetime) -> bool:
        return now >= self.end


def _utc(now: datetime) -> datetime:
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _window(day: datetime, slot: int, duration: int, freeze_seconds: int) -> PeriodWindow:
    start = day + timedelta(seconds=slot * duration)
    end = start + timedelta(seconds=duration)
    freeze_at = end - timedelta(seconds=min(freeze_seconds, duration))
    period_id = f"{day:%Y%m%d}{slot + 1:0{SLOT_DIGITS}d}"
    return PeriodWindow(period_id=period_id, duration=duration, start=start, freeze_at=freeze_at, end=end)


def current_window(now: datetime, duration: int, freeze_seconds: int = 5) -> PeriodWindow:
    """Window of the period whose slot contains ``now``."""
    if duration <= 0 or SECONDS_PER_DAY % duration:
        raise ValueError(f"duration must divide a day evenly, got {duration}")
    now = _utc(now)
    day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    slot = int((now - day).total_seconds()) // duration
    return _window(day, slot, duration, freeze_seconds)


def window_for(period_id: str, duration: int, freeze_seconds: int = 5) -> PeriodWindow:
    """Inverse of current_window for a period id."""
    if len(period_id) != 8 + SLOT_DIGITS or not period_id.isdigit():
        raise ValueError(f"Not a clock period id: {period_id!r}")
    day = datetime.strptime(period_id[:8], "%Y%m%d").replace(tzinfo=timezone.utc)
    slot = int(period_id[8:]) - 1
    if slot < 0 or slot * duration >= SECONDS_PER_DAY:
        raise ValueError(f"Slot out of range for {duration}s periods: {period_id!r}")
    return _window(day, slot, duration, freeze_seconds)


def previous_window(window: PeriodWindow, freeze_seconds: int = 5) -> PeriodWindow:
    return current_window(window.start - timedelta(seconds=1), window.duration, freeze_seconds)
