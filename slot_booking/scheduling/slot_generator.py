"""
Tiling of a working window into discrete, bookable slots.

Nothing in this module touches the database: it turns a day plus a window
into ``SlotDraft`` intervals that the ledger later persists.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from slot_booking.core import config
from slot_booking.core.exceptions import ScheduleValidationError


@dataclass(frozen=True)
class SlotDraft:
    day: date
    start_time: datetime
    end_time: datetime

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)


def validate_slot_policy(slot_duration: int, break_between: int) -> None:
    if not config.SLOT_MIN_DURATION_MINUTES <= slot_duration <= config.SLOT_MAX_DURATION_MINUTES:
        raise ScheduleValidationError(
            f'Slot duration must be between {config.SLOT_MIN_DURATION_MINUTES} '
            f'and {config.SLOT_MAX_DURATION_MINUTES} minutes.'
        )
    if not 0 <= break_between <= config.SLOT_MAX_BREAK_MINUTES:
        raise ScheduleValidationError(
            f'Break between slots must be between 0 and {config.SLOT_MAX_BREAK_MINUTES} minutes.'
        )


def generate_slots(
    day: date,
    window_start: time,
    window_end: time,
    slot_duration: int,
    break_between: int = 0,
) -> list[SlotDraft]:
    """
    Emit ``[cursor, cursor + slot_duration)`` from ``window_start`` while the
    slot still ends inside the window, advancing by ``slot_duration + break_between``.

    A trailing slot that would run past ``window_end`` is dropped, never shortened.
    """
    validate_slot_policy(slot_duration, break_between)
    if window_start >= window_end:
        raise ScheduleValidationError('Window start must be before window end.')

    duration = timedelta(minutes=slot_duration)
    step = timedelta(minutes=slot_duration + break_between)
    cursor = datetime.combine(day, window_start)
    window_close = datetime.combine(day, window_end)

    drafts: list[SlotDraft] = []
    while cursor + duration <= window_close:
        drafts.append(SlotDraft(day=day, start_time=cursor, end_time=cursor + duration))
        cursor += step

    return drafts


def generate_fixed_slots(
    day: date,
    first_hour: int | None = None,
    count: int | None = None,
) -> list[SlotDraft]:
    """One-hour back-to-back slots, used when no explicit window is supplied."""
    first_hour = config.DEFAULT_FIRST_SLOT_HOUR if first_hour is None else first_hour
    count = config.DEFAULT_SLOT_COUNT if count is None else count

    if count < 1 or first_hour < 0 or first_hour + count > 23:
        raise ScheduleValidationError('The fixed slot grid must end before midnight.')

    return generate_slots(day, time(first_hour, 0), time(first_hour + count, 0), slot_duration=60, break_between=0)
