"""Read-only availability queries. Results may be stale by the time a caller books."""

from collections.abc import Callable
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from slot_booking.core import config
from slot_booking.core.exceptions import ScheduleValidationError
from slot_booking.models.calendar_day import CalendarDay
from slot_booking.models.time_slot import SlotStatus, TimeSlot


def closed_dates(db: Session, start: date, end: date) -> set[date]:
    rows = db.execute(
        select(CalendarDay.date).where(
            CalendarDay.is_off_day.is_(True),
            CalendarDay.date >= start,
            CalendarDay.date <= end,
        )
    ).scalars()
    return set(rows)


def available_slots(db: Session, day: date) -> list[TimeSlot]:
    return list(
        db.execute(
            select(TimeSlot)
            .join(CalendarDay, TimeSlot.calendar_day_id == CalendarDay.id)
            .where(
                CalendarDay.date == day,
                CalendarDay.is_off_day.is_(False),
                TimeSlot.status == SlotStatus.AVAILABLE,
            )
            .order_by(TimeSlot.start_time.asc())
        ).scalars()
    )


def available_days(
    db: Session,
    window_days: int | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> list[date]:
    """Today and the following days up to ``window_days`` in total, minus off days."""
    window_days = config.AVAILABLE_DAYS_WINDOW if window_days is None else window_days
    if not 1 <= window_days <= config.MAX_AVAILABLE_DAYS_WINDOW:
        raise ScheduleValidationError(
            f'Window must be between 1 and {config.MAX_AVAILABLE_DAYS_WINDOW} days.'
        )

    today = clock().date()
    last_day = today + timedelta(days=window_days - 1)
    closed = closed_dates(db, today, last_day)

    return [
        today + timedelta(days=offset)
        for offset in range(window_days)
        if today + timedelta(days=offset) not in closed
    ]


def list_off_days(db: Session, start: date | None = None) -> list[CalendarDay]:
    statement = select(CalendarDay).where(CalendarDay.is_off_day.is_(True))
    if start is not None:
        statement = statement.where(CalendarDay.date >= start)
    return list(db.execute(statement.order_by(CalendarDay.date.asc())).scalars())
