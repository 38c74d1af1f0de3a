"""
Slot state owner.

All writes that decide who holds a slot are single conditional statements
guarded by the slot's prior status, so the database serialises racing callers
and exactly one of them sees an affected row.  The ledger never commits; the
caller's unit of work does.
"""

import logging
from datetime import date, datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from slot_booking.core import config
from slot_booking.core.exceptions import (
    DayClosed,
    ScheduleValidationError,
    SlotBooked,
    SlotNotFound,
    SlotOverlap,
    SlotUnavailable,
)
from slot_booking.models.calendar_day import CalendarDay
from slot_booking.models.time_slot import SlotStatus, TimeSlot
from slot_booking.scheduling.slot_generator import SlotDraft

logger = logging.getLogger(__name__)


def _open_day_ids():
    return select(CalendarDay.id).where(CalendarDay.is_off_day.is_(False))


class SlotLedger:
    def __init__(self, db: Session) -> None:
        self.db = db

    # Calendar days

    def get_day(self, day: date, lock: bool = False) -> CalendarDay | None:
        statement = select(CalendarDay).where(CalendarDay.date == day)
        if lock:
            statement = statement.with_for_update()
        return self.db.execute(statement).scalar_one_or_none()

    def get_or_create_day(self, day: date, lock: bool = False) -> CalendarDay:
        calendar_day = self.get_day(day, lock=lock)
        if calendar_day is None:
            calendar_day = CalendarDay(date=day, is_off_day=False)
            self.db.add(calendar_day)
            self.db.flush()
        return calendar_day

    def is_closed(self, day: date) -> bool:
        is_off_day = self.db.execute(
            select(CalendarDay.is_off_day).where(CalendarDay.date == day)
        ).scalar_one_or_none()
        return bool(is_off_day)

    def mark_day(self, day: date, is_off_day: bool, description: str | None = None) -> CalendarDay:
        """Upsert the calendar flag. Existing slots and bookings are left untouched."""
        calendar_day = self.get_or_create_day(day, lock=True)
        calendar_day.is_off_day = is_off_day
        calendar_day.description = description
        self.db.flush()
        return calendar_day

    # Slots

    def get_slot(self, slot_id: int) -> TimeSlot:
        slot = self.db.get(TimeSlot, slot_id, populate_existing=True)
        if slot is None:
            raise SlotNotFound()
        return slot

    def replace_slots_for_day(self, day: date, drafts: list[SlotDraft]) -> list[TimeSlot]:
        """
        Swap the day's AVAILABLE slots for ``drafts``.

        Refuses when the day is off or when any slot of the day is BOOKED.
        Available rows are deleted before the booked check so a reservation
        racing with regeneration either lands first (and is counted here) or
        finds its row gone.
        """
        calendar_day = self.get_or_create_day(day, lock=True)
        if calendar_day.is_off_day:
            raise DayClosed('Cannot create slots for off day.')

        ordered = sorted(drafts, key=lambda draft: draft.start_time)
        for draft in ordered:
            if draft.day != day or draft.start_time.date() != day or draft.start_time >= draft.end_time:
                raise ScheduleValidationError(f'Slot {draft.start_time:%H:%M}-{draft.end_time:%H:%M} does not fit {day}.')
        for previous, current in zip(ordered, ordered[1:]):
            if current.start_time < previous.end_time:
                raise SlotOverlap()

        self.db.execute(
            delete(TimeSlot)
            .where(
                TimeSlot.calendar_day_id == calendar_day.id,
                TimeSlot.status == SlotStatus.AVAILABLE,
            )
            .execution_options(synchronize_session="fetch")
        )

        booked_count = self.db.execute(
            select(func.count())
            .select_from(TimeSlot)
            .where(
                TimeSlot.calendar_day_id == calendar_day.id,
                TimeSlot.status == SlotStatus.BOOKED,
            )
        ).scalar_one()
        if booked_count:
            raise SlotBooked(
                f'{booked_count} booked slot(s) exist on {day.isoformat()}; '
                'cancel those appointments before regenerating slots.'
            )

        slots = [
            TimeSlot(
                calendar_day_id=calendar_day.id,
                start_time=draft.start_time,
                end_time=draft.end_time,
                status=SlotStatus.AVAILABLE,
            )
            for draft in ordered
        ]
        self.db.add_all(slots)
        self.db.flush()

        logger.info('Replaced slots for %s with %d new slot(s)', day.isoformat(), len(slots))
        return slots

    def reserve(self, slot_id: int) -> TimeSlot:
        result = self.db.execute(
            update(TimeSlot)
            .where(
                TimeSlot.id == slot_id,
                TimeSlot.status == SlotStatus.AVAILABLE,
                TimeSlot.calendar_day_id.in_(_open_day_ids()),
            )
            .values(status=SlotStatus.BOOKED)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount != 1:
            slot = self.get_slot(slot_id)
            logger.warning('Reservation rejected for slot %s (status=%s)', slot_id, slot.status.value)
            if slot.status == SlotStatus.AVAILABLE and self.is_closed(slot.start_time.date()):
                raise DayClosed('Cannot book appointment on off day.')
            raise SlotUnavailable()

        return self.get_slot(slot_id)

    def release(self, slot_id: int) -> TimeSlot:
        """BOOKED -> AVAILABLE. Releasing an AVAILABLE slot is a no-op."""
        result = self.db.execute(
            update(TimeSlot)
            .where(TimeSlot.id == slot_id, TimeSlot.status == SlotStatus.BOOKED)
            .values(status=SlotStatus.AVAILABLE)
            .execution_options(synchronize_session=False)
        )
        slot = self.get_slot(slot_id)
        if result.rowcount:
            logger.info('Released slot %s', slot_id)
        return slot

    def delete_slot(self, slot_id: int) -> None:
        result = self.db.execute(
            delete(TimeSlot)
            .where(TimeSlot.id == slot_id, TimeSlot.status == SlotStatus.AVAILABLE)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            self.get_slot(slot_id)
            raise SlotBooked('Cannot delete a booked time slot.')

        logger.info('Deleted slot %s', slot_id)

    def update_slot_times(self, slot_id: int, new_start: datetime, new_end: datetime) -> TimeSlot:
        slot = self.get_slot(slot_id)
        if slot.status == SlotStatus.BOOKED:
            raise SlotBooked('Cannot edit a booked time slot.')

        slot_day = slot.start_time.date()
        if new_start >= new_end:
            raise ScheduleValidationError('Slot start must be before slot end.')
        if new_start.date() != slot_day or new_end.date() != slot_day:
            raise ScheduleValidationError(f'Slot times must stay on {slot_day.isoformat()}.')

        duration_minutes = (new_end - new_start).total_seconds() / 60
        if not config.SLOT_MIN_DURATION_MINUTES <= duration_minutes <= config.SLOT_MAX_DURATION_MINUTES:
            raise ScheduleValidationError(
                f'Slot duration must be between {config.SLOT_MIN_DURATION_MINUTES} '
                f'and {config.SLOT_MAX_DURATION_MINUTES} minutes.'
            )

        overlapping = self.db.execute(
            select(TimeSlot.id)
            .where(
                TimeSlot.calendar_day_id == slot.calendar_day_id,
                TimeSlot.id != slot_id,
                TimeSlot.start_time < new_end,
                TimeSlot.end_time > new_start,
            )
            .limit(1)
        ).first()
        if overlapping:
            raise SlotOverlap()

        result = self.db.execute(
            update(TimeSlot)
            .where(TimeSlot.id == slot_id, TimeSlot.status == SlotStatus.AVAILABLE)
            .values(start_time=new_start, end_time=new_end)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.get_slot(slot_id)
            raise SlotBooked('Cannot edit a booked time slot.')

        logger.info('Moved slot %s to %s-%s', slot_id, new_start.isoformat(), new_end.isoformat())
        return self.get_slot(slot_id)
