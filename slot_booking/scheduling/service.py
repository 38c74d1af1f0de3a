"""
Scheduling use cases.

``SchedulingService`` is the only place that commits. Each mutating method is
one unit of work: it commits when the method returns and rolls back if any
step raises, so a reserved slot without an appointment (or a cancelled
appointment whose slot is still booked) is never visible to other sessions.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from slot_booking.core.exceptions import InvalidTransition
from slot_booking.models.appointment import Appointment, AppointmentStatus
from slot_booking.models.calendar_day import CalendarDay
from slot_booking.models.time_slot import TimeSlot
from slot_booking.scheduling import availability
from slot_booking.scheduling.lifecycle import (
    Actor,
    AppointmentFilters,
    AppointmentLifecycle,
    RequesterDetails,
)
from slot_booking.scheduling.payments import PaymentGateway, PaymentResult
from slot_booking.scheduling.slot_generator import generate_fixed_slots, generate_slots
from slot_booking.scheduling.slot_ledger import SlotLedger
from slot_booking.utils.pagination import Page, PaginationParams

logger = logging.getLogger(__name__)


class SchedulingService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now) -> None:
        self.db = db
        self.clock = clock
        self.ledger = SlotLedger(db)
        self.lifecycle = AppointmentLifecycle(db, self.ledger)

    @contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # Calendar (admin)

    def set_off_day(self, day: date, is_off_day: bool, description: str | None = None) -> CalendarDay:
        with self._unit_of_work():
            calendar_day = self.ledger.mark_day(day, is_off_day, description)

        logger.info('Marked %s as %s', day.isoformat(), 'off day' if is_off_day else 'open')
        return calendar_day

    def list_off_days(self, start: date | None = None) -> list[CalendarDay]:
        return availability.list_off_days(self.db, start=start)

    def create_slots_for_day(
        self,
        day: date,
        window_start: time,
        window_end: time,
        slot_duration: int,
        break_between: int = 0,
    ) -> list[TimeSlot]:
        drafts = generate_slots(day, window_start, window_end, slot_duration, break_between)
        with self._unit_of_work():
            slots = self.ledger.replace_slots_for_day(day, drafts)
        return slots

    def create_default_slots_for_day(self, day: date) -> list[TimeSlot]:
        drafts = generate_fixed_slots(day)
        with self._unit_of_work():
            slots = self.ledger.replace_slots_for_day(day, drafts)
        return slots

    def update_slot_times(self, slot_id: int, start_time: datetime, end_time: datetime) -> TimeSlot:
        with self._unit_of_work():
            slot = self.ledger.update_slot_times(slot_id, start_time, end_time)
        return slot

    def delete_slot(self, slot_id: int) -> None:
        with self._unit_of_work():
            self.ledger.delete_slot(slot_id)

    # Availability (public)

    def is_closed(self, day: date) -> bool:
        return self.ledger.is_closed(day)

    def available_slots(self, day: date) -> list[TimeSlot]:
        return availability.available_slots(self.db, day)

    def available_days(self, window_days: int | None = None) -> list[date]:
        return availability.available_days(self.db, window_days, clock=self.clock)

    # Appointments

    def book(self, slot_id: int, requester_id: int, details: RequesterDetails) -> Appointment:
        with self._unit_of_work():
            appointment = self.lifecycle.create(slot_id, requester_id, details)
        return appointment

    def set_appointment_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        actor: Actor,
    ) -> Appointment:
        with self._unit_of_work():
            appointment = self.lifecycle.transition(appointment_id, new_status, actor)
        return appointment

    def cancel(self, appointment_id: int, requester_id: int) -> Appointment:
        return self.set_appointment_status(
            appointment_id,
            AppointmentStatus.CANCELLED,
            Actor(user_id=requester_id),
        )

    def list_user_appointments(self, user_id: int, pagination: PaginationParams) -> Page:
        return self.lifecycle.list_for_user(user_id, pagination)

    def list_appointments(self, filters: AppointmentFilters, pagination: PaginationParams) -> Page:
        return self.lifecycle.list_all(filters, pagination)

    # Payments

    def record_payment(self, appointment_id: int, reference: str | None = None) -> Appointment:
        with self._unit_of_work():
            appointment = self.lifecycle.record_payment(appointment_id, reference)
        return appointment

    def capture_payment(self, appointment_id: int, gateway: PaymentGateway) -> Appointment:
        """
        Ask ``gateway`` to charge an existing booking.

        A declined capture is logged and leaves the appointment unpaid; the
        booking itself is never touched.
        """
        appointment = self.lifecycle.get(appointment_id)
        if appointment.status == AppointmentStatus.CANCELLED:
            raise InvalidTransition('Cannot capture payment for a cancelled appointment.')
        if appointment.is_paid:
            return appointment

        return self.apply_payment_result(appointment_id, gateway.capture(appointment))

    def apply_payment_result(self, appointment_id: int, result: PaymentResult) -> Appointment:
        if not result.succeeded:
            logger.warning(
                'Payment capture failed for appointment %s: %s',
                appointment_id,
                result.message or 'no reason given',
            )
            return self.lifecycle.get(appointment_id)

        return self.record_payment(appointment_id, result.reference)
