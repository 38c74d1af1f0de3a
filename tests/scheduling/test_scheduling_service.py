from datetime import date, datetime, time

import pytest
from sqlalchemy.exc import IntegrityError

from slot_booking.core.exceptions import DayClosed, SlotBooked, SlotUnavailable, StateError
from slot_booking.models.appointment import Appointment, AppointmentStatus
from slot_booking.models.calendar_day import CalendarDay
from slot_booking.models.time_slot import SlotStatus, TimeSlot
from slot_booking.scheduling.payments import PaymentResult
from slot_booking.utils.pagination import PaginationParams
from slot_booking.scheduling.lifecycle import AppointmentFilters, RequesterDetails

BOOKING_DAY = date(2026, 1, 5)


class FakeGateway:
    def __init__(self, result: PaymentResult) -> None:
        self.result = result
        self.captured: list[int] = []

    def capture(self, appointment: Appointment) -> PaymentResult:
        self.captured.append(appointment.id)
        return self.result


def test_set_off_day_upserts_single_calendar_row(db, service) -> None:
    service.set_off_day(BOOKING_DAY, True, 'Public holiday')
    calendar_day = service.set_off_day(BOOKING_DAY, True, 'Clinic closed')

    assert db.query(CalendarDay).filter(CalendarDay.date == BOOKING_DAY).count() == 1
    assert calendar_day.description == 'Clinic closed'
    assert calendar_day.is_off_day is True


def test_creating_slots_for_off_day_fails_and_persists_nothing(db, service) -> None:
    service.set_off_day(BOOKING_DAY, True)

    with pytest.raises(StateError) as exception_info:
        service.create_slots_for_day(BOOKING_DAY, time(9, 0), time(17, 0), slot_duration=60)

    assert isinstance(exception_info.value, DayClosed)
    assert db.query(TimeSlot).count() == 0


def test_create_slots_for_day_creates_calendar_day_lazily(db, service) -> None:
    slots = service.create_slots_for_day(BOOKING_DAY, time(9, 0), time(17, 0), slot_duration=60)

    assert len(slots) == 8
    calendar_day = db.query(CalendarDay).one()
    assert calendar_day.date == BOOKING_DAY
    assert calendar_day.is_off_day is False


def test_regenerating_slots_replaces_unbooked_day(db, service, morning_slots) -> None:
    slots = service.create_slots_for_day(BOOKING_DAY, time(13, 0), time(15, 0), slot_duration=30, break_between=0)

    assert len(slots) == 4
    assert db.query(TimeSlot).count() == 4


def test_regenerating_slots_refuses_day_with_booking(db, service, requester, details, morning_slots) -> None:
    service.book(morning_slots[0].id, requester.id, details)

    with pytest.raises(SlotBooked):
        service.create_default_slots_for_day(BOOKING_DAY)

    assert db.query(TimeSlot).count() == 3
    assert db.get(TimeSlot, morning_slots[0].id).status == SlotStatus.BOOKED


def test_regenerating_after_cancellation_keeps_appointment_history(db, service, requester, details, morning_slots) -> None:
    appointment = service.book(morning_slots[0].id, requester.id, details)
    service.cancel(appointment.id, requester.id)

    service.create_default_slots_for_day(BOOKING_DAY)

    db.expire_all()
    cancelled = db.get(Appointment, appointment.id)
    assert cancelled.status == AppointmentStatus.CANCELLED
    assert cancelled.time_slot_id is None
    assert cancelled.start_time == datetime(2026, 1, 5, 9, 0)


def test_off_day_marked_after_booking_keeps_existing_booking(db, service, requester, details, morning_slots) -> None:
    appointment = service.book(morning_slots[0].id, requester.id, details)

    service.set_off_day(BOOKING_DAY, True, 'Unexpected closure')

    db.expire_all()
    assert db.get(Appointment, appointment.id).status == AppointmentStatus.PENDING
    assert db.get(TimeSlot, morning_slots[0].id).status == SlotStatus.BOOKED
    with pytest.raises(DayClosed):
        service.book(morning_slots[1].id, requester.id, details)
    assert service.available_slots(BOOKING_DAY) == []


def test_book_rejects_slot_that_is_already_taken(service, requester, other_requester, details, morning_slots) -> None:
    service.book(morning_slots[0].id, requester.id, details)

    with pytest.raises(SlotUnavailable):
        service.book(morning_slots[0].id, other_requester.id, details)


def test_failed_appointment_insert_rolls_back_reservation(db, service, details, morning_slots) -> None:
    # No user 4242 exists, so the appointment insert violates its foreign key.
    with pytest.raises(IntegrityError):
        service.book(morning_slots[0].id, 4242, details)

    assert db.get(TimeSlot, morning_slots[0].id).status == SlotStatus.AVAILABLE
    assert db.query(Appointment).count() == 0


def test_delete_and_update_slot_go_through_unit_of_work(db, service, morning_slots) -> None:
    service.update_slot_times(morning_slots[2].id, datetime(2026, 1, 5, 11, 30), datetime(2026, 1, 5, 12, 30))
    service.delete_slot(morning_slots[0].id)

    db.expire_all()
    remaining = db.query(TimeSlot).order_by(TimeSlot.start_time).all()
    assert [(slot.start_time.time(), slot.end_time.time()) for slot in remaining] == [
        (time(10, 0), time(11, 0)),
        (time(11, 30), time(12, 30)),
    ]


def test_capture_payment_records_successful_charge(service, requester, details, morning_slots) -> None:
    appointment = service.book(morning_slots[0].id, requester.id, details)
    gateway = FakeGateway(PaymentResult(succeeded=True, reference='pi_ok'))

    paid = service.capture_payment(appointment.id, gateway)

    assert gateway.captured == [appointment.id]
    assert paid.is_paid is True
    assert paid.payment_reference == 'pi_ok'


def test_failed_payment_capture_leaves_booking_intact(db, service, requester, details, morning_slots) -> None:
    appointment = service.book(morning_slots[0].id, requester.id, details)
    gateway = FakeGateway(PaymentResult(succeeded=False, message='card_declined'))

    unpaid = service.capture_payment(appointment.id, gateway)

    assert unpaid.is_paid is False
    assert unpaid.status == AppointmentStatus.PENDING
    assert db.get(TimeSlot, morning_slots[0].id).status == SlotStatus.BOOKED


def test_capture_payment_skips_already_paid_appointment(service, requester, details, morning_slots) -> None:
    appointment = service.book(morning_slots[0].id, requester.id, details)
    service.record_payment(appointment.id, 'pi_first')
    gateway = FakeGateway(PaymentResult(succeeded=True, reference='pi_second'))

    paid = service.capture_payment(appointment.id, gateway)

    assert gateway.captured == []
    assert paid.payment_reference == 'pi_first'


def _book_as(service, user, slot, first_name: str, last_name: str, email: str, phone: str) -> Appointment:
    return service.book(
        slot.id,
        user.id,
        RequesterDetails(first_name=first_name, last_name=last_name, email=email, phone_number=phone),
    )


def test_list_appointments_filters_and_paginates(service, admin, requester, other_requester, morning_slots) -> None:
    first = _book_as(service, requester, morning_slots[0], 'Ada', 'Lovelace', 'ada@example.com', '5550102030')
    _book_as(service, other_requester, morning_slots[1], 'Grace', 'Hopper', 'grace@example.com', '5550109999')
    third = _book_as(service, requester, morning_slots[2], 'Ada', 'Byron', 'ada.b@example.com', '5550104444')
    service.cancel(third.id, requester.id)

    by_name = service.list_appointments(AppointmentFilters(search_term='ADA'), PaginationParams())
    assert by_name.total == 2

    by_phone = service.list_appointments(AppointmentFilters(search_term='9999'), PaginationParams())
    assert [appointment.first_name for appointment in by_phone.items] == ['Grace']

    cancelled = service.list_appointments(
        AppointmentFilters(status=AppointmentStatus.CANCELLED),
        PaginationParams(),
    )
    assert [appointment.id for appointment in cancelled.items] == [third.id]

    outside_range = service.list_appointments(
        AppointmentFilters(start_date=date(2026, 1, 6)),
        PaginationParams(),
    )
    assert outside_range.total == 0

    paged = service.list_appointments(
        AppointmentFilters(),
        PaginationParams(page=2, limit=2, sort_by='start_time', sort_order='asc'),
    )
    assert paged.total == 3
    assert [appointment.id for appointment in paged.items] == [third.id]
    assert paged.meta == {'page': 2, 'limit': 2, 'total': 3}

    mine = service.list_user_appointments(requester.id, PaginationParams(sort_by='start_time', sort_order='asc'))
    assert [appointment.id for appointment in mine.items] == [first.id, third.id]
