from datetime import date, datetime, time

import pytest

from slot_booking.core.exceptions import (
    DayClosed,
    ScheduleValidationError,
    SlotBooked,
    SlotNotFound,
    SlotOverlap,
    SlotUnavailable,
)
from slot_booking.models.time_slot import SlotStatus, TimeSlot
from slot_booking.scheduling.slot_generator import SlotDraft
from slot_booking.scheduling.slot_ledger import SlotLedger

BOOKING_DAY = date(2026, 1, 5)


@pytest.fixture
def ledger(db) -> SlotLedger:
    return SlotLedger(db)


def test_reserve_marks_available_slot_booked(db, ledger, morning_slots) -> None:
    slot = ledger.reserve(morning_slots[0].id)
    db.commit()

    assert slot.status == SlotStatus.BOOKED
    assert db.get(TimeSlot, slot.id).status == SlotStatus.BOOKED


def test_reserve_rejects_already_booked_slot(db, ledger, morning_slots) -> None:
    ledger.reserve(morning_slots[0].id)
    db.commit()

    with pytest.raises(SlotUnavailable):
        ledger.reserve(morning_slots[0].id)


def test_reserve_rejects_missing_slot(ledger) -> None:
    with pytest.raises(SlotNotFound):
        ledger.reserve(999)


def test_reserve_rejects_slot_on_off_day(db, ledger, service, morning_slots) -> None:
    service.set_off_day(BOOKING_DAY, True, 'Staff training')

    with pytest.raises(DayClosed):
        ledger.reserve(morning_slots[0].id)
    db.rollback()

    assert db.get(TimeSlot, morning_slots[0].id).status == SlotStatus.AVAILABLE


def test_release_returns_booked_slot_to_available(db, ledger, morning_slots) -> None:
    ledger.reserve(morning_slots[1].id)
    db.commit()

    slot = ledger.release(morning_slots[1].id)
    db.commit()

    assert slot.status == SlotStatus.AVAILABLE


def test_release_on_available_slot_is_noop(db, ledger, morning_slots) -> None:
    slot = ledger.release(morning_slots[2].id)
    slot = ledger.release(morning_slots[2].id)
    db.commit()

    assert slot.status == SlotStatus.AVAILABLE


def test_release_rejects_missing_slot(ledger) -> None:
    with pytest.raises(SlotNotFound):
        ledger.release(404)


def test_delete_slot_removes_available_slot(db, ledger, morning_slots) -> None:
    slot_id = morning_slots[0].id

    ledger.delete_slot(slot_id)
    db.commit()

    assert db.get(TimeSlot, slot_id) is None


def test_delete_slot_refuses_booked_slot(db, ledger, morning_slots) -> None:
    slot_id = morning_slots[0].id
    ledger.reserve(slot_id)
    db.commit()

    with pytest.raises(SlotBooked):
        ledger.delete_slot(slot_id)
    db.rollback()

    assert db.get(TimeSlot, slot_id) is not None


def test_delete_slot_rejects_missing_slot(ledger) -> None:
    with pytest.raises(SlotNotFound):
        ledger.delete_slot(12345)


def test_update_slot_times_moves_available_slot(db, ledger, morning_slots) -> None:
    slot = ledger.update_slot_times(
        morning_slots[2].id,
        datetime(2026, 1, 5, 11, 15),
        datetime(2026, 1, 5, 12, 0),
    )
    db.commit()

    assert (slot.start_time, slot.end_time) == (datetime(2026, 1, 5, 11, 15), datetime(2026, 1, 5, 12, 0))


def test_update_slot_times_refuses_booked_slot(db, ledger, morning_slots) -> None:
    ledger.reserve(morning_slots[0].id)
    db.commit()

    with pytest.raises(SlotBooked):
        ledger.update_slot_times(morning_slots[0].id, datetime(2026, 1, 5, 8, 0), datetime(2026, 1, 5, 9, 0))


def test_update_slot_times_refuses_overlap(ledger, morning_slots) -> None:
    with pytest.raises(SlotOverlap):
        ledger.update_slot_times(morning_slots[0].id, datetime(2026, 1, 5, 9, 30), datetime(2026, 1, 5, 10, 30))


@pytest.mark.parametrize(
    ('start', 'end'),
    [
        (datetime(2026, 1, 5, 13, 0), datetime(2026, 1, 5, 12, 0)),
        (datetime(2026, 1, 6, 13, 0), datetime(2026, 1, 6, 14, 0)),
        (datetime(2026, 1, 5, 13, 0), datetime(2026, 1, 5, 13, 5)),
    ],
)
def test_update_slot_times_rejects_invalid_interval(ledger, morning_slots, start: datetime, end: datetime) -> None:
    with pytest.raises(ScheduleValidationError):
        ledger.update_slot_times(morning_slots[0].id, start, end)


def test_replace_slots_for_day_swaps_available_slots(db, ledger, morning_slots) -> None:
    old_ids = {slot.id for slot in morning_slots}
    drafts = [
        SlotDraft(BOOKING_DAY, datetime(2026, 1, 5, 14, 0), datetime(2026, 1, 5, 14, 30)),
        SlotDraft(BOOKING_DAY, datetime(2026, 1, 5, 13, 0), datetime(2026, 1, 5, 13, 30)),
    ]

    slots = ledger.replace_slots_for_day(BOOKING_DAY, drafts)
    db.commit()

    remaining = db.query(TimeSlot).order_by(TimeSlot.start_time).all()
    assert [slot.start_time.time() for slot in remaining] == [time(13, 0), time(14, 0)]
    assert {slot.id for slot in slots}.isdisjoint(old_ids)
    assert all(slot.status == SlotStatus.AVAILABLE for slot in remaining)


def test_replace_slots_for_day_refuses_when_a_slot_is_booked(db, ledger, morning_slots) -> None:
    ledger.reserve(morning_slots[0].id)
    db.commit()

    with pytest.raises(SlotBooked):
        ledger.replace_slots_for_day(
            BOOKING_DAY,
            [SlotDraft(BOOKING_DAY, datetime(2026, 1, 5, 14, 0), datetime(2026, 1, 5, 15, 0))],
        )
    db.rollback()

    assert db.query(TimeSlot).count() == 3


def test_replace_slots_for_day_rejects_overlapping_drafts(ledger) -> None:
    drafts = [
        SlotDraft(BOOKING_DAY, datetime(2026, 1, 5, 9, 0), datetime(2026, 1, 5, 10, 0)),
        SlotDraft(BOOKING_DAY, datetime(2026, 1, 5, 9, 30), datetime(2026, 1, 5, 10, 30)),
    ]

    with pytest.raises(SlotOverlap):
        ledger.replace_slots_for_day(BOOKING_DAY, drafts)


def test_is_closed_reflects_off_day_flag(ledger, service) -> None:
    assert ledger.is_closed(BOOKING_DAY) is False

    service.set_off_day(BOOKING_DAY, True)
    assert ledger.is_closed(BOOKING_DAY) is True

    service.set_off_day(BOOKING_DAY, False)
    assert ledger.is_closed(BOOKING_DAY) is False
