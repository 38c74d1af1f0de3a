import os
from datetime import date, datetime, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from slot_booking.database import Base  # noqa: E402
from slot_booking.models.appointment import Appointment  # noqa: E402,F401
from slot_booking.models.calendar_day import CalendarDay  # noqa: E402,F401
from slot_booking.models.time_slot import TimeSlot  # noqa: E402,F401
from slot_booking.models.user import ROLE_ADMIN, ROLE_USER, User  # noqa: E402
from slot_booking.scheduling.lifecycle import RequesterDetails  # noqa: E402
from slot_booking.scheduling.service import SchedulingService  # noqa: E402

BOOKING_DAY = date(2026, 1, 5)
FIXED_NOW = datetime(2026, 1, 5, 8, 0)


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str = ROLE_USER) -> User:
        user = User(email=email, hashed_password='', role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def requester(make_user) -> User:
    return make_user('owner@example.com')


@pytest.fixture
def other_requester(make_user) -> User:
    return make_user('other@example.com')


@pytest.fixture
def admin(make_user) -> User:
    return make_user('nurse@example.com', role=ROLE_ADMIN)


@pytest.fixture
def service(db) -> SchedulingService:
    return SchedulingService(db, clock=lambda: FIXED_NOW)


@pytest.fixture
def details() -> RequesterDetails:
    return RequesterDetails(
        first_name='Ada',
        last_name='Lovelace',
        email='ada@example.com',
        phone_number='555-010-2030',
    )


@pytest.fixture
def morning_slots(service) -> list[TimeSlot]:
    """Three one-hour AVAILABLE slots on BOOKING_DAY: 09:00, 10:00, 11:00."""
    return service.create_slots_for_day(BOOKING_DAY, time(9, 0), time(12, 0), slot_duration=60)
