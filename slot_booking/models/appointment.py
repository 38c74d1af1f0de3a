"""Appointment model definitions."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from slot_booking.database import Base
from slot_booking.models.time_slot import TimeSlot
from slot_booking.models.user import User


class AppointmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class Appointment(Base):
    """Represents a booked appointment.

    ``start_time``/``end_time`` are copied from the slot at booking time so the
    record stays readable after the slot is regenerated or deleted.
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id", ondelete="SET NULL"), nullable=True, index=True)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    date_of_birth = Column(Date)
    address = Column(String)
    notes = Column(String)

    status = Column(
        Enum(AppointmentStatus, name="appointment_status", native_enum=False, length=16),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )
    consultation_fee = Column(Numeric(10, 2))
    is_paid = Column(Boolean, nullable=False, default=False)
    payment_reference = Column(String(255))

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    time_slot = relationship(TimeSlot)
    user = relationship(User)
