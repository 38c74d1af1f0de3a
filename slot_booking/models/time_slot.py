"""Time slot model definitions."""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer
from sqlalchemy.orm import relationship
from slot_booking.database import Base
from slot_booking.models.calendar_day import CalendarDay


class SlotStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"


class TimeSlot(Base):
    """Represents a bookable interval on one calendar day."""
    __tablename__ = "time_slots"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    calendar_day_id = Column(Integer, ForeignKey("calendar_days.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(
        Enum(SlotStatus, name="slot_status", native_enum=False, length=16),
        nullable=False,
        default=SlotStatus.AVAILABLE,
    )
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    calendar_day = relationship(CalendarDay, back_populates="time_slots")

    @property
    def date(self):
        return self.start_time.date()
