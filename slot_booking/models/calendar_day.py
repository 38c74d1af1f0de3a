"""Calendar day model definitions."""

from sqlalchemy import Boolean, Column, Date, Integer, String
from sqlalchemy.orm import relationship
from slot_booking.database import Base


class CalendarDay(Base):
    """One date on the shared calendar and whether it is closed for booking."""
    __tablename__ = "calendar_days"

    id = Column(Integer, primary_key=True)
    date = Column(Date, unique=True, index=True, nullable=False)
    is_off_day = Column(Boolean, nullable=False, default=False)
    description = Column(String)

    time_slots = relationship("TimeSlot", back_populates="calendar_day", order_by="TimeSlot.start_time")
