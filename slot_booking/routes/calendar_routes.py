from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from slot_booking.auth.dependencies import get_db, require_admin
from slot_booking.core import config
from slot_booking.models.time_slot import SlotStatus
from slot_booking.models.user import User
from slot_booking.routes.common import ensure_database_ready, scheduling_errors
from slot_booking.scheduling.service import SchedulingService

router = APIRouter(tags=['calendar'])

MAX_DESCRIPTION_LENGTH = 255


class SetOffDayRequest(BaseModel):
    date: date
    is_off_day: bool = True
    description: str | None = None

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if len(normalized) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')
        return normalized or None


class CreateTimeSlotsRequest(BaseModel):
    date: date
    start_time: time
    end_time: time
    slot_duration: int = Field(ge=config.SLOT_MIN_DURATION_MINUTES, le=config.SLOT_MAX_DURATION_MINUTES)
    break_time: int = Field(default=0, ge=0, le=config.SLOT_MAX_BREAK_MINUTES)


class CreateDefaultTimeSlotsRequest(BaseModel):
    date: date


class UpdateTimeSlotRequest(BaseModel):
    start_time: datetime
    end_time: datetime


class CalendarDayResponse(BaseModel):
    id: int
    date: date
    is_off_day: bool
    description: str | None = None

    class Config:
        from_attributes = True


class TimeSlotResponse(BaseModel):
    id: int
    date: date
    start_time: datetime
    end_time: datetime
    status: SlotStatus

    class Config:
        from_attributes = True


class CreateTimeSlotsResponse(BaseModel):
    message: str
    slots: int
    time_slots: list[TimeSlotResponse]


def _created_response(slot_date: date, slots) -> CreateTimeSlotsResponse:
    return CreateTimeSlotsResponse(
        message=f'{len(slots)} time slots created for {slot_date.isoformat()}',
        slots=len(slots),
        time_slots=[TimeSlotResponse.model_validate(slot) for slot in slots],
    )


@router.post('/off-days', response_model=CalendarDayResponse)
def set_off_day(
    data: SetOffDayRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    with scheduling_errors(db):
        calendar_day = SchedulingService(db).set_off_day(data.date, data.is_off_day, data.description)
        return CalendarDayResponse.model_validate(calendar_day)


@router.delete('/off-days/{off_date}', response_model=CalendarDayResponse)
def remove_off_day(
    off_date: date,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    with scheduling_errors(db):
        calendar_day = SchedulingService(db).set_off_day(off_date, False)
        return CalendarDayResponse.model_validate(calendar_day)


@router.get('/off-days', response_model=list[CalendarDayResponse])
def list_off_days(
    start: date | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    with scheduling_errors(db):
        return [
            CalendarDayResponse.model_validate(calendar_day)
            for calendar_day in SchedulingService(db).list_off_days(start=start)
        ]


@router.post('/slots', response_model=CreateTimeSlotsResponse, status_code=status.HTTP_201_CREATED)
def create_time_slots(
    data: CreateTimeSlotsRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    with scheduling_errors(db):
        slots = SchedulingService(db).create_slots_for_day(
            data.date,
            data.start_time,
            data.end_time,
            data.slot_duration,
            data.break_time,
        )
        return _created_response(data.date, slots)


@router.post('/slots/default', response_model=CreateTimeSlotsResponse, status_code=status.HTTP_201_CREATED)
def create_default_time_slots(
    data: CreateDefaultTimeSlotsRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    with scheduling_errors(db):
        slots = SchedulingService(db).create_default_slots_for_day(data.date)
        return _created_response(data.date, slots)


@router.patch('/slots/{slot_id}', response_model=TimeSlotResponse)
def update_time_slot(
    slot_id: int,
    data: UpdateTimeSlotRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    with scheduling_errors(db):
        slot = SchedulingService(db).update_slot_times(slot_id, data.start_time, data.end_time)
        return TimeSlotResponse.model_validate(slot)


@router.delete('/slots/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_time_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    with scheduling_errors(db):
        SchedulingService(db).delete_slot(slot_id)
