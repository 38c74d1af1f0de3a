from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from slot_booking.auth.dependencies import actor_for, get_current_user, get_db, require_admin
from slot_booking.core import config
from slot_booking.models.appointment import AppointmentStatus
from slot_booking.models.time_slot import SlotStatus
from slot_booking.models.user import User
from slot_booking.routes.common import ensure_database_ready, get_clock, scheduling_errors
from slot_booking.scheduling.lifecycle import AppointmentFilters, RequesterDetails
from slot_booking.scheduling.payments import PaymentResult
from slot_booking.scheduling.service import SchedulingService
from slot_booking.utils.pagination import Page, PaginationParams, get_pagination

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 600
MIN_PHONE_DIGITS = 10


class CreateAppointmentRequest(BaseModel):
    time_slot_id: int
    first_name: str
    last_name: str
    email: str
    phone_number: str
    date_of_birth: date | None = None
    address: str | None = None
    notes: str | None = None
    consultation_fee: Decimal | None = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        local_part, _, domain = normalized.partition('@')
        if not local_part or '.' not in domain:
            raise ValueError('Valid email is required.')
        return normalized

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        normalized = value.strip()
        if sum(character.isdigit() for character in normalized) < MIN_PHONE_DIGITS:
            raise ValueError('Valid phone number is required.')
        return normalized

    @field_validator('address')
    @classmethod
    def validate_address(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized

    @field_validator('consultation_fee')
    @classmethod
    def validate_consultation_fee(cls, value: Decimal | None) -> Decimal | None:
        if value is not None and value <= 0:
            raise ValueError('Consultation fee must be positive.')
        return value


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus


class RecordPaymentRequest(BaseModel):
    succeeded: bool = True
    reference: str | None = None
    message: str | None = None


class AvailableSlotResponse(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    status: SlotStatus

    class Config:
        from_attributes = True


class AvailableSlotsResponse(BaseModel):
    date: date
    is_off_day: bool
    available_slots: list[AvailableSlotResponse]


class AvailableDaysResponse(BaseModel):
    days: list[date]


class AppointmentResponse(BaseModel):
    id: int
    user_id: int
    time_slot_id: int | None = None
    appointment_date: date
    start_time: datetime
    end_time: datetime
    first_name: str
    last_name: str
    email: str
    phone_number: str
    date_of_birth: date | None = None
    address: str | None = None
    notes: str | None = None
    status: AppointmentStatus
    consultation_fee: Decimal | None = None
    is_paid: bool
    payment_reference: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int


class AppointmentPageResponse(BaseModel):
    meta: PageMeta
    data: list[AppointmentResponse]


def _page_response(page: Page) -> AppointmentPageResponse:
    return AppointmentPageResponse(
        meta=PageMeta(**page.meta),
        data=[AppointmentResponse.model_validate(appointment) for appointment in page.items],
    )


@router.get('/available-days', response_model=AvailableDaysResponse)
def list_available_days(
    days: int = Query(default=config.AVAILABLE_DAYS_WINDOW, ge=1, le=config.MAX_AVAILABLE_DAYS_WINDOW),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    ensure_database_ready()

    with scheduling_errors(db):
        return AvailableDaysResponse(days=SchedulingService(db, clock=clock).available_days(days))


@router.get('/available-slots/{slot_date}', response_model=AvailableSlotsResponse)
def list_available_slots(slot_date: date, db: Session = Depends(get_db)):
    ensure_database_ready()

    with scheduling_errors(db):
        service = SchedulingService(db)
        is_off_day = service.is_closed(slot_date)
        slots = [] if is_off_day else service.available_slots(slot_date)

        return AvailableSlotsResponse(
            date=slot_date,
            is_off_day=is_off_day,
            available_slots=[AvailableSlotResponse.model_validate(slot) for slot in slots],
        )


@router.post('/create', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    details = RequesterDetails(**data.model_dump(exclude={'time_slot_id'}))
    with scheduling_errors(db):
        appointment = SchedulingService(db).book(data.time_slot_id, current_user.id, details)
        return AppointmentResponse.model_validate(appointment)


@router.get('/my-appointments', response_model=AppointmentPageResponse)
def list_my_appointments(
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    with scheduling_errors(db):
        page = SchedulingService(db).list_user_appointments(current_user.id, pagination)
        return _page_response(page)


@router.patch('/cancel/{appointment_id}', response_model=AppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    with scheduling_errors(db):
        appointment = SchedulingService(db).cancel(appointment_id, current_user.id)
        return AppointmentResponse.model_validate(appointment)


@router.get('/all', response_model=AppointmentPageResponse)
def list_all_appointments(
    search_term: str | None = Query(default=None, alias='searchTerm'),
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    start_date: date | None = Query(default=None, alias='startDate'),
    end_date: date | None = Query(default=None, alias='endDate'),
    pagination: PaginationParams = Depends(get_pagination),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    del admin
    ensure_database_ready()

    filters = AppointmentFilters(
        search_term=search_term.strip() if search_term and search_term.strip() else None,
        status=appointment_status,
        start_date=start_date,
        end_date=end_date,
    )
    with scheduling_errors(db):
        return _page_response(SchedulingService(db).list_appointments(filters, pagination))


@router.patch('/update-status/{appointment_id}', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    with scheduling_errors(db):
        appointment = SchedulingService(db).set_appointment_status(appointment_id, data.status, actor_for(admin))
        return AppointmentResponse.model_validate(appointment)


@router.post('/{appointment_id}/payment', response_model=AppointmentResponse)
def record_appointment_payment(
    appointment_id: int,
    data: RecordPaymentRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Record the outcome reported by the payment processor for a booking."""
    del admin
    ensure_database_ready()

    result = PaymentResult(succeeded=data.succeeded, reference=data.reference, message=data.message)
    with scheduling_errors(db):
        appointment = SchedulingService(db).apply_payment_result(appointment_id, result)
        return AppointmentResponse.model_validate(appointment)
