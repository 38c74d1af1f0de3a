"""
Appointment state machine.

    PENDING ──► CONFIRMED ──► COMPLETED
       │            │
       └────────────┴──► CANCELLED   (releases the slot)

PENDING may also go straight to COMPLETED. COMPLETED and CANCELLED are terminal.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from slot_booking.core.exceptions import AppointmentNotFound, InvalidTransition, ScheduleValidationError
from slot_booking.models.appointment import Appointment, AppointmentStatus
from slot_booking.models.user import ROLE_ADMIN, ROLE_USER
from slot_booking.scheduling.slot_ledger import SlotLedger
from slot_booking.utils.pagination import Page, PaginationParams, paginate

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

SORTABLE_FIELDS = {
    'appointment_date': Appointment.appointment_date,
    'created_at': Appointment.created_at,
    'start_time': Appointment.start_time,
    'status': Appointment.status,
}
DEFAULT_SORT_FIELD = 'appointment_date'


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, as supplied by the identity provider."""
    user_id: int
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass
class RequesterDetails:
    first_name: str
    last_name: str
    email: str
    phone_number: str
    date_of_birth: date | None = None
    address: str | None = None
    notes: str | None = None
    consultation_fee: Decimal | None = None


@dataclass
class AppointmentFilters:
    search_term: str | None = None
    status: AppointmentStatus | None = None
    start_date: date | None = None
    end_date: date | None = None


class AppointmentLifecycle:
    def __init__(self, db: Session, ledger: SlotLedger) -> None:
        self.db = db
        self.ledger = ledger

    def get(self, appointment_id: int, lock: bool = False) -> Appointment:
        statement = (
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        )
        if lock:
            statement = statement.with_for_update()
        appointment = self.db.execute(statement).scalar_one_or_none()
        if appointment is None:
            raise AppointmentNotFound()
        return appointment

    def create(self, slot_id: int, requester_id: int, details: RequesterDetails) -> Appointment:
        """Reserve the slot and insert a PENDING appointment in the caller's transaction."""
        slot = self.ledger.reserve(slot_id)

        appointment = Appointment(
            user_id=requester_id,
            time_slot_id=slot.id,
            appointment_date=slot.start_time.date(),
            start_time=slot.start_time,
            end_time=slot.end_time,
            status=AppointmentStatus.PENDING,
            is_paid=False,
            **asdict(details),
        )
        self.db.add(appointment)
        self.db.flush()

        logger.info('Booked slot %s as appointment %s for user %s', slot.id, appointment.id, requester_id)
        return appointment

    def transition(self, appointment_id: int, new_status: AppointmentStatus, actor: Actor) -> Appointment:
        appointment = self.get(appointment_id, lock=True)

        if not actor.is_admin:
            # Someone else's appointment looks exactly like a missing one.
            if appointment.user_id != actor.user_id:
                raise AppointmentNotFound()
            if new_status != AppointmentStatus.CANCELLED:
                raise InvalidTransition('Only administrators can change appointment status.')
            if appointment.status == AppointmentStatus.COMPLETED:
                raise InvalidTransition('Cannot cancel completed appointment.')

        current_status = appointment.status
        if new_status not in ALLOWED_TRANSITIONS[current_status]:
            raise InvalidTransition(
                f'Cannot change appointment status from {current_status.value} to {new_status.value}.'
            )

        result = self.db.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == current_status)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransition('Appointment status changed concurrently; reload and retry.')

        if new_status == AppointmentStatus.CANCELLED and appointment.time_slot_id is not None:
            self.ledger.release(appointment.time_slot_id)

        logger.info(
            'Appointment %s moved %s -> %s by user %s',
            appointment_id,
            current_status.value,
            new_status.value,
            actor.user_id,
        )
        return self.get(appointment_id)

    def record_payment(self, appointment_id: int, reference: str | None) -> Appointment:
        appointment = self.get(appointment_id, lock=True)
        if appointment.status == AppointmentStatus.CANCELLED:
            raise InvalidTransition('Cannot record payment for a cancelled appointment.')

        appointment.is_paid = True
        appointment.payment_reference = reference or appointment.payment_reference
        self.db.flush()

        logger.info('Recorded payment %s for appointment %s', reference, appointment_id)
        return appointment

    def list_for_user(self, user_id: int, pagination: PaginationParams) -> Page:
        statement = select(Appointment).where(Appointment.user_id == user_id)
        return paginate(self.db, self._ordered(statement, pagination), pagination)

    def list_all(self, filters: AppointmentFilters, pagination: PaginationParams) -> Page:
        statement = select(Appointment)

        if filters.search_term:
            pattern = f'%{filters.search_term.strip()}%'
            statement = statement.where(
                or_(
                    Appointment.first_name.ilike(pattern),
                    Appointment.last_name.ilike(pattern),
                    Appointment.email.ilike(pattern),
                    Appointment.phone_number.ilike(pattern),
                )
            )
        if filters.status is not None:
            statement = statement.where(Appointment.status == filters.status)
        if filters.start_date is not None:
            statement = statement.where(Appointment.appointment_date >= filters.start_date)
        if filters.end_date is not None:
            statement = statement.where(Appointment.appointment_date <= filters.end_date)

        return paginate(self.db, self._ordered(statement, pagination), pagination)

    @staticmethod
    def _ordered(statement, pagination: PaginationParams):
        sort_field = pagination.sort_by or DEFAULT_SORT_FIELD
        column = SORTABLE_FIELDS.get(sort_field)
        if column is None:
            raise ScheduleValidationError(
                f'Cannot sort by {sort_field!r}; choose one of {", ".join(sorted(SORTABLE_FIELDS))}.'
            )
        if pagination.sort_order == 'asc':
            return statement.order_by(column.asc(), Appointment.id.asc())
        return statement.order_by(column.desc(), Appointment.id.desc())
