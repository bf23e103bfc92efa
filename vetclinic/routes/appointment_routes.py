import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vetclinic.models.appointment import Appointment
from vetclinic.models.availability import VetAvailability
from vetclinic.routes.availability_routes import normalize_clock_time
from vetclinic.routes.booking_routes import current_time, find_service, load_appointments, load_roster, load_services
from vetclinic.routes.dependencies import database_unavailable, get_db
from vetclinic.scheduling.records import DEFAULT_SERVICE_DURATION_MINUTES
from vetclinic.scheduling.resolver import is_time_in_past, is_vet_available_for_service
from vetclinic.scheduling.timeutils import date_key

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600

AppointmentStatus = Literal['pending', 'approved', 'rejected', 'cancelled', 'rescheduled']
PaymentStatus = Literal['pending', 'down_payment_paid', 'fully_paid']


def _required_text(value: str, label: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(f'{label} is required.')
    return normalized


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    pet_name: str
    owner_name: str
    phone: str
    email: str = ''
    date: date
    time: str
    reason: str | None = None
    vet: str
    service_type: int
    status: Literal['pending', 'approved'] = 'pending'
    payment_status: PaymentStatus | None = None
    notes: str | None = None

    @field_validator('pet_name')
    @classmethod
    def validate_pet_name(cls, value: str) -> str:
        return _required_text(value, 'Pet name')

    @field_validator('owner_name')
    @classmethod
    def validate_owner_name(cls, value: str) -> str:
        return _required_text(value, 'Owner name')

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str) -> str:
        return _required_text(value, 'Phone number')

    @field_validator('vet')
    @classmethod
    def validate_vet(cls, value: str) -> str:
        return _required_text(value, 'Veterinarian')

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized and ('@' not in normalized or '.' not in normalized.split('@')[-1]):
            raise ValueError('Email is invalid.')
        return normalized

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return normalize_clock_time(value)

    @field_validator('reason', 'notes')
    @classmethod
    def validate_free_text(cls, value: str | None) -> str | None:
        return _optional_text(value)


class UpdateAppointmentStatusRequest(BaseModel):
    action: Literal['approve', 'reject', 'cancel', 'reschedule']
    notes: str | None = None
    new_date: date | None = None
    new_time: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _optional_text(value)

    @field_validator('new_time')
    @classmethod
    def validate_new_time(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_clock_time(value)

    @model_validator(mode='after')
    def validate_action_fields(self) -> 'UpdateAppointmentStatusRequest':
        if self.action in {'reject', 'cancel'} and not self.notes:
            raise ValueError('Notes are required to reject or cancel an appointment.')
        if self.action == 'reschedule' and (self.new_date is None or self.new_time is None):
            raise ValueError('A new date and time are required to reschedule.')
        return self


class AppointmentResponse(BaseModel):
    id: int
    pet_name: str
    owner_name: str
    phone: str
    email: str
    date: str
    time: str
    reason: str | None = None
    vet: str
    status: AppointmentStatus
    notes: str | None = None
    service_type: int | None = None
    price: float | None = None
    payment_status: PaymentStatus | None = None

    class Config:
        from_attributes = True


ACTION_STATUSES: dict[str, AppointmentStatus] = {
    'approve': 'approved',
    'reject': 'rejected',
    'cancel': 'cancelled',
    'reschedule': 'rescheduled',
}


def require_vet_available(
    db: Session,
    vet_name: str,
    day: date,
    start_time: str,
    service_id: int | None,
    exclude_appointment_id: int | None = None,
) -> None:
    """Re-check availability against fresh data right before a write.

    Bumping ``booking_version`` on the vet's availability row takes the row
    lock (the database write lock on SQLite) before anything is read, so two
    bookings for the same vet are checked one after the other. The lock is
    held until the caller commits or rolls back.
    """
    if is_time_in_past(day, start_time, current_time()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Appointments must be scheduled in the future.',
        )

    db.query(VetAvailability).filter(
        VetAvailability.veterinarian_name == vet_name,
    ).update(
        {VetAvailability.booking_version: VetAvailability.booking_version + 1},
        synchronize_session=False,
    )

    services = load_services(db)
    duration = next(
        (service.effective_duration for service in services if service.id == service_id),
        DEFAULT_SERVICE_DURATION_MINUTES,
    )
    day_key = date_key(day)
    appointments = [
        appointment
        for appointment in load_appointments(db, day_key)
        if appointment.id != exclude_appointment_id
    ]

    if not is_vet_available_for_service(
        vet_name,
        day,
        start_time,
        duration,
        day_key,
        load_roster(db),
        appointments,
        services,
    ):
        db.rollback()
        logger.info('Refused booking for %s on %s at %s: vet unavailable.', vet_name, day_key, start_time)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This veterinarian is not available for the selected time.',
        )


def get_appointment_or_404(appointment_id: int, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )
    return appointment


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    date: date | None = Query(default=None),
    email: str | None = Query(default=None),
    vet: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Appointment)
        if date is not None:
            query = query.filter(Appointment.date == date_key(date))
        if email:
            query = query.filter(Appointment.email == email.strip().lower())
        if vet:
            query = query.filter(Appointment.vet == vet.strip())

        return query.order_by(Appointment.date.asc(), Appointment.time.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    try:
        service = find_service(data.service_type, load_services(db))
        require_vet_available(db, data.vet, data.date, data.time, service.id)

        appointment = Appointment(
            pet_name=data.pet_name,
            owner_name=data.owner_name,
            phone=data.phone,
            email=data.email,
            date=date_key(data.date),
            time=data.time,
            reason=data.reason,
            vet=data.vet,
            status=data.status,
            notes=data.notes,
            service_type=service.id,
            price=service.price,
            payment_status=data.payment_status,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    db: Session = Depends(get_db),
):
    try:
        appointment = get_appointment_or_404(appointment_id, db)

        if appointment.status != 'pending':
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Only pending appointments can be updated.',
            )

        if data.action == 'reschedule':
            require_vet_available(
                db,
                appointment.vet,
                data.new_date,
                data.new_time,
                appointment.service_type,
                exclude_appointment_id=appointment.id,
            )
            appointment.date = date_key(data.new_date)
            appointment.time = data.new_time

        appointment.status = ACTION_STATUSES[data.action]
        if data.notes:
            appointment.notes = data.notes

        db.commit()
        db.refresh(appointment)

        return appointment
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_appointment(appointment_id: int, db: Session = Depends(get_db)):
    try:
        appointment = get_appointment_or_404(appointment_id, db)
        db.delete(appointment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
