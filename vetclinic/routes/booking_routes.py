import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vetclinic.core import config
from vetclinic.models.appointment import Appointment
from vetclinic.models.availability import VetAvailability
from vetclinic.models.service import Service
from vetclinic.routes.availability_routes import normalize_clock_time
from vetclinic.routes.dependencies import database_unavailable, get_db
from vetclinic.scheduling.records import AppointmentRecord, ServiceRecord, VetAvailabilityRecord
from vetclinic.scheduling.resolver import (
    available_vets_for_slot,
    candidate_slots_for_date,
    is_date_bookable,
    is_slot_booked,
    is_time_in_past,
    roster_slot_grid,
)
from vetclinic.scheduling.timeutils import date_key

router = APIRouter(tags=['booking'])

logger = logging.getLogger(__name__)


class BookingSlotsResponse(BaseModel):
    date: date
    service_id: int
    duration_minutes: int
    date_available: bool
    slots: list[str]
    booked_slots: list[str]


class BookingVetsResponse(BaseModel):
    date: date
    time: str
    service_id: int
    duration_minutes: int
    veterinarians: list[str]


def current_time() -> datetime:
    return datetime.now()


def load_roster(db: Session) -> list[VetAvailabilityRecord]:
    return [VetAvailabilityRecord.model_validate(row) for row in db.query(VetAvailability).all()]


def load_services(db: Session) -> list[ServiceRecord]:
    return [ServiceRecord.model_validate(row) for row in db.query(Service).all()]


def load_appointments(db: Session, day_key: str | None = None) -> list[AppointmentRecord]:
    query = db.query(Appointment)
    if day_key is not None:
        query = query.filter(Appointment.date == day_key)
    return [AppointmentRecord.model_validate(row) for row in query.all()]


def find_service(service_id: int, services: list[ServiceRecord]) -> ServiceRecord:
    service = next((service for service in services if service.id == service_id), None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Service not found.',
        )
    return service


@router.get('/slots', response_model=BookingSlotsResponse)
def list_booking_slots(
    date: date = Query(...),
    service_id: int = Query(...),
    db: Session = Depends(get_db),
):
    try:
        services = load_services(db)
        roster = load_roster(db)
        appointments = load_appointments(db, date_key(date))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    service = find_service(service_id, services)
    duration = service.effective_duration

    slots = candidate_slots_for_date(date, service, roster, appointments, services)
    booked_slots = [
        slot
        for slot in roster_slot_grid(roster)
        if is_slot_booked(date, slot, duration, roster, appointments, services)
    ]

    if config.HIDE_PAST_SLOTS:
        now = current_time()
        slots = [slot for slot in slots if not is_time_in_past(date, slot, now)]
        booked_slots = [slot for slot in booked_slots if not is_time_in_past(date, slot, now)]

    if not slots:
        logger.info('No bookable slots on %s for service %s.', date_key(date), service_id)

    return BookingSlotsResponse(
        date=date,
        service_id=service.id,
        duration_minutes=duration,
        date_available=is_date_bookable(date, roster),
        slots=slots,
        booked_slots=booked_slots,
    )


@router.get('/vets', response_model=BookingVetsResponse)
def list_booking_vets(
    date: date = Query(...),
    time: str = Query(...),
    service_id: int = Query(...),
    db: Session = Depends(get_db),
):
    try:
        start_time = normalize_clock_time(time)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    try:
        services = load_services(db)
        roster = load_roster(db)
        appointments = load_appointments(db, date_key(date))
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    service = find_service(service_id, services)
    duration = service.effective_duration

    return BookingVetsResponse(
        date=date,
        time=start_time,
        service_id=service.id,
        duration_minutes=duration,
        veterinarians=available_vets_for_slot(date, start_time, duration, roster, appointments, services),
    )
