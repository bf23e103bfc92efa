from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vetclinic.models.availability import VetAvailability
from vetclinic.routes.dependencies import database_unavailable, get_db
from vetclinic.scheduling.records import DEFAULT_SERVICE_DURATION_MINUTES
from vetclinic.scheduling.timeutils import DAY_NAMES, format_time, parse_time

router = APIRouter(tags=['availability'])


def normalize_clock_time(value: str) -> str:
    """Validate an "HH:MM" wall-clock time and return it zero-padded."""
    parts = value.strip().split(':')
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ValueError('Times must use the HH:MM format.')

    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 23 or minutes > 59:
        raise ValueError('Times must be between 00:00 and 23:59.')

    return format_time(hours * 60 + minutes)


class UpsertAvailabilityRequest(BaseModel):
    veterinarian_name: str
    working_days: list[str]
    start_time: str
    end_time: str
    appointment_duration: int = DEFAULT_SERVICE_DURATION_MINUTES
    break_time: int = 0
    lunch_start_time: str | None = None
    lunch_end_time: str | None = None

    @field_validator('veterinarian_name')
    @classmethod
    def validate_veterinarian_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Veterinarian name is required.')
        return normalized

    @field_validator('working_days')
    @classmethod
    def validate_working_days(cls, value: list[str]) -> list[str]:
        normalized: list[str] = []
        for day in value:
            day_name = day.strip().capitalize()
            if day_name not in DAY_NAMES:
                raise ValueError(f'Unknown working day: {day!r}.')
            if day_name not in normalized:
                normalized.append(day_name)

        if not normalized:
            raise ValueError('Please select at least one working day.')

        return normalized

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_working_hours(cls, value: str) -> str:
        return normalize_clock_time(value)

    @field_validator('lunch_start_time', 'lunch_end_time')
    @classmethod
    def validate_lunch_times(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return normalize_clock_time(value)

    @field_validator('appointment_duration')
    @classmethod
    def validate_appointment_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Appointment duration must be a positive number of minutes.')
        return value

    @field_validator('break_time')
    @classmethod
    def validate_break_time(cls, value: int) -> int:
        if value < 0:
            raise ValueError('Break time cannot be negative.')
        return value

    @model_validator(mode='after')
    def validate_time_ranges(self) -> 'UpsertAvailabilityRequest':
        work_start = parse_time(self.start_time)
        work_end = parse_time(self.end_time)
        if work_start >= work_end:
            raise ValueError('End time must be after start time.')

        if self.lunch_start_time is None and self.lunch_end_time is None:
            return self

        if self.lunch_start_time is None or self.lunch_end_time is None:
            raise ValueError('Please set both start and end time for lunch break.')

        lunch_start = parse_time(self.lunch_start_time)
        lunch_end = parse_time(self.lunch_end_time)
        if lunch_start >= lunch_end:
            raise ValueError('Lunch end time must be after lunch start time.')
        if lunch_start < work_start or lunch_end > work_end:
            raise ValueError('Lunch break must be within working hours.')

        return self


class AvailabilityResponse(BaseModel):
    id: int
    veterinarian_name: str
    working_days: list[str]
    start_time: str
    end_time: str
    appointment_duration: int
    break_time: int
    lunch_start_time: str | None = None
    lunch_end_time: str | None = None

    class Config:
        from_attributes = True


@router.get('', response_model=list[AvailabilityResponse])
def list_availability(db: Session = Depends(get_db)):
    try:
        return db.query(VetAvailability).order_by(VetAvailability.veterinarian_name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{veterinarian_name}', response_model=AvailabilityResponse)
def get_availability(veterinarian_name: str, db: Session = Depends(get_db)):
    try:
        availability = db.query(VetAvailability).filter(
            VetAvailability.veterinarian_name == veterinarian_name.strip(),
        ).first()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    if not availability:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='No availability set for this veterinarian.',
        )

    return availability


@router.put('', response_model=AvailabilityResponse)
def upsert_availability(data: UpsertAvailabilityRequest, db: Session = Depends(get_db)):
    try:
        availability = db.query(VetAvailability).filter(
            VetAvailability.veterinarian_name == data.veterinarian_name,
        ).first()

        if availability is None:
            availability = VetAvailability(veterinarian_name=data.veterinarian_name)
            db.add(availability)

        availability.working_days = data.working_days
        availability.start_time = data.start_time
        availability.end_time = data.end_time
        availability.appointment_duration = data.appointment_duration
        availability.break_time = data.break_time
        availability.lunch_start_time = data.lunch_start_time
        availability.lunch_end_time = data.lunch_end_time

        db.commit()
        db.refresh(availability)

        return availability
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
