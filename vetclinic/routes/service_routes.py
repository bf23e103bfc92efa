from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import AfterValidator, BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vetclinic.models.appointment import Appointment
from vetclinic.models.service import Service
from vetclinic.routes.dependencies import database_unavailable, get_db
from vetclinic.scheduling.records import BLOCKING_STATUSES

router = APIRouter(tags=['services'])


def _validate_price(value: float | None) -> float | None:
    if value is not None and value < 0:
        raise ValueError('Price cannot be negative.')
    return value


def _validate_duration(value: int | None) -> int | None:
    if value is not None and value <= 0:
        raise ValueError('Duration must be a positive number of minutes.')
    return value


Price = Annotated[float, AfterValidator(_validate_price)]
Duration = Annotated[int | None, AfterValidator(_validate_duration)]
NULLABLE_FIELDS = {'duration_minutes'}


class CreateServiceRequest(BaseModel):
    name: str
    description: str = ''
    price: Price
    duration_minutes: Duration = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service name is required.')
        return normalized


class UpdateServiceRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    price: Price | None = None
    duration_minutes: Duration = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service name cannot be blank.')
        return normalized


class ServiceResponse(BaseModel):
    id: int
    name: str
    description: str
    price: float
    duration_minutes: int | None = None

    class Config:
        from_attributes = True


def get_service_or_404(service_id: int, db: Session) -> Service:
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Service not found.',
        )
    return service


@router.get('', response_model=list[ServiceResponse])
def list_services(db: Session = Depends(get_db)):
    try:
        return db.query(Service).order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(data: CreateServiceRequest, db: Session = Depends(get_db)):
    try:
        service = Service(**data.model_dump())
        db.add(service)
        db.commit()
        db.refresh(service)

        return service
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{service_id}', response_model=ServiceResponse)
def update_service(service_id: int, data: UpdateServiceRequest, db: Session = Depends(get_db)):
    try:
        service = get_service_or_404(service_id, db)

        for field_name, value in data.model_dump(exclude_unset=True).items():
            if value is None and field_name not in NULLABLE_FIELDS:
                continue
            setattr(service, field_name, value)

        db.commit()
        db.refresh(service)

        return service
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{service_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_service(service_id: int, db: Session = Depends(get_db)):
    try:
        service = get_service_or_404(service_id, db)

        in_use = db.query(Appointment.id).filter(
            Appointment.service_type == service.id,
            Appointment.status.in_(sorted(BLOCKING_STATUSES)),
        ).first()
        if in_use is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This service is still used by active appointments.',
            )

        db.delete(service)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This service is still referenced by appointments.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
