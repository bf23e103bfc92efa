import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from vetclinic.models.appointment import Appointment
from vetclinic.routes.service_routes import (
    CreateServiceRequest,
    UpdateServiceRequest,
    create_service,
    list_services,
    remove_service,
    update_service,
)


def test_create_service_request_strips_name() -> None:
    request = CreateServiceRequest(name='  Vaccination ', price=800)

    assert request.name == 'Vaccination'
    assert request.duration_minutes is None


@pytest.mark.parametrize(
    'fields',
    [
        {'name': ' ', 'price': 100},
        {'name': 'Dental', 'price': -1},
        {'name': 'Dental', 'price': 100, 'duration_minutes': 0},
    ],
)
def test_create_service_request_rejects_invalid_values(fields: dict) -> None:
    with pytest.raises(ValidationError):
        CreateServiceRequest(**fields)


def test_create_and_list_services(db_session) -> None:
    create_service(data=CreateServiceRequest(name='Surgery', price=5000, duration_minutes=90), db=db_session)
    create_service(data=CreateServiceRequest(name='Checkup', price=500), db=db_session)

    services = list_services(db=db_session)

    assert [service.name for service in services] == ['Checkup', 'Surgery']
    assert services[0].duration_minutes is None
    assert services[1].duration_minutes == 90


def test_update_service_changes_only_sent_fields(db_session) -> None:
    service = create_service(
        data=CreateServiceRequest(name='Grooming', description='Bath and trim', price=300, duration_minutes=45),
        db=db_session,
    )

    updated = update_service(
        service_id=service.id,
        data=UpdateServiceRequest(price=350),
        db=db_session,
    )

    assert updated.price == 350
    assert updated.description == 'Bath and trim'
    assert updated.duration_minutes == 45


def test_update_service_can_clear_duration(db_session) -> None:
    service = create_service(data=CreateServiceRequest(name='Grooming', price=300, duration_minutes=45), db=db_session)

    updated = update_service(
        service_id=service.id,
        data=UpdateServiceRequest(duration_minutes=None, name=None),
        db=db_session,
    )

    assert updated.duration_minutes is None
    assert updated.name == 'Grooming'


def test_update_service_returns_not_found_when_missing(db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_service(service_id=404, data=UpdateServiceRequest(price=1), db=db_session)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Service not found.'


def test_remove_service_deletes_row(db_session) -> None:
    service = create_service(data=CreateServiceRequest(name='Deworming', price=250), db=db_session)

    remove_service(service_id=service.id, db=db_session)

    assert list_services(db=db_session) == []


def add_booking(db, service_id: int, status: str) -> None:
    db.add(Appointment(
        pet_name='Mochi',
        owner_name='Ana Reyes',
        phone='0917 555 0101',
        email='ana@example.com',
        date='2026-01-05',
        time='10:00',
        vet='Dr. A',
        status=status,
        service_type=service_id,
    ))
    db.commit()


@pytest.mark.parametrize('booking_status', ['pending', 'approved'])
def test_remove_service_refuses_while_active_bookings_use_it(db_session, booking_status: str) -> None:
    service = create_service(data=CreateServiceRequest(name='Surgery', price=5000, duration_minutes=60), db=db_session)
    add_booking(db_session, service.id, booking_status)

    with pytest.raises(HTTPException) as exception_info:
        remove_service(service_id=service.id, db=db_session)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This service is still used by active appointments.'
    assert [row.name for row in list_services(db=db_session)] == ['Surgery']


def test_remove_service_ignores_closed_bookings(db_session) -> None:
    service = create_service(data=CreateServiceRequest(name='Surgery', price=5000, duration_minutes=60), db=db_session)
    add_booking(db_session, service.id, 'cancelled')
    add_booking(db_session, service.id, 'rejected')

    remove_service(service_id=service.id, db=db_session)

    assert list_services(db=db_session) == []


def test_remove_service_reports_foreign_key_failure_as_conflict(db_session, monkeypatch: pytest.MonkeyPatch) -> None:
    service = create_service(data=CreateServiceRequest(name='Surgery', price=5000), db=db_session)

    def fail_commit() -> None:
        raise IntegrityError('DELETE FROM services', {}, Exception('FOREIGN KEY constraint failed'))

    monkeypatch.setattr(db_session, 'commit', fail_commit)

    with pytest.raises(HTTPException) as exception_info:
        remove_service(service_id=service.id, db=db_session)

    assert exception_info.value.status_code == 409
