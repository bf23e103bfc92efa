from datetime import date, datetime

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from vetclinic.main import app
from vetclinic.models.appointment import Appointment
from vetclinic.models.availability import VetAvailability
from vetclinic.models.service import Service
from vetclinic.routes.booking_routes import list_booking_slots, list_booking_vets
from vetclinic.routes.dependencies import get_db

MONDAY = date(2026, 1, 5)


@pytest.fixture
def morning_clinic(db_session):
    db_session.add_all([
        VetAvailability(
            veterinarian_name='Dr. A',
            working_days=['Monday'],
            start_time='09:00',
            end_time='12:00',
            appointment_duration=30,
        ),
        Service(id=1, name='Checkup', description='', price=500, duration_minutes=30),
        Service(id=2, name='Consultation', description='', price=400),
    ])
    db_session.commit()
    return db_session


def add_pending(db, time: str, vet: str = 'Dr. A') -> None:
    db.add(Appointment(
        pet_name='Mochi',
        owner_name='Ana Reyes',
        phone='0917 555 0101',
        email='ana@example.com',
        date='2026-01-05',
        time=time,
        vet=vet,
        status='pending',
        service_type=1,
    ))
    db.commit()


def test_list_booking_slots_for_single_vet_morning(morning_clinic, frozen_now) -> None:
    response = list_booking_slots(date=MONDAY, service_id=1, db=morning_clinic)

    assert response.slots == ['09:00', '09:30', '10:00', '10:30', '11:00', '11:30']
    assert response.booked_slots == []
    assert response.duration_minutes == 30
    assert response.date_available is True


def test_list_booking_slots_defaults_service_duration(morning_clinic, frozen_now) -> None:
    response = list_booking_slots(date=MONDAY, service_id=2, db=morning_clinic)

    assert response.duration_minutes == 30
    assert response.slots[-1] == '11:30'


def test_list_booking_slots_marks_fully_booked_times(morning_clinic, frozen_now) -> None:
    add_pending(morning_clinic, '10:00')

    response = list_booking_slots(date=MONDAY, service_id=1, db=morning_clinic)

    assert '10:00' not in response.slots
    assert response.booked_slots == ['10:00']


def test_list_booking_slots_hides_elapsed_times_today(morning_clinic, set_now) -> None:
    set_now(datetime(2026, 1, 5, 10, 10))

    response = list_booking_slots(date=MONDAY, service_id=1, db=morning_clinic)

    assert response.slots == ['10:30', '11:00', '11:30']


def test_list_booking_slots_on_day_off(morning_clinic, frozen_now) -> None:
    response = list_booking_slots(date=date(2026, 1, 6), service_id=1, db=morning_clinic)

    assert response.slots == []
    assert response.date_available is False


def test_list_booking_slots_opens_default_grid_without_roster(db_session, frozen_now) -> None:
    db_session.add(Service(id=1, name='Checkup', description='', price=500, duration_minutes=30))
    db_session.commit()

    response = list_booking_slots(date=MONDAY, service_id=1, db=db_session)

    assert response.slots[0] == '08:00'
    assert response.slots[-1] == '17:30'
    assert len(response.slots) == 20


def test_list_booking_slots_rejects_unknown_service(morning_clinic, frozen_now) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_booking_slots(date=MONDAY, service_id=42, db=morning_clinic)

    assert exception_info.value.status_code == 404


def test_list_booking_vets_excludes_booked_vet(morning_clinic) -> None:
    add_pending(morning_clinic, '10:00')

    at_ten = list_booking_vets(date=MONDAY, time='10:00', service_id=1, db=morning_clinic)
    at_half_nine = list_booking_vets(date=MONDAY, time='9:30', service_id=1, db=morning_clinic)

    assert at_ten.veterinarians == []
    assert at_half_nine.time == '09:30'
    assert at_half_nine.veterinarians == ['Dr. A']


def test_list_booking_vets_rejects_malformed_time(morning_clinic) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_booking_vets(date=MONDAY, time='half past nine', service_id=1, db=morning_clinic)

    assert exception_info.value.status_code == 400


def test_booking_flow_over_http(db_session, frozen_now) -> None:
    app.dependency_overrides[get_db] = lambda: db_session
    client = TestClient(app)
    try:
        response = client.put('/availability', json={
            'veterinarian_name': 'Dr. Lim',
            'working_days': ['Monday'],
            'start_time': '09:00',
            'end_time': '11:00',
            'lunch_start_time': '10:00',
            'lunch_end_time': '10:30',
        })
        assert response.status_code == 200

        response = client.post('/services', json={'name': 'Vaccination', 'price': 800, 'duration_minutes': 30})
        assert response.status_code == 201
        service_id = response.json()['id']

        response = client.get('/booking/slots', params={'date': '2026-01-05', 'service_id': service_id})
        assert response.status_code == 200
        assert response.json()['slots'] == ['09:00', '09:30', '10:30']

        response = client.get('/booking/vets', params={'date': '2026-01-05', 'time': '09:30', 'service_id': service_id})
        assert response.json()['veterinarians'] == ['Dr. Lim']

        booking = {
            'pet_name': 'Mochi',
            'owner_name': 'Ana Reyes',
            'phone': '0917 555 0101',
            'email': 'ana@example.com',
            'date': '2026-01-05',
            'time': '09:30',
            'vet': 'Dr. Lim',
            'service_type': service_id,
        }
        response = client.post('/appointments', json=booking)
        assert response.status_code == 201
        assert response.json()['status'] == 'pending'

        response = client.post('/appointments', json=booking)
        assert response.status_code == 409

        response = client.get('/booking/slots', params={'date': '2026-01-05', 'service_id': service_id})
        assert response.json()['slots'] == ['09:00', '10:30']
        assert response.json()['booked_slots'] == ['09:30']

        response = client.put('/availability', json={
            'veterinarian_name': 'Dr. Lim',
            'working_days': ['Monday'],
            'start_time': '09:00',
            'end_time': '08:00',
        })
        assert response.status_code == 422
    finally:
        app.dependency_overrides.clear()
