"""Availability-to-timeslot resolution for the booking flow.

Every function here is pure: the caller passes the vet roster, the full
appointment list and the service catalog, and gets back booleans, vet names
or "HH:MM" slot strings. Bad data never raises; a vet with a malformed
record is simply not offered.
"""

import logging
from collections.abc import Collection, Iterable
from datetime import date, datetime, timedelta

from vetclinic.scheduling.records import (
    DEFAULT_SERVICE_DURATION_MINUTES,
    AppointmentRecord,
    ServiceRecord,
    VetAvailabilityRecord,
)
from vetclinic.scheduling.timeutils import date_key, day_name, format_time, parse_time, ranges_overlap

logger = logging.getLogger(__name__)

SLOT_INCREMENT_MINUTES = 30
DEFAULT_GRID_START = '08:00'
DEFAULT_GRID_END = '18:00'


def _find_availability(
    vet_name: str,
    roster: Iterable[VetAvailabilityRecord],
) -> VetAvailabilityRecord | None:
    return next((record for record in roster if record.veterinarian_name == vet_name), None)


def _service_durations(services: Iterable[ServiceRecord]) -> dict[int, int]:
    return {service.id: service.effective_duration for service in services}


def _appointment_interval(appointment: AppointmentRecord, durations: dict[int, int]) -> tuple[int, int]:
    start = parse_time(appointment.time)
    duration = durations.get(appointment.service_type, DEFAULT_SERVICE_DURATION_MINUTES)
    return start, start + duration


def _conflicts_with_bookings(
    vet_name: str,
    day_key: str,
    service_start: int,
    service_end: int,
    appointments: Iterable[AppointmentRecord],
    durations: dict[int, int],
) -> bool:
    for appointment in appointments:
        if appointment.vet != vet_name or appointment.date != day_key or not appointment.blocks_slot:
            continue

        try:
            booked_start, booked_end = _appointment_interval(appointment, durations)
        except ValueError:
            # An unreadable booking could hide a real one; keep the vet closed.
            logger.warning(
                'Appointment %s for %s has unreadable time %r; treating the day as blocked.',
                appointment.id,
                vet_name,
                appointment.time,
            )
            return True

        if ranges_overlap(service_start, service_end, booked_start, booked_end):
            return True

    return False


def is_vet_available_for_service(
    vet_name: str,
    day: date,
    start_time: str,
    service_duration_minutes: int,
    day_key: str,
    roster: Iterable[VetAvailabilityRecord],
    appointments: Iterable[AppointmentRecord],
    services: Iterable[ServiceRecord],
    active_vets: Collection[str] | None = None,
) -> bool:
    """Return whether ``vet_name`` can take a service starting at ``start_time``.

    The whole ``[start, start + duration)`` interval has to sit inside the
    vet's working hours on a working day, stay clear of the lunch window and
    not overlap any pending or approved appointment of that vet on
    ``day_key``. When ``active_vets`` is given, vets outside it are never
    available.
    """
    availability = _find_availability(vet_name, roster)
    if availability is None:
        return False

    if day_name(day) not in availability.working_days:
        return False

    if active_vets is not None and vet_name not in active_vets:
        return False

    try:
        service_start = parse_time(start_time)
        service_end = service_start + service_duration_minutes
        work_start = parse_time(availability.start_time)
        work_end = parse_time(availability.end_time)
        lunch = availability.lunch_window
        lunch_bounds = (parse_time(lunch[0]), parse_time(lunch[1])) if lunch else None
    except (TypeError, ValueError):
        logger.warning(
            'Unreadable times for %s (requested %r, hours %r-%r); treating as unavailable.',
            vet_name,
            start_time,
            availability.start_time,
            availability.end_time,
        )
        return False

    if service_start < work_start or service_end > work_end:
        return False

    if lunch_bounds and ranges_overlap(service_start, service_end, *lunch_bounds):
        return False

    return not _conflicts_with_bookings(
        vet_name,
        day_key,
        service_start,
        service_end,
        appointments,
        _service_durations(services),
    )


def available_vets_for_slot(
    day: date,
    start_time: str,
    service_duration_minutes: int,
    roster: Iterable[VetAvailabilityRecord],
    appointments: Iterable[AppointmentRecord],
    services: Iterable[ServiceRecord],
    active_vets: Collection[str] | None = None,
) -> list[str]:
    """Names of every vet free for the whole service at ``start_time``, sorted."""
    roster = list(roster)
    appointments = list(appointments)
    services = list(services)
    day_key = date_key(day)

    available = {
        record.veterinarian_name
        for record in roster
        if is_vet_available_for_service(
            record.veterinarian_name,
            day,
            start_time,
            service_duration_minutes,
            day_key,
            roster,
            appointments,
            services,
            active_vets,
        )
    }
    return sorted(available)


def _grid(start_minutes: int, end_minutes: int) -> list[str]:
    slots: list[str] = []
    current = start_minutes
    while current + SLOT_INCREMENT_MINUTES <= end_minutes:
        slots.append(format_time(current))
        current += SLOT_INCREMENT_MINUTES
    return slots


def default_slot_grid() -> list[str]:
    """08:00 to 17:30 in 30 minute steps, used when no vet has declared hours."""
    return _grid(parse_time(DEFAULT_GRID_START), parse_time(DEFAULT_GRID_END))


def roster_slot_grid(roster: Iterable[VetAvailabilityRecord]) -> list[str]:
    """30 minute grid from the earliest vet start to the latest vet end.

    An empty roster falls back to :func:`default_slot_grid`. Records with
    unreadable hours are left out of the bounds.
    """
    roster = list(roster)
    if not roster:
        return default_slot_grid()

    starts: list[int] = []
    ends: list[int] = []
    for record in roster:
        try:
            start, end = parse_time(record.start_time), parse_time(record.end_time)
        except ValueError:
            logger.warning('Skipping %s in slot grid: unreadable working hours.', record.veterinarian_name)
            continue
        starts.append(start)
        ends.append(end)

    if not starts:
        return []

    return _grid(min(starts), max(ends))


def candidate_slots_for_date(
    day: date,
    service: ServiceRecord | None,
    roster: Iterable[VetAvailabilityRecord],
    appointments: Iterable[AppointmentRecord],
    services: Iterable[ServiceRecord],
    active_vets: Collection[str] | None = None,
) -> list[str]:
    """Grid slots on ``day`` where at least one vet can take ``service``.

    With an empty roster the whole default grid is returned unfiltered so the
    calendar stays open until vets configure their hours. A single vet
    without a record is still never offered.
    """
    if service is None:
        return []

    roster = list(roster)
    if not roster:
        return default_slot_grid()

    appointments = list(appointments)
    services = list(services)
    duration = service.effective_duration

    slots = [
        slot
        for slot in roster_slot_grid(roster)
        if available_vets_for_slot(day, slot, duration, roster, appointments, services, active_vets)
    ]
    return sorted(slots, key=parse_time)


def is_slot_booked(
    day: date,
    start_time: str,
    service_duration_minutes: int,
    roster: Iterable[VetAvailabilityRecord],
    appointments: Iterable[AppointmentRecord],
    services: Iterable[ServiceRecord],
    active_vets: Collection[str] | None = None,
) -> bool:
    """A slot is booked when it has a live appointment and no vet is left for it."""
    appointments = list(appointments)
    day_key = date_key(day)

    has_booking = any(
        appointment.date == day_key and appointment.time == start_time and appointment.blocks_slot
        for appointment in appointments
    )
    if not has_booking:
        return False

    return not available_vets_for_slot(
        day,
        start_time,
        service_duration_minutes,
        roster,
        appointments,
        services,
        active_vets,
    )


def is_date_bookable(day: date, roster: Iterable[VetAvailabilityRecord]) -> bool:
    roster = list(roster)
    if not roster:
        return True

    weekday = day_name(day)
    return any(weekday in record.working_days for record in roster)


def is_time_in_past(day: date, start_time: str, now: datetime) -> bool:
    try:
        minutes = parse_time(start_time)
    except ValueError:
        return False

    slot_start = datetime(day.year, day.month, day.day) + timedelta(minutes=minutes)
    return slot_start < now
