"""Read-only snapshots consumed by the availability resolver.

The records can be built from plain keyword arguments or validated straight
from ORM rows, so the resolver never touches a database session.
"""

from pydantic import BaseModel

DEFAULT_SERVICE_DURATION_MINUTES = 30
BLOCKING_STATUSES = frozenset({'pending', 'approved'})


class VetAvailabilityRecord(BaseModel):
    veterinarian_name: str
    working_days: list[str]
    start_time: str
    end_time: str
    appointment_duration: int = DEFAULT_SERVICE_DURATION_MINUTES
    lunch_start_time: str | None = None
    lunch_end_time: str | None = None

    class Config:
        from_attributes = True

    @property
    def lunch_window(self) -> tuple[str, str] | None:
        """Both lunch bounds, or ``None`` when either one is missing."""
        if self.lunch_start_time and self.lunch_end_time:
            return self.lunch_start_time, self.lunch_end_time
        return None


class ServiceRecord(BaseModel):
    id: int
    name: str
    price: float = 0.0
    duration_minutes: int | None = None

    class Config:
        from_attributes = True

    @property
    def effective_duration(self) -> int:
        return self.duration_minutes or DEFAULT_SERVICE_DURATION_MINUTES


class AppointmentRecord(BaseModel):
    id: int | None = None
    vet: str
    date: str
    time: str
    service_type: int | None = None
    status: str

    class Config:
        from_attributes = True

    @property
    def blocks_slot(self) -> bool:
        return self.status in BLOCKING_STATUSES
