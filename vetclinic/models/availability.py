"""Veterinarian availability model definitions."""

from sqlalchemy import JSON, Column, Integer, String
from vetclinic.database import Base


class VetAvailability(Base):
    """Weekly working pattern declared by one veterinarian."""
    __tablename__ = "vet_availability"

    id = Column(Integer, primary_key=True)
    veterinarian_name = Column(String, unique=True, index=True, nullable=False)
    working_days = Column(JSON, nullable=False, default=list)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    appointment_duration = Column(Integer, nullable=False, default=30)
    break_time = Column(Integer, nullable=False, default=0)
    lunch_start_time = Column(String(5))
    lunch_end_time = Column(String(5))
    # Bumped by every booking write for this vet so concurrent writes serialize.
    booking_version = Column(Integer, nullable=False, default=0)
