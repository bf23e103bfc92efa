"""Appointment model definitions."""

from sqlalchemy import Column, Float, ForeignKey, Index, Integer, String
from vetclinic.database import Base


class Appointment(Base):
    """Represents a booked visit with one veterinarian."""
    __tablename__ = "appointments"
    __table_args__ = (Index("idx_appointments_vet_date", "vet", "date"),)

    id = Column(Integer, primary_key=True)
    pet_name = Column(String, nullable=False)
    owner_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=False, default='', index=True)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)  # HH:MM
    reason = Column(String)
    vet = Column(String, nullable=False)
    status = Column(String, nullable=False, default='pending')
    notes = Column(String)
    service_type = Column(Integer, ForeignKey("services.id"))
    price = Column(Float)
    payment_status = Column(String)
