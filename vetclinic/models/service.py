"""Service catalog model definitions."""

from sqlalchemy import Column, Float, Integer, String
from vetclinic.database import Base


class Service(Base):
    """A bookable clinic service."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default='')
    price = Column(Float, nullable=False)
    duration_minutes = Column(Integer)  # NULL means the 30 minute default
