import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from vetclinic.database import Base  # noqa: E402
from vetclinic.models import appointment, availability, service  # noqa: E402,F401

CLOCK_MODULES = (
    'vetclinic.routes.booking_routes',
    'vetclinic.routes.appointment_routes',
)


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def set_now(monkeypatch: pytest.MonkeyPatch):
    def freeze(now: datetime) -> datetime:
        for module_name in CLOCK_MODULES:
            monkeypatch.setattr(f'{module_name}.current_time', lambda: now)
        return now

    return freeze


@pytest.fixture
def frozen_now(set_now):
    return set_now(datetime(2026, 1, 1, 8, 0))
