import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from vetclinic.core import config
from vetclinic.database import Base, engine
from vetclinic.models import appointment, availability, service  # noqa: F401  registers tables on Base
from vetclinic.routes import appointment_routes, availability_routes, booking_routes, service_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Veterinary Clinic Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Veterinary Clinic API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(service_routes.router, prefix='/services')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(booking_routes.router, prefix='/booking')
