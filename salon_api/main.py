import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from salon_api.cache import build_lookup_cache
from salon_api.core import config
from salon_api.database import Base, engine, ensure_appointment_schema, ensure_working_schedule_schema
from salon_api.models import appointment, blocked_date, booking_progress, service, user, working_schedule  # noqa: F401
from salon_api.routes import appointment_routes, booking_progress_routes, schedule_routes, service_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Salon Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_working_schedule_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('startup')
def initialize_lookup_cache() -> None:
    app.state.lookup_cache = build_lookup_cache()


@app.get('/')
def root():
    return {'status': 'Salon Booking API Running'}


app.include_router(schedule_routes.router, prefix='/schedule')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(service_routes.router, prefix='/services')
app.include_router(booking_progress_routes.router, prefix='/booking-progress')
