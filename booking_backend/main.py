import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from booking_backend.core import config
from booking_backend.core.errors import BookingError, booking_error_handler
from booking_backend.database import Base, engine, ensure_appointment_schema, ensure_settings_schema
from booking_backend.models import appointment, business, customer, review, service, site_settings, user  # noqa: F401
from booking_backend.routes import (
    appointment_routes,
    auth_routes,
    customer_routes,
    review_routes,
    service_routes,
    settings_routes,
    user_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)

config.validate_runtime_config()

app = FastAPI(title='Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.add_exception_handler(BookingError, booking_error_handler)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_settings_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Booking API Running'}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(user_routes.router, prefix='/api/users')
app.include_router(service_routes.router, prefix='/api/services')
app.include_router(customer_routes.router, prefix='/api/customers')
app.include_router(appointment_routes.router, prefix='/api/appointments')
app.include_router(review_routes.router, prefix='/api/reviews')
app.include_router(settings_routes.router, prefix='/api/settings')
