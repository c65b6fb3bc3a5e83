import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from schoolportal.app_logger import setup_logging
from schoolportal.core import config
from schoolportal.database import Base, engine, ensure_registration_schema
from schoolportal.models import message, profile, registration, school_class, user, user_role  # noqa: F401
from schoolportal.routes import (
    application_routes,
    auth_routes,
    dashboard_routes,
    message_routes,
    profile_routes,
    registration_routes,
    storage_routes,
)

setup_logging()

app = FastAPI(title=config.SCHOOL_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    if config.AUTO_ACCEPT_ADMIN_REGISTRATIONS:
        logger.warning('AUTO_ACCEPT_ADMIN_REGISTRATIONS is on: admin applicants are accepted without review.')
    try:
        Base.metadata.create_all(bind=engine)
        ensure_registration_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': f'{config.SCHOOL_NAME} API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(registration_routes.router, prefix='/registration')
app.include_router(application_routes.router, prefix='/applications')
app.include_router(storage_routes.router, prefix='/uploads')
app.include_router(dashboard_routes.router, prefix='/dashboards')
app.include_router(message_routes.router, prefix='/messages')
app.include_router(profile_routes.router, prefix='/profiles')

app.mount('/storage', StaticFiles(directory=config.STORAGE_ROOT, check_dir=False), name='storage')
