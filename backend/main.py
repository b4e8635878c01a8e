import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.database import Base, SessionLocal, engine, ensure_appointment_schema
from backend.models import appointment, doctor, queue_item, user  # noqa: F401
from backend.routes import appointment_routes, auth_routes, doctor_routes, queue_routes
from backend.seed import seed_sample_data

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Clinic Front Desk API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
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
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        return

    if not config.SEED_SAMPLE_DATA:
        return

    db = SessionLocal()
    try:
        seed_sample_data(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Seeding sample data failed.')
    finally:
        db.close()


@app.get('/')
def root():
    return {'status': 'Clinic Front Desk API Running'}


@app.get('/health')
def health():
    return {'status': 'ok', 'environment': config.APP_ENV}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(doctor_routes.router, prefix='/doctors')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(queue_routes.router, prefix='/queue')
