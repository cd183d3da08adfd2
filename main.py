import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from db import create_db_and_tables, engine
from errors import (
    AppError,
    app_error_handler,
    database_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from routers import adoptions, animals, auth, contacts, dashboards, donations, users, volunteers

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting adoption API in {settings.ENVIRONMENT} mode")
    create_db_and_tables()
    yield
    logger.info("Shutting down adoption API")
    engine.dispose()


app = FastAPI(title="Pet Adoption API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/health")
def health():
    return {"ok": True}


app.include_router(auth.router, prefix="/api/auth")
app.include_router(animals.router, prefix="/api/adopt")
app.include_router(adoptions.router, prefix="/api/adopt")
app.include_router(volunteers.router, prefix="/api/volunteer")
app.include_router(donations.router, prefix="/api/donation")
app.include_router(contacts.router, prefix="/api/contact")
app.include_router(dashboards.user_router, prefix="/api/userdashboard")
app.include_router(dashboards.admin_router, prefix="/api/admindashboard")
app.include_router(users.router, prefix="/api/useradmin")
app.include_router(users.admin_router, prefix="/api/admin")
