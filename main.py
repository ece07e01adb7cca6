import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from psycopg import errors as pg_errors
from starlette.middleware.sessions import SessionMiddleware

import config
from db import close_pool
from errors import MarketplaceError
from init_db import init_database
from logging_config import configure_logging
from utils import setup_upload_directories

# --- 1. Logging ---
configure_logging()


# --- 2. Startup / shutdown ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # create or migrate tables on every boot so a fresh database just works
    init_database()
    setup_upload_directories()
    logger.info(f"HyperLocal Jobs API started ({config.ENVIRONMENT})")
    yield
    await close_pool()


# --- 3. App ---
app = FastAPI(title="HyperLocal Jobs API", lifespan=lifespan)

# Uploaded assessment videos, e.g. /uploads/assessments/<worker>/<file>.webm
os.makedirs(config.UPLOAD_ROOT, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_ROOT), name="uploads")

# --- 4. Session cookie (web clients; mobile clients send a Bearer token) ---
app.add_middleware(
    SessionMiddleware,
    secret_key=config.SECRET_KEY,
    session_cookie="hl_session",
    max_age=config.SESSION_TTL_DAYS * 86400,
    same_site="lax",
    https_only=config.IS_PRODUCTION,
)


# --- 5. Error responses: always {"error": message} ---
@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"error": f"{field}: {message}" if field else message})


@app.exception_handler(pg_errors.UniqueViolation)
async def unique_violation_handler(request: Request, exc: pg_errors.UniqueViolation):
    return JSONResponse(status_code=409, content={"error": "Record already exists"})


@app.exception_handler(pg_errors.InvalidTextRepresentation)
async def invalid_id_handler(request: Request, exc: pg_errors.InvalidTextRepresentation):
    # malformed UUIDs in paths or bodies
    return JSONResponse(status_code=400, content={"error": "Invalid id"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --- 6. Routers ---
from routes.admin import router as admin_router
from routes.ai import router as ai_router
from routes.applications import router as applications_router
from routes.auth import router as auth_router
from routes.chat import router as chat_router
from routes.email import router as email_router
from routes.escrow import router as escrow_router
from routes.jobs import router as jobs_router
from routes.kyc import router as kyc_router
from routes.notifications import router as notifications_router
from routes.rating import router as rating_router
from routes.reports import router as reports_router
from routes.users import router as users_router

app.include_router(auth_router, prefix="/api/auth")
app.include_router(email_router, prefix="/api/email")
app.include_router(users_router, prefix="/api/users")
app.include_router(jobs_router, prefix="/api/jobs")
app.include_router(applications_router, prefix="/api/applications")
app.include_router(rating_router, prefix="/api/ratings")
app.include_router(reports_router, prefix="/api/reports")
app.include_router(escrow_router, prefix="/api/escrow")
app.include_router(chat_router, prefix="/api/chat")
app.include_router(notifications_router, prefix="/api/notifications")
app.include_router(admin_router, prefix="/api/admin")
app.include_router(ai_router, prefix="/api/ai")
app.include_router(kyc_router, prefix="/api/kyc")


@app.get("/")
async def root():
    return {"name": "HyperLocal Jobs API", "status": "ok"}
