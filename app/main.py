# app/main.py
"""
FastAPI application entry point.
Includes CORS, request timing, global error handlers, all routers and the
/uploads static mount. The secondary store and event bus live on app.state.
"""

import os
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import SessionLocal, create_tables
from app.errors import ServiceError
from app.routers import admin, auth, bookings, cars, events, health, messages, payouts, users
from app.secondary import SecondaryStore
from app.services.auth_service import seed_default_admin
from app.services.event_bus import EventBus
from app.utils.files import upload_root
from app.utils.logger import get_logger

logger = get_logger(__name__)

app = FastAPI(
    title="Car Hire API",
    description="Car rental backend: primary SQL store mirrored to MongoDB, OTP auth, live events.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS ─────────────────────────────────────────────────────────────────────
_origins = settings.cors_origin_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials="*" not in _origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
def _error(status_code: int, reason: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": reason, "message": message, **extra})


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.reason} ({exc.message})")
    return _error(exc.status_code, exc.reason, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return _error(status.HTTP_400_BAD_REQUEST, "validation_failed", "Invalid request", details=details)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    reason = {404: "not_found", 405: "method_not_allowed"}.get(exc.status_code, "http_error")
    return _error(exc.status_code, reason, str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error")


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(auth.router,     prefix="/api", tags=["Auth"])
app.include_router(admin.router,    prefix="/api", tags=["Admin"])
app.include_router(cars.router,     prefix="/api", tags=["Cars"])
app.include_router(bookings.router, prefix="/api", tags=["Bookings"])
app.include_router(users.router,    prefix="/api", tags=["Users"])
app.include_router(messages.router, prefix="/api", tags=["Messages"])
app.include_router(payouts.router,  prefix="/api", tags=["Payouts"])
app.include_router(events.router,   prefix="/api", tags=["Events"])
app.include_router(health.router,   prefix="/api", tags=["Health"])

# ── Static uploads ───────────────────────────────────────────────────────────
os.makedirs(upload_root(), exist_ok=True)
app.mount("/uploads", StaticFiles(directory=upload_root()), name="uploads")


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("Car hire backend starting up...")
    create_tables()
    logger.info("Database tables ready")

    db = SessionLocal()
    try:
        seed_default_admin(db)
    finally:
        db.close()

    app.state.event_bus = EventBus()
    app.state.secondary = SecondaryStore.from_settings()
    if app.state.secondary.configured:
        logger.info(f"Secondary store: {await app.state.secondary.ping()}")
    else:
        logger.info("Secondary store disabled (MONGODB_URI not set)")
    logger.info("API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("Car hire backend shutting down...")
    secondary = getattr(app.state, "secondary", None)
    if secondary is not None:
        await secondary.close()
