"""
SIM Order Lifecycle Service — FastAPI Application

Configurable event -> status workflow for number orders, atomic number
claim/release, a periodic reclamation sweep for abandoned unpaid orders and an
append-only audit trail.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from domain.errors import DomainError
from domain.responses import error_response
from routes import audit, events, health, inventory, orders, payments, scheduler, statuses

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create + seed DB tables, start the scheduler. Shutdown: stop it."""
    # Ensure data/ directory exists for SQLite
    os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import init_db
    await init_db()
    logger.info("Database initialized")

    from services import reclamation_service
    if settings.reclamation_enabled:
        await reclamation_service.start()
        logger.info("Reclamation scheduler started")

    yield  # app runs here

    await reclamation_service.stop()
    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="SIM Order Lifecycle API",
    description="Event-driven order workflow with automatic number reclamation and audit trail",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(events.router)
app.include_router(statuses.router)
app.include_router(audit.router)
app.include_router(scheduler.router)
app.include_router(inventory.router)


# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(DomainError)
async def domain_exception_handler(request, exc: DomainError):
    """Domain errors carry their own code, message and details."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message} {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.status_code, exc.message, exc.code, exc.details),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request, exc: RequestValidationError):
    """Body/query validation failures, wrapped in the same envelope."""
    return JSONResponse(
        status_code=422,
        content=error_response(
            422,
            "Request validation failed",
            "request_validation_error",
            {"errors": jsonable_encoder(exc.errors())},
        ),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    """
    Standardize plain HTTPException responses (404 for unknown routes, 405, ...).

    Keeps the original HTTP status code, but wraps the payload.
    """
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            exc.status_code,
            message,
            "http_error",
            detail if not isinstance(detail, str) else None,
        ),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions.

    Never return raw exception details to clients; the full traceback is
    logged server-side.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response(500, "Internal server error", "internal_error"),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
