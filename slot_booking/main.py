import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from slot_booking.api.routes import admin, auth, catalog, orders, payments, slots
from slot_booking.application.admin_service import AdminService
from slot_booking.config import get_settings
from slot_booking.infrastructure.db.models import Base
from slot_booking.infrastructure.db.session import engine, get_db_session

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Slot Booking Engine")

app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(slots.router)
app.include_router(catalog.router)
app.include_router(auth.router)
app.include_router(admin.router)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


@app.get("/health")
def health_check():
    return {"status": "ok"}


def _wait_for_db() -> None:
    # Handles the common case where API starts before Postgres is ready.
    max_retries = settings.db_connect_max_retries
    retry_delay_seconds = settings.db_connect_retry_delay

    for attempt in range(1, max_retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database is reachable.")
            return
        except OperationalError:
            if attempt == max_retries:
                logger.exception(
                    "Database not reachable after %s attempts. Check DATABASE_URL.",
                    max_retries,
                )
                raise
            logger.warning(
                "Database not ready (attempt %s/%s). Retrying in %.1f seconds...",
                attempt,
                max_retries,
                retry_delay_seconds,
            )
            time.sleep(retry_delay_seconds)


@app.on_event("startup")
def on_startup() -> None:
    _wait_for_db()
    Base.metadata.create_all(bind=engine)

    if settings.reconcile_on_startup:
        with get_db_session() as db:
            report = AdminService(db).reconcile_ledger()
        logger.info(
            "Startup reconciliation reserved=%s orphans=%s",
            len(report.reserved),
            len(report.orphans),
        )
