from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from season_calendar import __version__
from season_calendar.config import setup_logging
from season_calendar.database import close_db, init_db
from season_calendar.dependencies import get_registry, reset_registry
from season_calendar.routers import main_router
from season_calendar.schemas import ErrorDetail, StandardErrorResponse
from season_calendar.services.countdown_service import CountdownService
from season_calendar.services.document_store import DocumentStore, StoreError, StoreWriteError
from season_calendar.services.navigation_service import NavigationBoundsError, NavigationSession
from season_calendar.services.schedule_service import ScheduleSession
from season_calendar.services.scheduler_service import countdown_scheduler
from season_calendar.services.settings_service import SettingsSession
from season_calendar.utils.logging_helpers import log_section
from season_calendar.utils.season_index import ChannelIndexError


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    with log_section(logger, "Season Calendar startup"):
        await init_db()

        store = DocumentStore()
        schedule = ScheduleSession(store)
        navigation = NavigationSession(store)
        user_settings = SettingsSession(store)
        countdowns = CountdownService(store)

        registry = get_registry()
        registry.register(DocumentStore, store)
        registry.register(ScheduleSession, schedule)
        registry.register(NavigationSession, navigation)
        registry.register(SettingsSession, user_settings)
        registry.register(CountdownService, countdowns)

        await schedule.load()
        try:
            await schedule.initialize_if_empty()
        except StoreWriteError as e:
            logger.error(f"Failed to seed schedule: {e}")
        await navigation.load()
        await user_settings.load()

        schedule.start_sync()
        navigation.start_sync()
        user_settings.start_sync()

        countdown_scheduler.start(countdowns)

    yield

    with log_section(logger, "Season Calendar shutdown"):
        countdown_scheduler.shutdown()
        # pending debounced writes go out before the engine closes
        await navigation.close()
        await user_settings.close()
        schedule.stop_sync()
        await close_db()
        reset_registry()


app = FastAPI(
    title="Season Calendar",
    version=__version__,
    lifespan=lifespan
)

app.include_router(main_router)


def _error_response(status_code: int, code: str, message: str, context: dict | None = None) -> JSONResponse:
    body = StandardErrorResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        error=ErrorDetail(code=code, message=message, context=context),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(StoreError)
async def store_exception_handler(request: Request, exc: StoreError):
    """Surface document store failures as 503"""
    logger.error(f"Store failure on {request.method} {request.url.path}: {exc}")
    return _error_response(503, "STORE_UNAVAILABLE", str(exc))


@app.exception_handler(NavigationBoundsError)
@app.exception_handler(ChannelIndexError)
async def bounds_exception_handler(request: Request, exc: ValueError):
    """Out-of-range day, page or channel"""
    return _error_response(422, "OUT_OF_RANGE", str(exc))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed path, query or body"""
    logger.warning(f"Validation error for {request.method} {request.url.path}: {exc.errors()}")

    # inputs are truncated and stringified so the body stays serializable
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())),
            "type": error.get("type"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100],
        }
        for error in exc.errors()
    ]
    return _error_response(422, "INVALID_REQUEST", "Request validation failed", {"errors": errors})
