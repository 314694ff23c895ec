import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .kvstore import get_kv_store
from .logging_setup import setup_logging
from .migration import migrate_legacy_todos_if_needed
from .reminders import ReminderScheduler
from .repositories import PersistenceError, get_repository
from .routers import stats as stats_router
from .routers import todos as todos_router
from .service import TodoService
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "CRUD operations for Todo items with filtering, sorting, reordering and pagination.",
    },
    {"name": "stats", "description": "Aggregated statistics and pending reminders."},
]


def _build_service(settings: Settings) -> TodoService:
    repository = get_repository(settings)
    reminders = ReminderScheduler(
        enabled=settings.reminders_enabled,
        lead=timedelta(minutes=settings.reminder_lead_minutes),
    )

    if settings.migration_enabled:
        try:
            report = migrate_legacy_todos_if_needed(get_kv_store(settings), repository)
            logger.info("Legacy migration status=%s migrated=%d", report.status, report.migrated)
        except PersistenceError:
            logger.exception("Legacy migration could not run; it will be retried on next start")

    service = TodoService(repository, reminders)
    service.load()
    return service


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application with its service wired from ``settings``."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Tasks API",
        description="Single-user task manager: todos with priority, category, due dates, stats and reminders.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.service = _build_service(settings)

    # Configure CORS based on settings (CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_errors(exc),
            },
        )

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(todos_router.router)
    app.include_router(stats_router.router)
    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic puts the raw exception object under ctx["error"]
    return jsonable_encoder(exc.errors(), custom_encoder={Exception: str})


_settings = get_settings()
setup_logging(_settings.log_level)
app = create_app(_settings)
