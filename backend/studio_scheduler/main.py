import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db
from .routers import (
    availability,
    bookings,
    daily_templates,
    date_overrides,
    providers,
    public,
    template_breaks,
)
from .services.booking_writer import BookingConflict, InvalidTransition, OutsideWorkingHours
from .services.slots.exceptions import (
    AmbiguousTemplate,
    CollaboratorUnavailable,
    ConfigurationError,
    ProviderNotFound,
    SchedulingError,
    TemplateNotFound,
)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Most specific first
_ERROR_STATUS = [
    (ProviderNotFound, 404),
    (TemplateNotFound, 404),
    (AmbiguousTemplate, 409),
    (BookingConflict, 409),
    (InvalidTransition, 409),
    (OutsideWorkingHours, 422),
    (ConfigurationError, 422),
    (CollaboratorUnavailable, 503),
]


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _ERROR_STATUS if isinstance(exc, cls)),
        400,
    )
    if status_code >= 500 or isinstance(exc, (ConfigurationError, AmbiguousTemplate)):
        logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app(init_database: bool = True) -> FastAPI:
    app = FastAPI(
        title="Studio Scheduler API",
        lifespan=lifespan if init_database else None,
    )
    app.add_exception_handler(SchedulingError, scheduling_error_handler)

    app.include_router(providers.router)
    app.include_router(daily_templates.router)
    app.include_router(template_breaks.router)
    app.include_router(date_overrides.router)
    app.include_router(bookings.router)
    app.include_router(availability.router)
    app.include_router(public.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
