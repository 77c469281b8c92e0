import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .context import AppContext, build_context
from .errors import CalendarTodoError, ValidationError
from .routers import calendar as calendar_router
from .routers import google as google_router
from .routers import reminders as reminders_router
from .routers import todos as todos_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "todos", "description": "CRUD operations for todos, plus backups, restore and file load."},
    {"name": "calendar", "description": "Month grid projection of the todo collection."},
    {"name": "reminders", "description": "Fired and pending todo reminders."},
    {"name": "google", "description": "Google Calendar import and export."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    ctx: AppContext = app.state.context
    ctx.store.load()
    await ctx.channel.request_permission()
    ctx.scheduler.reconcile_all(ctx.store.list())
    logger.info("Calendar Todo service ready (%s)", ctx.store.repository.description)
    try:
        yield
    finally:
        cancelled = ctx.scheduler.cancel_all()
        logger.info("Shutting down; cancelled %d pending reminders", cancelled)


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Build the FastAPI application around an explicit AppContext.
    The context is created from settings unless one is passed in.
    """
    settings = settings or (context.settings if context else get_settings())
    app = FastAPI(
        title="Calendar Todo Backend",
        description="Calendar todo list with scheduled reminders and Google Calendar sync.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.context = context or build_context(settings)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Global exception handlers for consistent JSON on validation errors
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
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(CalendarTodoError)
    async def app_error_handler(request: Request, exc: CalendarTodoError) -> JSONResponse:
        """
        Translate application errors into the same JSON structure:
        NotFound -> 404, ValidationError -> 422, PermissionDenied -> 403,
        PersistenceError -> 500, CalendarProviderError -> 502.
        """
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        detail = exc.errors if isinstance(exc, ValidationError) and exc.errors else exc.message
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.kind, "message": exc.message, "detail": detail},
        )

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        ctx: AppContext = app.state.context
        return {
            "message": "Healthy",
            "backend": settings.persistence_backend,
            "todos": len(ctx.store),
            "pendingReminders": len(ctx.scheduler),
            "notificationPermission": ctx.channel.permission,
        }

    # Include routers
    app.include_router(todos_router.router)
    app.include_router(calendar_router.router)
    app.include_router(reminders_router.router)
    app.include_router(google_router.router)
    return app


# PUBLIC_INTERFACE
def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Data folder: %s", settings.data_folder)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


app = create_app()
