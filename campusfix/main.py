"""CampusFix FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from campusfix import __version__
from campusfix.config import get_settings
from campusfix.database import close_db, init_db
from campusfix.exceptions import CampusFixError, to_problem
from campusfix.logging_config import configure_logging, get_logger
from campusfix.middleware.rate_limit import RateLimitMiddleware
from campusfix.middleware.request_context import RequestContextMiddleware
from campusfix.redis import close_redis, get_redis, init_redis
from campusfix.routes.departments import router as departments_router
from campusfix.routes.issues import router as issues_router
from campusfix.routes.notifications import router as notifications_router
from campusfix.routes.users import router as users_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: init DB + Redis on startup, cleanup on shutdown."""
    settings = get_settings()
    configure_logging(level=settings.log_level, log_format=settings.log_format)

    logger.info("starting_database_init")
    await init_db()

    try:
        await init_redis(settings.redis_url)
        logger.info("redis_connected")
    except Exception as e:
        # Rate limiting fails open without Redis
        logger.warning("redis_unavailable", error=str(e))

    logger.info("application_started", version=__version__)
    yield

    logger.info("shutting_down")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="CampusFix",
        description="Campus issue reporting, prioritization and resolution workflow",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        RateLimitMiddleware,
        redis_getter=get_redis,
        limit=settings.rate_limit_requests,
        window=settings.rate_limit_window_seconds,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    @app.exception_handler(CampusFixError)
    async def campusfix_error_handler(request: Request, exc: CampusFixError):
        status_code, body = to_problem(exc)
        logger.info(
            "request_rejected",
            error_type=exc.error_type,
            status=status_code,
            detail=exc.message,
        )
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={
                "type": "internal_error",
                "title": "Internal Error",
                "status": 500,
                "detail": "An unexpected error occurred",
            },
        )

    app.include_router(issues_router)
    app.include_router(departments_router)
    app.include_router(notifications_router)
    app.include_router(users_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": "campusfix"}

    return app


app = create_app()
