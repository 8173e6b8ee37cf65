from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from .config import settings
from .errors import ElevaError
from .logging import configure_logging, logger
from .middleware import AccessLogAndMetricsMiddleware, RequestIDMiddleware
from .routers import errors, health, reviews, rotation

_PLAN_PREFIX = "/api/plans/{plan_id}"


async def _handle_eleva_error(request: Request, exc: ElevaError) -> JSONResponse:
    """Turn domain errors into JSON with the user-facing message."""

    logger.info(
        "request_rejected",
        path=request.url.path,
        error_type=exc.__class__.__name__,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.user_message})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    configure_logging()
    app = FastAPI(title="Eleva API", version="0.3.0")

    configured_origins = list(settings.allowed_cors_origins)
    allow_credentials = bool(configured_origins)
    if not configured_origins:
        configured_origins = ["*"]
    # Credentials are only allowed with an explicit origin list.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=configured_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added later = runs outside: RequestID wraps AccessLog so the id is bound first.
    app.add_middleware(AccessLogAndMetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(ElevaError, _handle_eleva_error)  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(reviews.router, prefix=f"{_PLAN_PREFIX}/reviews")
    app.include_router(errors.router, prefix=f"{_PLAN_PREFIX}/errors")
    app.include_router(rotation.router, prefix=f"{_PLAN_PREFIX}/rotation")

    logger.info("app_created", environment=settings.environment, timezone=settings.timezone)
    return app


app = create_app()
