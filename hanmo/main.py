import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware

from hanmo.api.main import api_router
from hanmo.core.config import settings
from hanmo.core.exceptions import ERROR_STATUS_CODES, DomainError
from hanmo.core.observability import (
    REQUEST_COUNT,
    REQUEST_DURATION,
    get_logger,
    set_correlation_id,
    setup_structured_logging,
)
from hanmo.core.rate_limiter import get_client_ip

logger = get_logger(__name__)


def _endpoint_label(request: Request) -> str:
    # Route templates keep ids out of metric labels
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def _observe(request: Request, status: int, started: float) -> float:
    duration = time.perf_counter() - started
    endpoint = _endpoint_label(request)
    REQUEST_COUNT.labels(method=request.method, endpoint=endpoint, status=str(status)).inc()
    REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(duration)
    return duration


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Correlation ids, access logging and request metrics."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        started = time.perf_counter()
        log = logger.bind(method=request.method, path=request.url.path)
        log.debug(
            "Request started",
            client_ip=get_client_ip(request),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = _observe(request, 500, started)
            log.error(
                "Request failed",
                duration_seconds=round(duration, 4),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise

        duration = _observe(request, response.status_code, started)
        response.headers["X-Correlation-ID"] = correlation_id
        log.info(
            "Request completed",
            status_code=response.status_code,
            duration_seconds=round(duration, 4),
        )
        return response


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_structured_logging()
    logger.info(
        "Application started",
        project_name=settings.PROJECT_NAME,
        environment=settings.ENVIRONMENT,
        api_version=settings.API_V1_STR,
        metrics_enabled=settings.ENABLE_METRICS,
    )
    yield
    logger.info("Shutting down application")


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
    sentry_sdk.init(
        dsn=str(settings.SENTRY_DSN),
        enable_tracing=True,
        traces_sample_rate=1.0 if settings.ENVIRONMENT == "staging" else 0.1,
        environment=settings.ENVIRONMENT,
    )

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    Hanmo - content publishing back office

    Comics and couplets with versioned content, categories and tags,
    localized menus, credits, points, daily sign-in, achievements,
    VIP membership and referrals, behind role based access control.
    """,
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES[exc.error_type]
    logger.info(
        "Domain error",
        path=request.url.path,
        method=request.method,
        status_code=status_code,
        error_type=exc.error_type.value,
        error=exc.message,
    )
    return JSONResponse(
        status_code=status_code, content={"detail": exc.message, **exc.to_dict()}
    )


app.add_middleware(ObservabilityMiddleware)

if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-ID"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
