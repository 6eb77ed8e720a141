"""FastAPI application for the UMVVS vehicle options API."""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ..core.config import Settings, get_settings, validate_settings
from ..core.dependencies import (
    get_options_service,
    get_session_factory,
    shutdown_services,
)
from ..core.exceptions import (
    CascadeError,
    FormLoadFailure,
    InvalidIdentifier,
    OptionReadFailure,
    PreconditionViolation,
    StageAdvanceTimeout,
)
from ..core.logging import log_error, log_request, log_response, logger, setup_logging
from ..models.options import ErrorResponse, HealthResponse, SelectionRequest
from ..services.browser import BrowserSessionFactory
from ..services.options_service import OptionsService

# Validate settings on startup
try:
    validate_settings()
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    raise

settings = get_settings()
setup_logging(settings.log_level)

# Rate limiter
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def _rate_limit() -> str:
    return get_settings().rate_limit


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - close the shared browser on shutdown."""
    logger.info(
        f"Starting UMVVS options API environment={settings.environment} "
        f"browser={settings.browser_name}"
    )
    yield
    logger.info("Shutting down...")
    await shutdown_services()


app = FastAPI(
    title="UMVVS Vehicle Options API",
    description="Make, model, year, country, fuel and engine options from the TRA valuation form",
    version="1.0.0",
    lifespan=lifespan,
)

# State for limiter
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    log_error("Rate limit exceeded", client=get_remote_address(request))
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests, please try again later"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    log_request(request.method, request.url.path)

    response = await call_next(request)

    duration_ms = (time.time() - start) * 1000
    log_response(request.method, request.url.path, response.status_code, duration_ms)

    return response


# -----------------------------------------------------------------------------
# Error Mapping
# -----------------------------------------------------------------------------

# Checked in order; first match wins
ERROR_STATUS: list[tuple[type[CascadeError], int, str]] = [
    (PreconditionViolation, 400, "Invalid selection"),
    (InvalidIdentifier, 422, "Unknown identifier"),
    (StageAdvanceTimeout, 504, "Scraping timed out"),
    (OptionReadFailure, 504, "Scraping timed out"),
    (FormLoadFailure, 502, "Form unavailable"),
]


def error_response(status_code: int, error: str, exc: Exception) -> JSONResponse:
    """Build the error body shared by every failure."""
    context = exc.detail() if isinstance(exc, CascadeError) else {}
    body = ErrorResponse(
        error=error,
        details=str(exc),
        timestamp=datetime.now(timezone.utc).isoformat(),
        **context,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def classify_error(exc: CascadeError) -> tuple[int, str]:
    for error_type, status_code, error in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code, error
    return 500, "Scraping failed"


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Annotated[Settings, Depends(get_settings)],
    sessions: Annotated[BrowserSessionFactory, Depends(get_session_factory)],
    detailed: bool = False,
):
    """
    Health check endpoint.

    - Basic: Returns {"status": "healthy", ...}
    - Detailed (?detailed=true): Launches or pings the browser
    """
    payload = {
        "status": "healthy",
        "environment": settings.environment,
        "browser": settings.browser_name,
    }
    if not detailed:
        return payload

    session = await sessions.check_health()
    if session["status"] != "healthy":
        payload["status"] = "degraded"
    payload["session"] = session
    return payload


@app.get(
    "/scrape-options",
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
@limiter.limit(_rate_limit)
async def scrape_options(
    request: Request,
    service: Annotated[OptionsService, Depends(get_options_service)],
    make_id: Annotated[str | None, Query(alias="makeId")] = None,
    model_id: Annotated[str | None, Query(alias="modelId")] = None,
    year_id: Annotated[str | None, Query(alias="yearId")] = None,
    country_id: Annotated[str | None, Query(alias="countryId")] = None,
    fuel_id: Annotated[str | None, Query(alias="fuelId")] = None,
):
    """
    Options for the first stage after the supplied identifiers.

    No identifiers returns makes; makeId returns models; and so on through
    fuelId, which returns engines. Identifiers must be supplied in order.
    """
    selection = SelectionRequest(
        make_id=make_id,
        model_id=model_id,
        year_id=year_id,
        country_id=country_id,
        fuel_id=fuel_id,
    )
    try:
        result = await service.fetch_options(selection)
    except CascadeError as e:
        status_code, error = classify_error(e)
        log_error(error, e if status_code >= 500 else None, **e.detail())
        return error_response(status_code, error, e)
    except Exception as e:
        log_error("Scraping error", e)
        return error_response(500, "Scraping failed", e)

    return result.as_payload()
