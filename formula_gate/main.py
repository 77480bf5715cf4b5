import asyncio
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from formula_gate.api.v1.router import api_v1_router
from formula_gate.core.config import settings, validate_settings_for_production
from formula_gate.core.dependencies import build_gate
from formula_gate.core.logging import setup_logging
from formula_gate.core.metrics import PrometheusMiddleware, metrics_response
from formula_gate.core.sentry import init_sentry
from formula_gate.gateway.errors import GateError, InputEmpty, ProviderError

# Configure logging before anything else
setup_logging()

logger = logging.getLogger(__name__)


async def _sweep_loop(app: FastAPI, interval: float) -> None:
    """Periodically drop expired cache entries and idle client windows."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await app.state.gate.sweep()
            logger.debug("Sweep: %s", removed)
        except Exception:
            logger.exception("Gate sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    init_sentry()
    logger.info(
        "Starting Formula Gate (env=%s, stub=%s, dedupe=%s)",
        settings.app_env,
        settings.stub_generation,
        settings.dedupe_inflight,
    )

    sweeper = None
    if settings.cache_sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(_sweep_loop(app, settings.cache_sweep_interval_seconds))

    yield

    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
    logger.info("Formula Gate shut down")


app = FastAPI(
    title="Formula Gate",
    description="Cached, rate-limited natural-language to spreadsheet formula API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.app_debug else None,
    redoc_url="/api/redoc" if settings.app_debug else None,
)

# Process-scoped gate: cache, client windows and daily counter live here
app.state.gate = build_gate(settings)


# Log unhandled exceptions; the client only gets the generic localized message
@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    error = ProviderError()
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message, "reason": error.reason.value},
    )


# Undecodable bodies are server-side failures; any other shape problem is an empty input
@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        logger.warning("Undecodable request body on %s %s", request.method, request.url.path)
        error: GateError = ProviderError()
    else:
        error = InputEmpty()
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message, "reason": error.reason.value},
    )


# Request metrics
app.add_middleware(PrometheusMiddleware)

# CORS — parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_v1_router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()
