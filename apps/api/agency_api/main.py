import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from agency_api.api.routes import router as api_router
from agency_api.core.config import get_settings
from agency_api.core.context import RequestContextMiddleware
from agency_api.core.database import dispose_engine
from agency_api.logging import configure_logging
from agency_api.middleware.correlation_id import CorrelationIdMiddleware
from agency_api.middleware.request_logging import RequestLoggingMiddleware
from agency_api.otel import SERVICE_NAME, get_fastapi_server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("agency_api.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("system.started", extra={"operation": settings.app_env})
    try:
        yield
    finally:
        await dispose_engine()
        logger.info("system.stopped", extra={"operation": settings.app_env})


app = FastAPI(title="Agency Contacts API", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

settings = get_settings()
if settings.otel_enabled:
    setup_otel(SERVICE_NAME, True)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
