"""FastAPI application entry point."""
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from crm_dashboards.api import dashboards, health, maintenance, widgets
from crm_dashboards.config import settings
from crm_dashboards.core.logging import setup_logging
from crm_dashboards.core.tracing import TracingContext
from crm_dashboards.middleware.error_codes import register_exception_handlers

CORRELATION_HEADER = "X-Correlation-ID"

setup_logging()
logger = logging.getLogger(__name__)

if settings.SEED_DEFAULT_DASHBOARD:
    from crm_dashboards.database.mongo import get_database
    from crm_dashboards.services.seed import seed_default_dashboard

    # no-op when dashboards already exist
    try:
        seed_default_dashboard(get_database())
    except Exception as exc:  # pragma: no cover - best effort seed
        logger.warning("Skipping default dashboard seeding: %s", exc)

app = FastAPI(
    title="CRM Dashboards API",
    description="Configurable dashboards and widgets over CRM data",
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Tag every log line of a request with one correlation id."""
    with TracingContext.scope(correlation_id=request.headers.get(CORRELATION_HEADER, "")):
        correlation_id = TracingContext.get_or_create_correlation_id()
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )

    response.headers[CORRELATION_HEADER] = correlation_id
    return response


app.include_router(health.router, prefix="/api", tags=["Health"])
app.include_router(dashboards.router, prefix="/api")
app.include_router(widgets.router, prefix="/api")
app.include_router(maintenance.router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("crm_dashboards.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
