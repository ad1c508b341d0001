import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from grcportal.config import settings
from grcportal.database import check_db_connection
from grcportal.middleware.errors import install_exception_handlers
from grcportal.middleware.request_context import RequestContextMiddleware
from grcportal.routers.control import router as control_router
from grcportal.routers.framework import router as framework_router
from grcportal.routers.risk import router as risk_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

install_exception_handlers(app)

app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(framework_router)
app.include_router(control_router)
app.include_router(risk_router)


@app.get("/health")
async def health():
    """Health check: verifies API is running and database is reachable."""
    try:
        await check_db_connection()
        db_status = "connected"
    except Exception as exc:
        db_status = f"error: {exc}"

    return {
        "status": "ok" if db_status == "connected" else "degraded",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": db_status,
    }
