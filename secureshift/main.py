"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from secureshift.core.config import settings
from secureshift.core.middleware import setup_middleware
from secureshift.core.exceptions import SecureShiftError

from secureshift.api.shifts import router as shifts_router
from secureshift.api.roles import router as roles_router
from secureshift.api.users import router as users_router, branch_router
from secureshift.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("secureshift")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("Starting %s API (timezone %s)", settings.APP_NAME, settings.TIMEZONE)
    if settings.DB_AUTO_CREATE:
        from secureshift.db.session import init_db
        init_db()
        logger.info("Database tables ensured")
    yield
    logger.info("Shutting down %s API", settings.APP_NAME)


app = FastAPI(
    title="SecureShift API",
    description="Shift marketplace for security guards and employers",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_middleware(app)


@app.exception_handler(SecureShiftError)
async def secureshift_exception_handler(request: Request, exc: SecureShiftError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )

# Register routers
app.include_router(shifts_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(branch_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
