"""
Xeno CRM API - Main Application

SECURITY FEATURES:
- Conditional API docs (disabled in production by default)
- CORS restricted to the configured frontend
- Security headers on every response
- Structured logging without sensitive data
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
import logging

from app.api.router import api_router
from app.api.routes.auth import router as auth_router
from app.config import settings
from app.database import async_session_maker, init_db
from app.exceptions import register_exception_handlers
from app.middleware import CorrelationIdMiddleware, SecurityHeadersMiddleware
from app.middleware.correlation import install_log_filter
# Import all models to register them with SQLAlchemy metadata before init_db()
from app.models import User, Customer, Order, Segment, Campaign, CommunicationLog  # noqa: F401

APP_VERSION = "1.0.0"

# Configure secure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s",
)
install_log_filter()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Xeno CRM API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        # SECURITY: Don't log full exception details which may contain credentials
        logger.error(f"Database initialization failed: {type(e).__name__}")
        logger.warning("App starting without database - some features may not work")
    yield
    logger.info("Shutting down Xeno CRM API...")


# SECURITY: Conditionally enable docs based on settings
docs_url = "/docs" if settings.DOCS_ENABLED else None
redoc_url = "/redoc" if settings.DOCS_ENABLED else None

app = FastAPI(
    title="Xeno CRM API",
    description="Customer segmentation and campaign delivery API",
    version=APP_VERSION,
    docs_url=docs_url,
    redoc_url=redoc_url,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint - API info."""
    response = {
        "name": "Xeno CRM API",
        "version": APP_VERSION,
        "health": "/health",
    }
    if settings.DOCS_ENABLED:
        response["docs"] = "/docs"
    return response


@app.get("/health")
async def health_check():
    """Health check endpoint. Verifies the database answers a trivial query."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {type(e).__name__}")
        return JSONResponse(status_code=500, content={"status": "error"})
    return {"status": "ok", "version": APP_VERSION, "environment": settings.ENVIRONMENT}


# For running with uvicorn directly (development only)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=5000,
        reload=settings.DEBUG,
    )
