"""
Creator Fulfillment - FastAPI Application
Main entry point with all routes configured.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from fulfillment.config import settings
from fulfillment.core.exceptions import register_exception_handlers
from fulfillment.database import init_db
from fulfillment.schemas.common import HealthResponse

# Import all API routers
from fulfillment.api import campaigns, applications, shipments, tasks, payments, disputes, audit

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    await init_db()
    logger.info("Database ready")
    yield
    # Shutdown


app = FastAPI(
    title="Creator Fulfillment API",
    description="Campaign fulfillment orchestration: applications, shipments, content review and payouts",
    version=VERSION,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEV_MODE else [settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include all routers
app.include_router(campaigns.router)
app.include_router(applications.router)
app.include_router(shipments.router)
app.include_router(tasks.router)
app.include_router(payments.router)
app.include_router(disputes.router)
app.include_router(audit.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "message": "Creator Fulfillment API is running",
        "version": VERSION,
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Detailed health check."""
    return HealthResponse(version=VERSION)
