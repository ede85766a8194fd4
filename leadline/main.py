"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadline.api.middleware import RequestIdMiddleware
from leadline.api.routes import api_router
from leadline.infrastructure.redis import redis_client
from leadline.logging_config import get_logger, setup_logging
from leadline.settings import settings

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    await redis_client.connect()
    logger.info("Leadline API started", extra={"environment": settings.environment})
    yield
    await redis_client.disconnect()


app = FastAPI(
    title="Leadline API",
    description="Multi-tenant call and SMS lead capture",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Landing pages post leads cross-origin
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Leadline API",
        "version": "0.1.0",
        "docs": "/docs",
    }
