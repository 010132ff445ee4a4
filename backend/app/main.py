"""
Outage Aggregator

FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.core.config import get_settings
from backend.app.core.database import build_engine, build_session_maker
from backend.app.core.init_db import create_tables
from backend.app.core.logging import setup_logging, get_logger
from backend.app.core.redis_client import RedisConnection
from backend.app.api import data_process, health, outages
from backend.app.api.errors import register_exception_handlers
from backend.app.middleware.trace import TracingMiddleware

settings = get_settings()

# Initialize logging
setup_logging(level=settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store and cache clients; close them on shutdown."""
    # Startup
    logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    engine = build_engine(settings)
    app.state.engine = engine
    app.state.session_maker = build_session_maker(engine)
    if settings.auto_create_tables:
        await create_tables(engine)

    redis_connection = RedisConnection(settings.redis_url, socket_timeout=settings.redis_socket_timeout)
    await redis_connection.connect()
    app.state.redis_connection = redis_connection
    app.state.redis_client = redis_connection.client

    yield
    # Shutdown
    logger.info(f"👋 Shutting down {settings.app_name}")

    await redis_connection.disconnect()
    app.state.redis_client = None

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title=settings.app_name,
    description="Aggregates controller outage events into outage groups",
    version=settings.app_version,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Add Middleware
app.add_middleware(TracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Correlation-ID"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["Health"])

app.include_router(
    data_process.router,
    prefix=settings.api_prefix,
    tags=["Outage Events"],
)

app.include_router(
    outages.router,
    prefix=f"{settings.api_prefix}/outages",
    tags=["Outage Groups"],
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Outage event aggregation service",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=settings.port)
