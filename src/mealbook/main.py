"""FastAPI application entry point."""

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from mealbook.api.error_handlers import register_error_handlers
from mealbook.config import settings
from mealbook.database import Base, async_engine
from mealbook.logging_config import LoggingContext, configure_logging, get_logger
from mealbook.routers import ingredients_router, meal_plans_router, recipes_router

# Configure logging on module load
configure_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting Mealbook API")

    # Create database tables if they don't exist
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")

    yield

    logger.info("Shutting down Mealbook API")
    await async_engine.dispose()


app = FastAPI(
    title="Mealbook API",
    description="Recipe deduplication, ingredient identities and weekly grocery lists",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log line of a request with its request id."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    with LoggingContext(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.include_router(ingredients_router)
app.include_router(recipes_router)
app.include_router(meal_plans_router)


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "ok", "service": "mealbook-api"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Mealbook API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
