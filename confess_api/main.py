"""
Confessions API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .cache import build_cache
from .config import get_settings
from .database import engine, Base
from .errors import ConfessionError
from .limiter import limiter
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .responses import confession_error_handler
from .routes import confessions_router

settings = get_settings()

# Create tables (in production, use migrations instead)
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the shared cache for the lifetime of the process"""
    cache = build_cache(settings)
    cache.start_janitor()
    app.state.cache = cache
    api_logger.info("Application started", environment=settings.environment)

    yield

    cache.stop_janitor()
    api_logger.info("Application stopped")


app = FastAPI(
    title="Confessions API",
    description="Anonymous confession submission and moderation",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(ConfessionError, confession_error_handler)

app.add_middleware(SecurityHeadersMiddleware)

if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
    ],
    max_age=3600,
)

app.include_router(confessions_router)


@app.get("/api/health")
def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": "1.0.0",
    }
