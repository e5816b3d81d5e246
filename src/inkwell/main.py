# src/inkwell/main.py
"""Main entry point for the Inkwell application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi.middleware import SlowAPIMiddleware

from inkwell.api import health as health_endpoints
from inkwell.api.health import router as health_router
from inkwell.api.v1 import (
    admin_router,
    analytics_router,
    auth_router,
    categories_router,
    comments_router,
    likes_router,
    posts_router,
    search_router,
    users_router,
)
from inkwell.core.errors import register_exception_handlers
from inkwell.core.logging_config import configure_logging
from inkwell.core.middleware import RequestLoggingMiddleware
from inkwell.core.rate_limit import limiter
from inkwell.core.settings import settings
from inkwell.services import health

logger = logging.getLogger(__name__)

DESCRIPTION = "Blog publishing API with threaded comments"

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description=DESCRIPTION,
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Rate limiting; health checks stay reachable however busy a client is
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
for health_endpoint in (
    health_endpoints.health_check,
    health_endpoints.liveness,
    health_endpoints.readiness,
    health_endpoints.metrics,
):
    limiter.exempt(health_endpoint)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Include API routers; likes and comments first so their two-segment paths
# are matched before the post slug route.
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(likes_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(categories_router, prefix="/api/v1")
app.include_router(search_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(analytics_router, prefix="/api/v1")
app.include_router(health_router)


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging(settings.log_level)
    health.mark_started()
    logger.info(
        "%s %s starting (%s)", settings.app_name, settings.app_version, settings.environment
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": DESCRIPTION,
        "environment": settings.environment,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("inkwell.main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
