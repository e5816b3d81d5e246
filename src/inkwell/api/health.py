# src/inkwell/api/health.py
"""Liveness, readiness and resource health endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from inkwell.services import health

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> JSONResponse:
    """Database, heap, RSS and disk checks; 503 if any one of them fails."""
    healthy, report = await health.run_health_checks()
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=report,
    )


@router.get("/liveness")
async def liveness() -> dict[str, str]:
    return health.liveness()


@router.get("/readiness")
async def readiness() -> JSONResponse:
    ready, report = await health.readiness()
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=report,
    )


@router.get("/metrics")
async def metrics() -> dict[str, Any]:
    return health.metrics()
