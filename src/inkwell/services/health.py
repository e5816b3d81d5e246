"""Process and dependency health indicators.

Each indicator returns ``(name, healthy, details)``. :func:`run_health_checks`
runs all of them and reports the aggregate the way ``GET /health`` exposes it.
"""

from __future__ import annotations

import asyncio
import logging
import platform
import shutil
import time
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import psutil
from sqlalchemy import text
from sqlalchemy.engine import Engine

from inkwell.core.settings import settings
from inkwell.db.session import engine as default_engine

logger = logging.getLogger(__name__)

MB = 1024 * 1024

IndicatorResult = tuple[str, bool, dict[str, Any]]
Indicator = Callable[[], Awaitable[IndicatorResult]]

_started_at = time.monotonic()


def mark_started() -> None:
    """Reset the uptime origin; called on application startup."""
    global _started_at
    _started_at = time.monotonic()


def uptime_seconds() -> float:
    return time.monotonic() - _started_at


def format_uptime(seconds: float) -> str:
    """Render seconds as ``"1d 2h 3m 4s"``, dropping leading zero units."""
    remaining = int(seconds)
    days, remaining = divmod(remaining, 86400)
    hours, remaining = divmod(remaining, 3600)
    minutes, secs = divmod(remaining, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if days or hours:
        parts.append(f"{hours}h")
    if days or hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def _heap_bytes(memory: Any) -> int:
    # Private resident memory; ``shared`` is only reported on Linux.
    return int(memory.rss - getattr(memory, "shared", 0))


def _ping(bind: Engine) -> None:
    with bind.connect() as connection:
        connection.execute(text("SELECT 1"))


async def ping_database(timeout_ms: int, bind: Engine | None = None) -> IndicatorResult:
    """Run ``SELECT 1`` in a worker thread, failing after ``timeout_ms``."""
    try:
        await asyncio.wait_for(
            asyncio.to_thread(_ping, bind or default_engine),
            timeout=timeout_ms / 1000,
        )
    except TimeoutError:
        return "database", False, {"status": "down", "message": f"Timeout after {timeout_ms}ms"}
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return "database", False, {"status": "down", "message": str(exc)}
    return "database", True, {"status": "up"}


async def check_database() -> IndicatorResult:
    return await ping_database(settings.health_db_timeout_ms)


async def check_heap() -> IndicatorResult:
    used = _heap_bytes(psutil.Process().memory_info())
    threshold = settings.health_heap_threshold_mb * MB
    details = {
        "status": "up" if used < threshold else "down",
        "used_mb": round(used / MB, 2),
        "threshold_mb": settings.health_heap_threshold_mb,
    }
    return "memory_heap", used < threshold, details


async def check_rss() -> IndicatorResult:
    used = psutil.Process().memory_info().rss
    threshold = settings.health_rss_threshold_mb * MB
    details = {
        "status": "up" if used < threshold else "down",
        "used_mb": round(used / MB, 2),
        "threshold_mb": settings.health_rss_threshold_mb,
    }
    return "memory_rss", used < threshold, details


async def check_disk() -> IndicatorResult:
    usage = shutil.disk_usage(settings.health_disk_path)
    ratio = usage.used / usage.total if usage.total else 0.0
    healthy = ratio < settings.health_disk_threshold
    details = {
        "status": "up" if healthy else "down",
        "path": settings.health_disk_path,
        "used_ratio": round(ratio, 4),
        "threshold": settings.health_disk_threshold,
    }
    return "storage", healthy, details


async def _run_indicator(name: str, indicator: Indicator) -> IndicatorResult:
    """Run one indicator; an exception counts as that indicator being down."""
    try:
        return await indicator()
    except Exception as exc:
        logger.warning("Health indicator %s raised: %s", name, exc)
        return name, False, {"status": "down", "message": str(exc)}


async def run_health_checks(
    indicators: Mapping[str, Indicator] | None = None,
) -> tuple[bool, dict[str, Any]]:
    """Run every indicator; the report is healthy only if all of them pass."""
    if indicators is None:
        indicators = {
            "database": check_database,
            "memory_heap": check_heap,
            "memory_rss": check_rss,
            "storage": check_disk,
        }
    results = await asyncio.gather(
        *(_run_indicator(name, indicator) for name, indicator in indicators.items())
    )
    info = {name: details for name, healthy, details in results if healthy}
    error = {name: details for name, healthy, details in results if not healthy}
    healthy = not error
    if not healthy:
        logger.warning("Health check failed: %s", ", ".join(sorted(error)))
    return healthy, {
        "status": "ok" if healthy else "error",
        "info": info,
        "error": error,
        "details": {name: details for name, _, details in results},
    }


def liveness() -> dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


async def readiness() -> tuple[bool, dict[str, Any]]:
    name, healthy, details = await ping_database(settings.readiness_db_timeout_ms)
    return healthy, {
        "status": "ok" if healthy else "error",
        name: details,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def metrics() -> dict[str, Any]:
    """Snapshot of uptime, memory and CPU usage for this process."""
    process = psutil.Process()
    memory = process.memory_info()
    cpu = process.cpu_times()
    seconds = uptime_seconds()
    return {
        "uptime": {"seconds": round(seconds, 3), "formatted": format_uptime(seconds)},
        "memory": {
            "rss": round(memory.rss / MB, 2),
            "heap": round(_heap_bytes(memory) / MB, 2),
            "vms": round(memory.vms / MB, 2),
        },
        "cpu": {"user": cpu.user, "system": cpu.system},
        "python": platform.python_version(),
        "environment": settings.environment,
        "version": settings.app_version,
        "timestamp": datetime.now(UTC).isoformat(),
    }
