import platform
import time

from aiohttp import web
from sqlalchemy.ext.asyncio import async_sessionmaker

from food_share import __version__
from food_share.config import missing_settings
from food_share.handlers.common import session_pool_key, settings_key
from food_share.models import SystemHealth
from food_share.utils.time import utcnow

routes = web.RouteTableDef()

NO_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

_started = time.monotonic()


async def check_store(session_pool: async_sessionmaker) -> dict:
    """Write then read back a marker row."""
    start = time.monotonic()
    try:
        async with session_pool() as session:
            row = await session.get(SystemHealth, "health")
            if row is None:
                row = SystemHealth(key="health", status="healthy")
            row.last_check = utcnow()
            session.add(row)
            await session.commit()
            connected = await session.get(SystemHealth, "health", populate_existing=True) is not None
    except Exception as exc:
        return {"status": "unhealthy", "connected": False, "error": str(exc)}
    return {
        "status": "healthy",
        "connected": connected,
        "latency_ms": round((time.monotonic() - start) * 1000, 2),
    }


@routes.get("/api/health")
async def health(request: web.Request):
    start = time.monotonic()
    cfg = request.app[settings_key]
    checks: dict[str, dict] = {}
    overall = "healthy"

    checks["database"] = await check_store(request.app[session_pool_key])
    if checks["database"]["status"] != "healthy":
        overall = "unhealthy"

    missing = missing_settings(cfg)
    checks["environment"] = {
        "status": "healthy" if not missing else "unhealthy",
        "missing_variables": missing,
    }
    if missing and overall == "healthy":
        overall = "degraded"

    checks["system"] = {
        "status": "healthy",
        "uptime_s": round(time.monotonic() - _started, 1),
        "python_version": platform.python_version(),
    }
    checks["external_apis"] = {
        "status": "healthy",
        "google_maps": "configured" if cfg.GOOGLE_MAPS_API_KEY else "not_configured",
    }

    payload = {
        "status": overall,
        "timestamp": utcnow().isoformat() + "Z",
        "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        "version": __version__,
        "checks": checks,
    }
    return web.json_response(payload, status=503 if overall == "unhealthy" else 200, headers=NO_CACHE)
