from fastapi import APIRouter
from datetime import datetime, timezone
from storyslides import __version__
from storyslides.core.config import settings
from storyslides.dependencies.supabase import get_supabase_client, get_async_db_pool
from storyslides.core.concurrency import concurrency_monitor

router = APIRouter()


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/health")
async def health_check():
    return {"status": "ok", "time": _utc_now()}

@router.get("/healthz")
async def healthz():
    return {"status": "ok"}

@router.get("/readyz")
async def readyz():
    try:
        # Check both sync client and async pool
        _ = get_supabase_client()
        pool = await get_async_db_pool()
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
        return {"status": "ready", "async_pool": "connected"}
    except Exception as e:
        return {"status": "degraded", "error": str(e)}

@router.get("/version")
async def version():
    return {"version": __version__, "env": {"debug": settings.DEBUG}}

@router.get("/metrics")
async def metrics():
    """Get current concurrency stats and the limits in force."""
    return {
        "concurrency": concurrency_monitor.get_stats(),
        "config": {
            "max_db_connections": settings.MAX_CONCURRENT_DB_CONNECTIONS,
            "rate_limit_per_minute": settings.RATE_LIMIT_PER_MINUTE,
            "request_timeout": settings.REQUEST_TIMEOUT_SECONDS,
            "default_word_limit": settings.DEFAULT_WORD_LIMIT,
            "default_ads_frequency": settings.DEFAULT_ADS_FREQUENCY,
        },
        "timestamp": _utc_now(),
    }
