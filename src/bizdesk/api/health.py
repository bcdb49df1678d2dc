"""Health check endpoint.

Learn: Reports the server version plus reachability of Postgres and
Redis. Always 200 — "degraded" tells the operator which dependency
is down without taking the service out of a load balancer.
"""

from fastapi import APIRouter
from sqlalchemy import text

from bizdesk import __version__
from bizdesk.db.engine import engine
from bizdesk.redis_pool import ping_redis

router = APIRouter()


@router.get("/health")
async def health_check():
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["postgres"] = "ok"
    except Exception as e:
        checks["postgres"] = f"error: {type(e).__name__}"

    try:
        await ping_redis()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"error: {type(e).__name__}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
