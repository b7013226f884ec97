# scheduler/api/v1/health.py

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from scheduler.config import settings
from scheduler.db.base import engine

router = APIRouter(tags=["Health"])
log = logging.getLogger(__name__)


@router.get("/healthz")
async def healthz():
    out: dict[str, str] = {"environment": settings.ENVIRONMENT}

    # DB
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        out["db"] = "ok"
    except SQLAlchemyError as exc:
        log.exception("DB health check failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="db error") from exc

    # Redis нужен только для Celery и redis-шины
    if settings.NOTIFIER_PROVIDER == "celery" or settings.UPDATE_BUS_PROVIDER == "redis":
        client = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
        try:
            if not await client.ping():
                raise RedisError("ping returned False")
            out["cache"] = "ok"
        except (RedisError, OSError) as exc:
            log.exception("Redis health check failed")
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="cache error") from exc
        finally:
            await client.aclose()
    else:
        out["cache"] = "skipped"

    out["status"] = "ok"
    return out
