from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from app.core.config import settings

# Redis connection settings shared by the API process and the worker
redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    """Open an arq Redis pool."""
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job:
    """
    Enqueue a job for the coupon worker.

    Args:
        task_name: Name of a function registered in ``WorkerSettings.functions``
        *args: Positional arguments for the task
        **kwargs: Keyword arguments for the task

    Returns:
        Job object from arq
    """
    pool = await get_redis_pool()
    try:
        job = await pool.enqueue_job(task_name, *args, **kwargs)
        return job  # type: ignore[return-value]
    finally:
        await pool.close()


async def enqueue_expire_coupons(now_iso: str | None = None) -> Job:
    """Queue an expiration sweep outside the cron schedule.

    ``now_iso`` fixes the cutoff (ISO-8601); the worker uses its own clock
    when it is omitted.
    """
    return await enqueue_task("expire_coupons_task", now_iso)
