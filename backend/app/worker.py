import logging
from datetime import datetime
from typing import Any

from arq import cron

from app.core.database import SessionLocal
from app.repositories.coupon_store import SqlCouponStore
from app.services.coupon_expiration import CouponExpirationService
from app.tasks import redis_settings

logger = logging.getLogger(__name__)


async def expire_coupons_task(ctx: dict[str, Any], now_iso: str | None = None) -> int:
    """Background task: mark active coupons past their end date as expired.

    Runs every 15 minutes. An aborted run leaves whole batches either done or
    untouched, and the next run continues from there.

    Args:
        ctx: ARQ worker context.
        now_iso: Optional ISO-8601 cutoff; defaults to the current time.

    Returns:
        Number of coupons expired.
    """
    db = SessionLocal()
    try:
        now = datetime.fromisoformat(now_iso) if now_iso else None
        service = CouponExpirationService(SqlCouponStore(db))
        count = service.sweep(now)
        if count > 0:
            logger.info("Expired %d coupons", count)
        return count
    finally:
        db.close()


class WorkerSettings:
    functions = [expire_coupons_task]
    cron_jobs = [
        cron(expire_coupons_task, minute={0, 15, 30, 45}),  # every 15 minutes
    ]
    redis_settings = redis_settings
