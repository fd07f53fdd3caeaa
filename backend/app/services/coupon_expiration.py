"""Expiration sweeper: moves coupons past their end date from active to expired."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.models.shared import ensure_utc, utc_now
from app.repositories.coupon_repository import ExpiryBatch
from app.repositories.coupon_store import CouponStore

logger = logging.getLogger(__name__)


class CouponExpirationService:
    """Service for expiring coupons in batches.

    Each batch is a single all-or-nothing write. A batch that fails with an
    operational error is retried as a whole, never coupon by coupon. Stopping
    between batches is safe: the next run picks up whatever is left.
    """

    def __init__(
        self,
        store: CouponStore,
        batch_size: int | None = None,
        max_retries: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.batch_size = batch_size or settings.SWEEP_BATCH_SIZE
        self.max_retries = max_retries or settings.SWEEP_MAX_RETRIES
        self.clock = clock

    def sweep(self, now: datetime | None = None) -> int:
        """Expire every active coupon whose end date is before ``now``.

        Returns:
            The number of coupons transitioned. Running it again with the same
            ``now`` returns 0.
        """
        cutoff = ensure_utc(now or self.clock())
        total = 0
        while True:
            batch = self._expire_batch(cutoff)
            if batch.selected == 0:
                break
            total += batch.expired

        if total > 0:
            logger.info("Expired %d coupons ending before %s", total, cutoff.isoformat())
        return total

    def _expire_batch(self, cutoff: datetime) -> ExpiryBatch:
        attempt = 1
        while True:
            try:
                return self.store.expire_batch(cutoff, self.batch_size)
            except OperationalError:
                if attempt >= self.max_retries:
                    logger.exception("Giving up on coupon expiry batch after %d attempts", attempt)
                    raise
                logger.warning(
                    "Coupon expiry batch failed (attempt %d of %d), retrying",
                    attempt,
                    self.max_retries,
                )
                attempt += 1
