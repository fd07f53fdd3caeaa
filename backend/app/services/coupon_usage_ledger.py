"""Usage ledger: records coupon redemptions and enforces usage ceilings."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from app.models.coupon_usage import CouponUsage
from app.models.shared import generate_uuid, utc_now
from app.repositories.coupon_store import CouponStore, UsageOutcome
from app.services import coupon_errors as msg
from app.services.coupon_errors import CouponErrorKind, CouponNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Result of applying a coupon to a confirmed order."""

    usage: CouponUsage | None = None
    error: str | None = None
    error_kind: CouponErrorKind | None = None

    @property
    def success(self) -> bool:
        return self.usage is not None


@dataclass
class CouponUsageSummary:
    times_used: int
    unique_users: int
    total_discount: Decimal
    remaining_uses: int | None


_FAILURES: dict[UsageOutcome, tuple[CouponErrorKind, str]] = {
    UsageOutcome.COUPON_NOT_FOUND: (CouponErrorKind.NOT_FOUND, msg.COUPON_NOT_FOUND),
    UsageOutcome.USAGE_LIMIT_REACHED: (
        CouponErrorKind.USAGE_LIMIT_EXCEEDED,
        msg.USAGE_LIMIT_REACHED,
    ),
    UsageOutcome.PER_USER_LIMIT_REACHED: (
        CouponErrorKind.PER_USER_LIMIT_EXCEEDED,
        msg.PER_USER_LIMIT_REACHED,
    ),
    UsageOutcome.DAILY_LIMIT_REACHED: (
        CouponErrorKind.DAILY_LIMIT_EXCEEDED,
        msg.DAILY_LIMIT_REACHED,
    ),
}


class CouponUsageLedger:
    """Service for recording coupon redemptions."""

    def __init__(self, store: CouponStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def apply(
        self,
        coupon_id: UUID,
        user_id: str,
        order_id: str,
        discount_amount: Decimal,
    ) -> ApplyResult:
        """Record that a coupon was redeemed on a confirmed order.

        The global, per-user and per-day ceilings are re-checked atomically with the
        write, so a coupon that passed validation can still fail here when
        concurrent checkouts used up its last slot. That case is returned as
        a failed :class:`ApplyResult`; the caller should re-validate and tell
        the shopper the coupon is no longer available.

        Args:
            coupon_id: The coupon being redeemed.
            user_id: The shopper redeeming it.
            order_id: The confirmed order it was applied to.
            discount_amount: Discount granted on the order.

        Returns:
            ApplyResult holding the new CouponUsage, or the rejection.

        Raises:
            ValueError: If ``discount_amount`` is negative.
        """
        discount_amount = Decimal(str(discount_amount))
        if discount_amount < 0:
            raise ValueError("Discount amount cannot be negative")

        coupon = self.store.get_by_id(coupon_id)
        if coupon is None:
            return ApplyResult(error=msg.COUPON_NOT_FOUND, error_kind=CouponErrorKind.NOT_FOUND)

        coupon_code = str(coupon.code)
        usage = CouponUsage(
            id=generate_uuid(),
            coupon_id=coupon.id,
            coupon_code=coupon_code,
            user_id=user_id,
            order_id=order_id,
            discount_amount=discount_amount,
            used_at=self.clock(),
        )
        outcome = self.store.record_usage(usage)

        if outcome == UsageOutcome.RECORDED:
            logger.info(
                "Coupon %s applied to order %s for user %s (discount %s)",
                coupon_code,
                order_id,
                user_id,
                discount_amount,
            )
            return ApplyResult(usage=usage)

        kind, error = _FAILURES[outcome]
        logger.warning(
            "Coupon %s rejected at apply time for order %s: %s", coupon_code, order_id, kind.value
        )
        return ApplyResult(error=error, error_kind=kind)

    def list_usages(self, coupon_id: UUID, skip: int = 0, limit: int = 100) -> list[CouponUsage]:
        """Usage records of a coupon, newest first. Works after the coupon is deleted."""
        return self.store.list_usages(coupon_id, skip=skip, limit=limit)

    def usage_summary(self, coupon_id: UUID) -> CouponUsageSummary:
        """Redemption totals for an existing coupon."""
        coupon = self.store.get_by_id(coupon_id)
        if coupon is None:
            raise CouponNotFoundError()

        totals = self.store.usage_totals(coupon_id)
        remaining = None
        if coupon.max_uses is not None:
            remaining = max(coupon.max_uses - (coupon.used_count or 0), 0)

        return CouponUsageSummary(
            times_used=totals.times_used,
            unique_users=totals.unique_users,
            total_discount=totals.total_discount,
            remaining_uses=remaining,
        )
