"""CouponUsage and redemption counter data access."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.coupon_usage import CouponDailyCounter, CouponUsage, CouponUserCounter


@dataclass
class UsageTotals:
    times_used: int
    unique_users: int
    total_discount: Decimal


class CouponUsageRepository:
    """Repository for CouponUsage model."""

    def __init__(self, db: Session):
        self.db = db

    def count_by_coupon_and_user(self, coupon_id: UUID, user_id: str) -> int:
        """Count a user's redemptions of a coupon."""
        return (
            self.db.query(func.count(CouponUsage.id))
            .filter(CouponUsage.coupon_id == coupon_id, CouponUsage.user_id == user_id)
            .scalar()
            or 0
        )

    def get_all_by_coupon_id(
        self, coupon_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[CouponUsage]:
        """Get usage records for a coupon, newest first."""
        return (
            self.db.query(CouponUsage)
            .filter(CouponUsage.coupon_id == coupon_id)
            .order_by(CouponUsage.used_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def totals_by_coupon_id(self, coupon_id: UUID) -> UsageTotals:
        times_used, unique_users, total = (
            self.db.query(
                func.count(CouponUsage.id),
                func.count(func.distinct(CouponUsage.user_id)),
                func.coalesce(func.sum(CouponUsage.discount_amount), 0),
            )
            .filter(CouponUsage.coupon_id == coupon_id)
            .one()
        )
        return UsageTotals(
            times_used=times_used or 0,
            unique_users=unique_users or 0,
            total_discount=Decimal(str(total)),
        )

    def try_increment_user_counter(
        self, coupon_id: UUID, user_id: str, limit: int | None
    ) -> bool:
        """Bump the (coupon, user) counter unless it already reached ``limit``.

        Runs inside the caller's transaction and does not commit.
        """
        return self._try_increment(
            CouponUserCounter,
            (CouponUserCounter.coupon_id == coupon_id, CouponUserCounter.user_id == user_id),
            {"coupon_id": coupon_id, "user_id": user_id},
            limit,
        )

    def try_increment_daily_counter(
        self, coupon_id: UUID, day: date, limit: int | None
    ) -> bool:
        """Bump the coupon's counter for ``day`` unless it already reached ``limit``.

        Runs inside the caller's transaction and does not commit.
        """
        return self._try_increment(
            CouponDailyCounter,
            (CouponDailyCounter.coupon_id == coupon_id, CouponDailyCounter.day == day),
            {"coupon_id": coupon_id, "day": day},
            limit,
        )

    def get_daily_count(self, coupon_id: UUID, day: date) -> int:
        """Redemptions of a coupon recorded on ``day`` (UTC)."""
        return (
            self.db.query(CouponDailyCounter.used_count)
            .filter(CouponDailyCounter.coupon_id == coupon_id, CouponDailyCounter.day == day)
            .scalar()
            or 0
        )

    def _try_increment(
        self,
        model: type[CouponUserCounter] | type[CouponDailyCounter],
        key: tuple[Any, ...],
        key_values: dict[str, Any],
        limit: int | None,
    ) -> bool:
        # The first bump inserts the row under a savepoint; losing that insert
        # to a concurrent request falls back to the conditional update.
        for _ in range(2):
            stmt = update(model).where(*key)
            if limit is not None:
                stmt = stmt.where(model.used_count < limit)
            result = self.db.execute(
                stmt.values(used_count=model.used_count + 1).execution_options(
                    synchronize_session=False
                )
            )
            if result.rowcount == 1:  # type: ignore[attr-defined]
                return True

            if self.db.query(model.used_count).filter(*key).first() is not None:
                return False
            if limit is not None and limit < 1:
                return False

            try:
                with self.db.begin_nested():
                    self.db.add(model(used_count=1, **key_values))
                return True
            except IntegrityError:
                continue
        return False

    def add(self, usage: CouponUsage) -> CouponUsage:
        """Stage a usage record in the current transaction."""
        self.db.add(usage)
        self.db.flush()
        return usage
