"""The storage seam the coupon services depend on, and its SQLAlchemy implementation."""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.coupon import Coupon
from app.models.coupon_usage import CouponUsage
from app.models.shared import ensure_utc
from app.repositories.coupon_repository import CouponFilter, CouponRepository, ExpiryBatch
from app.repositories.coupon_usage_repository import CouponUsageRepository, UsageTotals
from app.services.coupon_errors import CouponCodeExistsError

logger = logging.getLogger(__name__)


class UsageOutcome(str, Enum):
    RECORDED = "recorded"
    COUPON_NOT_FOUND = "coupon_not_found"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    PER_USER_LIMIT_REACHED = "per_user_limit_reached"
    DAILY_LIMIT_REACHED = "daily_limit_reached"


class CouponStore(Protocol):
    """Persistence operations required by the coupon services."""

    def get_by_id(self, coupon_id: UUID) -> Coupon | None: ...

    def get_by_code(self, code: str) -> Coupon | None: ...

    def list_coupons(self, filters: CouponFilter) -> list[Coupon]: ...

    def count_coupons(self, filters: CouponFilter) -> int: ...

    def create(self, values: dict[str, Any]) -> Coupon: ...

    def update(self, coupon: Coupon, values: dict[str, Any]) -> Coupon: ...

    def delete(self, coupon_id: UUID) -> bool: ...

    def count_user_usages(self, coupon_id: UUID, user_id: str) -> int: ...

    def get_daily_usage_count(self, coupon_id: UUID, day: date) -> int: ...

    def list_usages(self, coupon_id: UUID, skip: int = 0, limit: int = 100) -> list[CouponUsage]: ...

    def usage_totals(self, coupon_id: UUID) -> UsageTotals: ...

    def record_usage(self, usage: CouponUsage) -> UsageOutcome:
        """Atomically consume one global, one per-user and one per-day slot and persist ``usage``.

        The day is the UTC date of ``usage.used_at``. Either every write
        happens or none does.
        """
        ...

    def expire_batch(self, now: datetime, limit: int) -> ExpiryBatch:
        """Expire up to ``limit`` active coupons ending before ``now``, all-or-nothing."""
        ...


class SqlCouponStore:
    """CouponStore backed by a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self.coupon_repo = CouponRepository(db)
        self.usage_repo = CouponUsageRepository(db)

    def get_by_id(self, coupon_id: UUID) -> Coupon | None:
        return self.coupon_repo.get_by_id(coupon_id)

    def get_by_code(self, code: str) -> Coupon | None:
        return self.coupon_repo.get_by_code(code)

    def list_coupons(self, filters: CouponFilter) -> list[Coupon]:
        return self.coupon_repo.get_all(filters)

    def count_coupons(self, filters: CouponFilter) -> int:
        return self.coupon_repo.count(filters)

    def create(self, values: dict[str, Any]) -> Coupon:
        try:
            return self.coupon_repo.create(values)
        except IntegrityError as exc:
            self.db.rollback()
            raise CouponCodeExistsError() from exc

    def update(self, coupon: Coupon, values: dict[str, Any]) -> Coupon:
        return self.coupon_repo.update(coupon, values)

    def delete(self, coupon_id: UUID) -> bool:
        return self.coupon_repo.delete(coupon_id)

    def count_user_usages(self, coupon_id: UUID, user_id: str) -> int:
        return self.usage_repo.count_by_coupon_and_user(coupon_id, user_id)

    def get_daily_usage_count(self, coupon_id: UUID, day: date) -> int:
        return self.usage_repo.get_daily_count(coupon_id, day)

    def list_usages(self, coupon_id: UUID, skip: int = 0, limit: int = 100) -> list[CouponUsage]:
        return self.usage_repo.get_all_by_coupon_id(coupon_id, skip=skip, limit=limit)

    def usage_totals(self, coupon_id: UUID) -> UsageTotals:
        return self.usage_repo.totals_by_coupon_id(coupon_id)

    def record_usage(self, usage: CouponUsage) -> UsageOutcome:
        coupon_id: UUID = usage.coupon_id  # type: ignore[assignment]
        try:
            # Global counter first: its UPDATE opens the write transaction.
            if not self.coupon_repo.try_increment_used_count(coupon_id):
                self.db.rollback()
                if self.coupon_repo.get_by_id(coupon_id) is None:
                    return UsageOutcome.COUPON_NOT_FOUND
                return UsageOutcome.USAGE_LIMIT_REACHED

            per_user_limit = self.coupon_repo.get_per_user_limit(coupon_id)
            if not self.usage_repo.try_increment_user_counter(
                coupon_id,
                str(usage.user_id),
                per_user_limit,
            ):
                self.db.rollback()
                return UsageOutcome.PER_USER_LIMIT_REACHED

            per_day_limit = self.coupon_repo.get_per_day_limit(coupon_id)
            if not self.usage_repo.try_increment_daily_counter(
                coupon_id,
                ensure_utc(usage.used_at).date(),  # type: ignore[arg-type]
                per_day_limit,
            ):
                self.db.rollback()
                return UsageOutcome.DAILY_LIMIT_REACHED

            self.usage_repo.add(usage)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to record usage of coupon %s", coupon_id)
            raise

        self.db.refresh(usage)
        return UsageOutcome.RECORDED

    def expire_batch(self, now: datetime, limit: int) -> ExpiryBatch:
        try:
            return self.coupon_repo.expire_batch(now, limit)
        except SQLAlchemyError:
            self.db.rollback()
            raise
