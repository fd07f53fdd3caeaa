"""In-memory CouponStore used to exercise the services without a database."""

import threading
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.exc import OperationalError

from app.models.coupon import Coupon, CouponStatus
from app.models.coupon_usage import CouponUsage
from app.models.shared import ensure_utc, generate_uuid
from app.repositories.coupon_repository import CouponFilter, ExpiryBatch
from app.repositories.coupon_store import UsageOutcome
from app.repositories.coupon_usage_repository import UsageTotals
from app.schemas.coupon import normalize_code
from app.services.coupon_errors import CouponCodeExistsError


class InMemoryCouponStore:
    """Dict-backed store; a lock plays the part of the database transaction."""

    def __init__(self) -> None:
        self.coupons: dict[UUID, Coupon] = {}
        self.usages: list[CouponUsage] = []
        self.user_counters: dict[tuple[UUID, str], int] = {}
        self.daily_counters: dict[tuple[UUID, date], int] = {}
        self.expire_failures = 0
        self.expire_calls = 0
        self._lock = threading.Lock()

    def get_by_id(self, coupon_id: UUID) -> Coupon | None:
        return self.coupons.get(coupon_id)

    def get_by_code(self, code: str) -> Coupon | None:
        code = normalize_code(code)
        return next((c for c in self.coupons.values() if c.code == code), None)

    def _matching(self, filters: CouponFilter) -> list[Coupon]:
        result = list(self.coupons.values())
        if filters.status:
            result = [c for c in result if c.status == filters.status.value]
        if filters.coupon_type:
            result = [c for c in result if c.coupon_type == filters.coupon_type.value]
        if filters.search:
            needle = filters.search.strip().lower()
            result = [
                c for c in result if needle in str(c.code).lower() or needle in str(c.name).lower()
            ]
        return sorted(result, key=lambda c: str(c.code))

    def list_coupons(self, filters: CouponFilter) -> list[Coupon]:
        return self._matching(filters)[filters.skip : filters.skip + filters.limit]

    def count_coupons(self, filters: CouponFilter) -> int:
        return len(self._matching(filters))

    def create(self, values: dict[str, Any]) -> Coupon:
        if self.get_by_code(values["code"]) is not None:
            raise CouponCodeExistsError()
        now = datetime.now(UTC)
        coupon = Coupon(id=generate_uuid(), used_count=0, created_at=now, updated_at=now, **values)
        self.coupons[coupon.id] = coupon  # type: ignore[index]
        return coupon

    def update(self, coupon: Coupon, values: dict[str, Any]) -> Coupon:
        for key, value in values.items():
            setattr(coupon, key, value)
        coupon.updated_at = datetime.now(UTC)  # type: ignore[assignment]
        return coupon

    def delete(self, coupon_id: UUID) -> bool:
        if self.coupons.pop(coupon_id, None) is None:
            return False
        for key in [k for k in self.user_counters if k[0] == coupon_id]:
            del self.user_counters[key]
        for day_key in [k for k in self.daily_counters if k[0] == coupon_id]:
            del self.daily_counters[day_key]
        return True

    def count_user_usages(self, coupon_id: UUID, user_id: str) -> int:
        return sum(1 for u in self.usages if u.coupon_id == coupon_id and u.user_id == user_id)

    def get_daily_usage_count(self, coupon_id: UUID, day: date) -> int:
        return self.daily_counters.get((coupon_id, day), 0)

    def list_usages(self, coupon_id: UUID, skip: int = 0, limit: int = 100) -> list[CouponUsage]:
        rows = [u for u in self.usages if u.coupon_id == coupon_id]
        rows.sort(key=lambda u: u.used_at, reverse=True)
        return rows[skip : skip + limit]

    def usage_totals(self, coupon_id: UUID) -> UsageTotals:
        rows = [u for u in self.usages if u.coupon_id == coupon_id]
        return UsageTotals(
            times_used=len(rows),
            unique_users=len({u.user_id for u in rows}),
            total_discount=sum((Decimal(str(u.discount_amount)) for u in rows), Decimal("0")),
        )

    def record_usage(self, usage: CouponUsage) -> UsageOutcome:
        with self._lock:
            coupon = self.coupons.get(usage.coupon_id)  # type: ignore[arg-type]
            if coupon is None:
                return UsageOutcome.COUPON_NOT_FOUND
            if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
                return UsageOutcome.USAGE_LIMIT_REACHED

            key = (usage.coupon_id, str(usage.user_id))
            per_user = self.user_counters.get(key, 0)  # type: ignore[arg-type]
            if coupon.max_uses_per_user is not None and per_user >= coupon.max_uses_per_user:
                return UsageOutcome.PER_USER_LIMIT_REACHED

            day_key = (usage.coupon_id, ensure_utc(usage.used_at).date())  # type: ignore[arg-type]
            per_day = self.daily_counters.get(day_key, 0)  # type: ignore[arg-type]
            if coupon.max_uses_per_day is not None and per_day >= coupon.max_uses_per_day:
                return UsageOutcome.DAILY_LIMIT_REACHED

            coupon.used_count += 1  # type: ignore[assignment]
            self.user_counters[key] = per_user + 1  # type: ignore[index]
            self.daily_counters[day_key] = per_day + 1  # type: ignore[index]
            self.usages.append(usage)
            return UsageOutcome.RECORDED

    def expire_batch(self, now: datetime, limit: int) -> ExpiryBatch:
        self.expire_calls += 1
        if self.expire_failures > 0:
            self.expire_failures -= 1
            raise OperationalError("UPDATE coupons", {}, Exception("database is locked"))

        with self._lock:
            due = [
                c
                for c in self.coupons.values()
                if c.status == CouponStatus.ACTIVE.value and ensure_utc(c.end_date) < now  # type: ignore[arg-type]
            ][:limit]
            for coupon in due:
                coupon.status = CouponStatus.EXPIRED.value  # type: ignore[assignment]
            return ExpiryBatch(selected=len(due), expired=len(due))
