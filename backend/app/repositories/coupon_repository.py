"""Coupon repository for data access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Query, Session

from app.core.sorting import apply_order_by
from app.models.coupon import Coupon, CouponStatus, CouponType
from app.models.coupon_usage import CouponDailyCounter, CouponUserCounter
from app.schemas.coupon import normalize_code

SORTABLE_FIELDS = frozenset(
    {"code", "name", "coupon_type", "status", "used_count", "start_date", "end_date", "created_at"}
)


@dataclass
class CouponFilter:
    """Criteria for listing coupons."""

    status: CouponStatus | None = None
    coupon_type: CouponType | None = None
    search: str | None = None
    skip: int = 0
    limit: int = 100
    order_by: str | None = None


@dataclass
class ExpiryBatch:
    """Outcome of one sweep batch: ids picked, and rows actually moved to expired."""

    selected: int
    expired: int


class CouponRepository:
    """Repository for Coupon model."""

    def __init__(self, db: Session):
        self.db = db

    def _filtered(self, filters: CouponFilter) -> Query:  # type: ignore[type-arg]
        query = self.db.query(Coupon)
        if filters.status:
            query = query.filter(Coupon.status == filters.status.value)
        if filters.coupon_type:
            query = query.filter(Coupon.coupon_type == filters.coupon_type.value)
        if filters.search and filters.search.strip():
            pattern = f"%{filters.search.strip()}%"
            query = query.filter(or_(Coupon.code.ilike(pattern), Coupon.name.ilike(pattern)))
        return query

    def get_all(self, filters: CouponFilter) -> list[Coupon]:
        """Get coupons matching the filter, sorted and paginated in the database."""
        query = apply_order_by(self._filtered(filters), Coupon, filters.order_by, SORTABLE_FIELDS)
        return query.offset(filters.skip).limit(filters.limit).all()

    def count(self, filters: CouponFilter) -> int:
        """Count coupons matching the filter, ignoring pagination."""
        return self._filtered(filters).with_entities(func.count(Coupon.id)).scalar() or 0

    def get_by_id(self, coupon_id: UUID) -> Coupon | None:
        """Get a coupon by ID."""
        return self.db.query(Coupon).filter(Coupon.id == coupon_id).first()

    def get_by_code(self, code: str) -> Coupon | None:
        """Get a coupon by code, matched case-insensitively."""
        return self.db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()

    def create(self, values: dict[str, Any]) -> Coupon:
        """Create a new coupon from validated column values."""
        coupon = Coupon(**values)
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def update(self, coupon: Coupon, values: dict[str, Any]) -> Coupon:
        """Write validated column values onto an existing coupon."""
        for key, value in values.items():
            setattr(coupon, key, value)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def delete(self, coupon_id: UUID) -> bool:
        """Delete a coupon and its redemption counters. Usage records are kept."""
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return False

        self.db.query(CouponUserCounter).filter(
            CouponUserCounter.coupon_id == coupon_id
        ).delete(synchronize_session=False)
        self.db.query(CouponDailyCounter).filter(
            CouponDailyCounter.coupon_id == coupon_id
        ).delete(synchronize_session=False)
        self.db.delete(coupon)
        self.db.commit()
        return True

    def try_increment_used_count(self, coupon_id: UUID) -> bool:
        """Increment ``used_count`` if the coupon still has a free slot.

        A single conditional UPDATE; does not commit. Returns False when the
        coupon is missing or ``used_count`` already equals ``max_uses``.
        """
        result = self.db.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                or_(Coupon.max_uses.is_(None), Coupon.used_count < Coupon.max_uses),
            )
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    def get_per_user_limit(self, coupon_id: UUID) -> int | None:
        return (
            self.db.query(Coupon.max_uses_per_user).filter(Coupon.id == coupon_id).scalar()
        )

    def get_per_day_limit(self, coupon_id: UUID) -> int | None:
        return self.db.query(Coupon.max_uses_per_day).filter(Coupon.id == coupon_id).scalar()

    def expire_batch(self, now: datetime, limit: int) -> ExpiryBatch:
        """Mark up to ``limit`` active coupons whose end date has passed as expired.

        The batch is one conditional UPDATE committed as a unit. ``selected``
        can exceed ``expired`` when another sweeper or an admin changed some
        of the rows in between; only ``selected == 0`` means nothing is left.
        """
        ids = [
            row[0]
            for row in self.db.query(Coupon.id)
            .filter(Coupon.status == CouponStatus.ACTIVE.value, Coupon.end_date < now)
            .order_by(Coupon.end_date.asc())
            .limit(limit)
            .all()
        ]
        if not ids:
            return ExpiryBatch(selected=0, expired=0)

        result = self.db.execute(
            update(Coupon)
            .where(Coupon.id.in_(ids), Coupon.status == CouponStatus.ACTIVE.value)
            .values(status=CouponStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return ExpiryBatch(selected=len(ids), expired=result.rowcount)  # type: ignore[attr-defined]
