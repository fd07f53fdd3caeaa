"""CouponUsage audit records and the per-user and per-day redemption counters."""

from sqlalchemy import Column, Date, DateTime, Index, Integer, Numeric, String

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid, utc_now


class CouponUsage(Base):
    """Immutable record of one coupon redemption on a confirmed order.

    ``coupon_id`` carries no foreign key: usage history outlives the coupon.
    """

    __tablename__ = "coupon_usage"
    __table_args__ = (Index("ix_coupon_usage_coupon_user", "coupon_id", "user_id"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    coupon_id = Column(UUIDType, nullable=False, index=True)
    coupon_code = Column(String(20), nullable=False)
    user_id = Column(String(255), nullable=False)
    order_id = Column(String(255), nullable=False, index=True)
    discount_amount = Column(Numeric(12, 2), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class CouponUserCounter(Base):
    """Redemptions of one coupon by one user, bumped alongside ``Coupon.used_count``."""

    __tablename__ = "coupon_user_counters"

    coupon_id = Column(UUIDType, primary_key=True)
    user_id = Column(String(255), primary_key=True)
    used_count = Column(Integer, nullable=False, default=0)


class CouponDailyCounter(Base):
    """Redemptions of one coupon on one UTC calendar day."""

    __tablename__ = "coupon_daily_counters"

    coupon_id = Column(UUIDType, primary_key=True)
    day = Column(Date, primary_key=True)
    used_count = Column(Integer, nullable=False, default=0)
