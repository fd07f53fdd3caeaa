"""Coupon model for cart discounts."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Integer, Numeric, String, Text, func

from app.core.database import Base
from app.models.shared import UUIDType, generate_uuid


class CouponType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    FREE_SHIPPING = "free_shipping"
    BOGO = "bogo"


class CouponStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    EXPIRED = "expired"


class Coupon(Base):
    """A discount rule identified by a unique, uppercased code."""

    __tablename__ = "coupons"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    code = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    coupon_type = Column(String(20), nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    minimum_amount = Column(Numeric(12, 2), nullable=True)
    maximum_amount = Column(Numeric(12, 2), nullable=True)

    max_uses = Column(Integer, nullable=True)
    max_uses_per_user = Column(Integer, nullable=True)
    max_uses_per_day = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=CouponStatus.ACTIVE.value, index=True)

    # first_time_only, new_customers_only, existing_customers_only, min_quantity, max_quantity
    restrictions = Column(JSON, nullable=True)
    applicable_products = Column(JSON, nullable=True)
    applicable_categories = Column(JSON, nullable=True)
    exclude_products = Column(JSON, nullable=True)
    exclude_categories = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
