from app.models.coupon import Coupon, CouponStatus, CouponType
from app.models.coupon_usage import CouponDailyCounter, CouponUsage, CouponUserCounter

__all__ = [
    "Coupon",
    "CouponDailyCounter",
    "CouponStatus",
    "CouponType",
    "CouponUsage",
    "CouponUserCounter",
]
