from app.schemas.coupon import (
    ApplyCouponRequest,
    CartItem,
    CouponCreate,
    CouponResponse,
    CouponRestrictions,
    CouponUpdate,
    CouponUsageResponse,
    CouponUsageSummaryResponse,
    SweepResponse,
    UserProfile,
    ValidateCouponRequest,
    ValidationResultResponse,
)

__all__ = [
    "ApplyCouponRequest",
    "CartItem",
    "CouponCreate",
    "CouponResponse",
    "CouponRestrictions",
    "CouponUpdate",
    "CouponUsageResponse",
    "CouponUsageSummaryResponse",
    "SweepResponse",
    "UserProfile",
    "ValidateCouponRequest",
    "ValidationResultResponse",
]
