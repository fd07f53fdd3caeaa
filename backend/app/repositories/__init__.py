from app.repositories.coupon_repository import CouponFilter, CouponRepository
from app.repositories.coupon_store import CouponStore, SqlCouponStore, UsageOutcome
from app.repositories.coupon_usage_repository import CouponUsageRepository, UsageTotals

__all__ = [
    "CouponFilter",
    "CouponRepository",
    "CouponStore",
    "CouponUsageRepository",
    "SqlCouponStore",
    "UsageOutcome",
    "UsageTotals",
]
