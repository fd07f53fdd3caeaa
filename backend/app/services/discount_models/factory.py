from collections.abc import Callable, Sequence
from decimal import Decimal

from app.models.coupon import Coupon, CouponType
from app.schemas.coupon import CartItem
from app.services.discount_models import bogo, fixed, free_shipping, percentage

CalculatorFn = Callable[[Coupon, Sequence[CartItem], Decimal], Decimal]

_CALCULATORS: dict[CouponType, CalculatorFn] = {
    CouponType.FIXED: fixed.calculate,
    CouponType.PERCENTAGE: percentage.calculate,
    CouponType.FREE_SHIPPING: free_shipping.calculate,
    CouponType.BOGO: bogo.calculate,
}

_missing = set(CouponType) - set(_CALCULATORS)
if _missing:
    raise RuntimeError(f"No discount calculator for coupon types: {sorted(t.value for t in _missing)}")


def get_discount_calculator(coupon_type: CouponType | str) -> CalculatorFn:
    """Return the calculator for a coupon type. Unknown types raise ValueError."""
    return _CALCULATORS[CouponType(coupon_type)]


def calculate_discount(
    coupon: Coupon,
    items: Sequence[CartItem],
    subtotal: Decimal,
) -> Decimal:
    """Discount for ``coupon`` on a cart, never negative and never above ``subtotal``."""
    subtotal = Decimal(str(subtotal))
    calculator = get_discount_calculator(coupon.coupon_type)  # type: ignore[arg-type]
    amount = calculator(coupon, items, subtotal)
    return min(max(amount, Decimal("0")), subtotal)
