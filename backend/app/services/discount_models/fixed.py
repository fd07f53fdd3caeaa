from collections.abc import Sequence
from decimal import Decimal

from app.models.coupon import Coupon
from app.schemas.coupon import CartItem


def calculate(coupon: Coupon, items: Sequence[CartItem], subtotal: Decimal) -> Decimal:
    return Decimal(str(coupon.value))
