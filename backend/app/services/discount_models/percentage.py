from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from app.models.coupon import Coupon
from app.schemas.coupon import CartItem

CENT = Decimal("0.01")


def calculate(coupon: Coupon, items: Sequence[CartItem], subtotal: Decimal) -> Decimal:
    rate = Decimal(str(coupon.value))
    amount = (subtotal * rate / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)

    if coupon.maximum_amount is not None:
        cap = Decimal(str(coupon.maximum_amount))
        if amount > cap:
            amount = cap

    return amount
