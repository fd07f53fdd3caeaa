from collections.abc import Sequence
from decimal import Decimal

from app.models.coupon import Coupon
from app.schemas.coupon import CartItem
from app.services.cart_scope import qualifying_items


def calculate(coupon: Coupon, items: Sequence[CartItem], subtotal: Decimal) -> Decimal:
    """Price of the cheapest qualifying line once two or more lines qualify.

    Lines count as single items whatever their quantity.
    """
    eligible = qualifying_items(coupon, items)
    if len(eligible) < 2:
        return Decimal("0")
    return min(Decimal(str(item.price)) for item in eligible)
