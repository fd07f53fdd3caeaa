"""Which cart lines a coupon's product and category lists cover."""

from collections.abc import Iterable

from app.models.coupon import Coupon
from app.schemas.coupon import CartItem


def is_scoped(coupon: Coupon) -> bool:
    """True when the coupon names products or categories it is limited to."""
    return bool(coupon.applicable_products) or bool(coupon.applicable_categories)


def is_excluded(coupon: Coupon, item: CartItem) -> bool:
    if item.product_id in (coupon.exclude_products or ()):
        return True
    return item.category_id is not None and item.category_id in (coupon.exclude_categories or ())


def qualifying_items(coupon: Coupon, items: Iterable[CartItem]) -> list[CartItem]:
    """Cart lines the coupon applies to.

    Excluded lines never qualify. Without allow-lists every other line does;
    with them a line must match a listed product or category.
    """
    products = set(coupon.applicable_products or ())
    categories = set(coupon.applicable_categories or ())
    scoped = is_scoped(coupon)

    result = []
    for item in items:
        if is_excluded(coupon, item):
            continue
        if scoped and item.product_id not in products and item.category_id not in categories:
            continue
        result.append(item)
    return result
