"""Tests for the per-type discount calculators and the calculator registry."""

from decimal import Decimal

import pytest

from app.models.coupon import Coupon, CouponType
from app.schemas.coupon import CartItem
from app.services.discount_models import bogo, fixed, free_shipping, percentage
from app.services.discount_models.factory import calculate_discount, get_discount_calculator


def _coupon(coupon_type: CouponType, value: str = "10", **kwargs) -> Coupon:
    return Coupon(code="TEST", coupon_type=coupon_type.value, value=Decimal(value), **kwargs)


def _item(product_id: str, price: str, category_id: str | None = None) -> CartItem:
    return CartItem(product_id=product_id, price=Decimal(price), category_id=category_id)


class TestFixedDiscount:
    def test_returns_face_value(self):
        """Test that a fixed coupon discounts its value."""
        coupon = _coupon(CouponType.FIXED, "150")
        assert fixed.calculate(coupon, [], Decimal("1000")) == Decimal("150")

    def test_clamped_to_subtotal(self):
        """Test that a fixed discount never exceeds the cart subtotal."""
        coupon = _coupon(CouponType.FIXED, "500")
        assert calculate_discount(coupon, [], Decimal("120")) == Decimal("120")

    def test_zero_subtotal(self):
        """Test that an empty cart gets no discount."""
        coupon = _coupon(CouponType.FIXED, "500")
        assert calculate_discount(coupon, [], Decimal("0")) == Decimal("0")


class TestPercentageDiscount:
    def test_save10_on_1000(self):
        """Test that 10% of 1000 is 100."""
        coupon = _coupon(CouponType.PERCENTAGE, "10")
        assert calculate_discount(coupon, [], Decimal("1000")) == Decimal("100")

    def test_capped_by_maximum_amount(self):
        """Test that 50% of 1000 is capped at a maximum of 300."""
        coupon = _coupon(CouponType.PERCENTAGE, "50", maximum_amount=Decimal("300"))
        assert calculate_discount(coupon, [], Decimal("1000")) == Decimal("300")

    def test_cap_not_reached(self):
        """Test that the cap only applies when the percentage exceeds it."""
        coupon = _coupon(CouponType.PERCENTAGE, "10", maximum_amount=Decimal("300"))
        assert percentage.calculate(coupon, [], Decimal("1000")) == Decimal("100")

    def test_rounds_half_up_to_cents(self):
        """Test that fractional cents round half up."""
        coupon = _coupon(CouponType.PERCENTAGE, "15")
        # 15% of 0.30 = 0.045
        assert percentage.calculate(coupon, [], Decimal("0.30")) == Decimal("0.05")

    def test_hundred_percent_is_whole_subtotal(self):
        """Test that a 100% coupon discounts the full subtotal."""
        coupon = _coupon(CouponType.PERCENTAGE, "100")
        assert calculate_discount(coupon, [], Decimal("749.99")) == Decimal("749.99")


class TestFreeShippingDiscount:
    def test_no_cart_discount(self):
        """Test that free shipping does not reduce the cart subtotal."""
        coupon = _coupon(CouponType.FREE_SHIPPING, "1")
        assert free_shipping.calculate(coupon, [], Decimal("1000")) == Decimal("0")
        assert calculate_discount(coupon, [], Decimal("1000")) == Decimal("0")


class TestBogoDiscount:
    def test_cheapest_of_two(self):
        """Test that buying two items discounts the cheaper one."""
        coupon = _coupon(CouponType.BOGO, "1")
        items = [_item("p1", "200"), _item("p2", "150")]
        assert calculate_discount(coupon, items, Decimal("350")) == Decimal("150")

    def test_single_item_gets_nothing(self):
        """Test that one qualifying line is not enough for BOGO."""
        coupon = _coupon(CouponType.BOGO, "1")
        assert bogo.calculate(coupon, [_item("p1", "200")], Decimal("200")) == Decimal("0")

    def test_quantity_does_not_count_as_extra_lines(self):
        """Test that a single line with quantity 2 is still one line."""
        coupon = _coupon(CouponType.BOGO, "1")
        items = [CartItem(product_id="p1", price=Decimal("200"), quantity=2)]
        assert bogo.calculate(coupon, items, Decimal("400")) == Decimal("0")

    def test_only_qualifying_lines_count(self):
        """Test that lines outside the coupon's scope are ignored."""
        coupon = _coupon(CouponType.BOGO, "1", applicable_categories=["shoes"])
        items = [
            _item("p1", "300", "shoes"),
            _item("p2", "50", "socks"),
            _item("p3", "250", "shoes"),
        ]
        assert calculate_discount(coupon, items, Decimal("600")) == Decimal("250")

    def test_excluded_lines_do_not_count(self):
        """Test that excluded products are left out of the BOGO pick."""
        coupon = _coupon(CouponType.BOGO, "1", exclude_products=["p2"])
        items = [_item("p1", "300"), _item("p2", "50"), _item("p3", "250")]
        assert calculate_discount(coupon, items, Decimal("600")) == Decimal("250")


class TestCalculatorRegistry:
    def test_every_coupon_type_has_a_calculator(self):
        """Test that each CouponType resolves to a calculator."""
        for coupon_type in CouponType:
            assert callable(get_discount_calculator(coupon_type))

    def test_accepts_stored_string_values(self):
        """Test that the string stored on the model resolves too."""
        assert get_discount_calculator("bogo") is bogo.calculate

    def test_unknown_type_raises(self):
        """Test that an unknown type is an error, not a silent zero discount."""
        with pytest.raises(ValueError):
            get_discount_calculator("buy_three_get_one")

    def test_calculate_discount_unknown_type_raises(self):
        """Test that pricing a coupon with an unknown stored type fails loudly."""
        coupon = Coupon(code="ODD", coupon_type="mystery", value=Decimal("5"))
        with pytest.raises(ValueError):
            calculate_discount(coupon, [], Decimal("100"))

    def test_discount_never_negative(self):
        """Test that the result is clamped at zero."""
        coupon = _coupon(CouponType.FIXED, "-5")
        assert calculate_discount(coupon, [], Decimal("100")) == Decimal("0")
