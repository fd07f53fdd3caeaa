"""Coupon rejection kinds, display messages and admin exceptions."""

from enum import Enum


class CouponErrorKind(str, Enum):
    MISSING_CODE = "missing_code"
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    USAGE_LIMIT_EXCEEDED = "usage_limit_exceeded"
    PER_USER_LIMIT_EXCEEDED = "per_user_limit_exceeded"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    BELOW_MINIMUM_AMOUNT = "below_minimum_amount"
    RESTRICTION_VIOLATION = "restriction_violation"
    NOT_APPLICABLE_TO_CART = "not_applicable_to_cart"
    INVALID_COUPON_DATA = "invalid_coupon_data"
    CODE_ALREADY_EXISTS = "code_already_exists"


MISSING_CODE = "Coupon code is required"
INVALID_CODE = "Invalid coupon code"
NOT_ACTIVE = "Coupon is not active"
NOT_YET_VALID = "Coupon not yet valid"
EXPIRED = "Coupon has expired"
USAGE_LIMIT_REACHED = "Coupon usage limit reached"
PER_USER_LIMIT_REACHED = "You have reached the usage limit for this coupon"
DAILY_LIMIT_REACHED = "This coupon has reached its usage limit for today"
MINIMUM_AMOUNT = "Minimum purchase amount is {amount}"
FIRST_TIME_ONLY = "This coupon is only valid on your first order"
NEW_CUSTOMERS_ONLY = "This coupon is only valid for new customers"
EXISTING_CUSTOMERS_ONLY = "This coupon is only valid for returning customers"
MIN_QUANTITY = "Add at least {quantity} items to use this coupon"
MAX_QUANTITY = "This coupon is valid for at most {quantity} items"
SIGN_IN_REQUIRED = "Sign in to use this coupon"
NOT_APPLICABLE = "This coupon is not applicable to items in your cart"
COUPON_NOT_FOUND = "Coupon not found"
DUPLICATE_CODE = "A coupon with this code already exists"


class CouponError(ValueError):
    """Base class for coupon errors raised by administrative operations."""

    kind: CouponErrorKind = CouponErrorKind.INVALID_COUPON_DATA

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCouponDataError(CouponError):
    kind = CouponErrorKind.INVALID_COUPON_DATA


class CouponCodeExistsError(CouponError):
    kind = CouponErrorKind.CODE_ALREADY_EXISTS

    def __init__(self, message: str = DUPLICATE_CODE):
        super().__init__(message)


class CouponNotFoundError(CouponError):
    kind = CouponErrorKind.NOT_FOUND

    def __init__(self, message: str = COUPON_NOT_FOUND):
        super().__init__(message)


class MalformedCouponError(Exception):
    """A stored coupon row cannot be interpreted, e.g. restrictions that no longer parse.

    Not a :class:`CouponError`: the shopper did nothing wrong and the request
    should be retried once the data is repaired.
    """

    def __init__(self, coupon_code: str, reason: str):
        super().__init__(f"Coupon {coupon_code} has malformed data: {reason}")
        self.coupon_code = coupon_code
        self.reason = reason
