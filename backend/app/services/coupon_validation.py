"""Coupon validation pipeline: decides whether a coupon applies to a cart."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Protocol

from pydantic import ValidationError

from app.core.config import settings
from app.models.coupon import Coupon, CouponStatus, CouponType
from app.models.shared import ensure_utc, utc_now
from app.repositories.coupon_store import CouponStore
from app.schemas.coupon import CartItem, CouponRestrictions, UserProfile
from app.services import coupon_errors as msg
from app.services.cart_scope import is_scoped, qualifying_items
from app.services.coupon_errors import CouponErrorKind, MalformedCouponError
from app.services.discount_models.factory import calculate_discount


class CategoryLookup(Protocol):
    """Resolves a product's category when the cart line does not carry it."""

    def get_category_id(self, product_id: str) -> str | None: ...


@dataclass
class ValidationResult:
    """Outcome of validating a coupon against a cart. Never persisted."""

    valid: bool
    coupon: Coupon | None = None
    discount_amount: Decimal | None = None
    error: str | None = None
    error_kind: CouponErrorKind | None = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def reject(cls, kind: CouponErrorKind, error: str) -> "ValidationResult":
        return cls(valid=False, error=error, error_kind=kind)


def format_amount(amount: Decimal) -> str:
    """Render a money amount for messages: ``₹500`` or ``₹499.50``."""
    amount = Decimal(str(amount))
    if amount == amount.to_integral_value():
        text = str(amount.quantize(Decimal(1)))
    else:
        text = str(amount.quantize(Decimal("0.01")))
    return f"{settings.CURRENCY_SYMBOL}{text}"


class CouponValidationService:
    """Runs the eligibility checks for a coupon code, in order, stopping at the first failure.

    Validation only reads from the store, so carts can be re-priced as often
    as needed without touching usage counters. Limits checked here are a
    snapshot; :class:`~app.services.coupon_usage_ledger.CouponUsageLedger`
    enforces them for real when the order is confirmed.
    """

    def __init__(
        self,
        store: CouponStore,
        category_lookup: CategoryLookup | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.category_lookup = category_lookup
        self.clock = clock

    def validate(
        self,
        code: str,
        user_id: str,
        cart_items: Sequence[CartItem],
        subtotal: Decimal,
        user: UserProfile | None = None,
    ) -> ValidationResult:
        """Validate ``code`` for ``user_id``'s cart and compute the discount.

        Business-rule failures come back as ``valid=False`` results; only
        storage errors and unreadable coupon rows raise.

        Raises:
            ValueError: If ``subtotal`` is negative.
            MalformedCouponError: If the stored coupon cannot be interpreted.
        """
        subtotal = Decimal(str(subtotal))
        if subtotal < 0:
            raise ValueError("Subtotal cannot be negative")

        if not code or not code.strip():
            return ValidationResult.reject(CouponErrorKind.MISSING_CODE, msg.MISSING_CODE)

        coupon = self.store.get_by_code(code)
        if coupon is None:
            return ValidationResult.reject(CouponErrorKind.NOT_FOUND, msg.INVALID_CODE)

        now = ensure_utc(self.clock())
        items = self._resolve_categories(coupon, cart_items)

        rejection = (
            self._check_status(coupon)
            or self._check_window(coupon, now)
            or self._check_usage_limit(coupon)
            or self._check_per_user_limit(coupon, user_id)
            or self._check_daily_limit(coupon, now)
            or self._check_minimum_amount(coupon, subtotal)
            or self._check_restrictions(coupon, items, user, now)
            or self._check_applicability(coupon, items)
        )
        if rejection is not None:
            return rejection

        try:
            discount = calculate_discount(coupon, items, subtotal)
        except ValueError as exc:
            raise MalformedCouponError(str(coupon.code), str(exc)) from exc
        return ValidationResult(
            valid=True,
            coupon=coupon,
            discount_amount=discount,
            warnings=self._warnings(coupon, discount, now),
        )

    def _resolve_categories(
        self, coupon: Coupon, cart_items: Sequence[CartItem]
    ) -> list[CartItem]:
        needs_categories = bool(coupon.applicable_categories) or bool(coupon.exclude_categories)
        if not needs_categories or self.category_lookup is None:
            return list(cart_items)

        resolved = []
        for item in cart_items:
            if item.category_id is None:
                category_id = self.category_lookup.get_category_id(item.product_id)
                item = item.model_copy(update={"category_id": category_id})
            resolved.append(item)
        return resolved

    def _check_status(self, coupon: Coupon) -> ValidationResult | None:
        if coupon.status == CouponStatus.EXPIRED.value:
            return ValidationResult.reject(CouponErrorKind.EXPIRED, msg.NOT_ACTIVE)
        if coupon.status != CouponStatus.ACTIVE.value:
            return ValidationResult.reject(CouponErrorKind.INACTIVE, msg.NOT_ACTIVE)
        return None

    def _check_window(self, coupon: Coupon, now: datetime) -> ValidationResult | None:
        if now < ensure_utc(coupon.start_date):  # type: ignore[arg-type]
            return ValidationResult.reject(CouponErrorKind.NOT_YET_VALID, msg.NOT_YET_VALID)
        if now > ensure_utc(coupon.end_date):  # type: ignore[arg-type]
            return ValidationResult.reject(CouponErrorKind.EXPIRED, msg.EXPIRED)
        return None

    def _check_usage_limit(self, coupon: Coupon) -> ValidationResult | None:
        if coupon.max_uses is not None and (coupon.used_count or 0) >= coupon.max_uses:
            return ValidationResult.reject(
                CouponErrorKind.USAGE_LIMIT_EXCEEDED, msg.USAGE_LIMIT_REACHED
            )
        return None

    def _check_per_user_limit(self, coupon: Coupon, user_id: str) -> ValidationResult | None:
        if coupon.max_uses_per_user is None:
            return None
        used = self.store.count_user_usages(coupon.id, user_id)  # type: ignore[arg-type]
        if used >= coupon.max_uses_per_user:
            return ValidationResult.reject(
                CouponErrorKind.PER_USER_LIMIT_EXCEEDED, msg.PER_USER_LIMIT_REACHED
            )
        return None

    def _check_daily_limit(self, coupon: Coupon, now: datetime) -> ValidationResult | None:
        if coupon.max_uses_per_day is None:
            return None
        used = self.store.get_daily_usage_count(coupon.id, now.date())  # type: ignore[arg-type]
        if used >= coupon.max_uses_per_day:
            return ValidationResult.reject(
                CouponErrorKind.DAILY_LIMIT_EXCEEDED, msg.DAILY_LIMIT_REACHED
            )
        return None

    def _check_minimum_amount(self, coupon: Coupon, subtotal: Decimal) -> ValidationResult | None:
        if coupon.minimum_amount is None:
            return None
        minimum = Decimal(str(coupon.minimum_amount))
        if subtotal < minimum:
            return ValidationResult.reject(
                CouponErrorKind.BELOW_MINIMUM_AMOUNT,
                msg.MINIMUM_AMOUNT.format(amount=format_amount(minimum)),
            )
        return None

    def _check_restrictions(
        self,
        coupon: Coupon,
        items: Sequence[CartItem],
        user: UserProfile | None,
        now: datetime,
    ) -> ValidationResult | None:
        if not coupon.restrictions:
            return None
        try:
            rules = CouponRestrictions.model_validate(coupon.restrictions)
        except ValidationError as exc:
            raise MalformedCouponError(str(coupon.code), "invalid restrictions") from exc

        def violation(error: str) -> ValidationResult:
            return ValidationResult.reject(CouponErrorKind.RESTRICTION_VIOLATION, error)

        needs_user = (
            rules.first_time_only or rules.new_customers_only or rules.existing_customers_only
        )
        if needs_user and user is None:
            return violation(msg.SIGN_IN_REQUIRED)

        if user is not None:
            if rules.first_time_only and user.order_count > 0:
                return violation(msg.FIRST_TIME_ONLY)
            if rules.new_customers_only:
                window = timedelta(days=settings.NEW_CUSTOMER_WINDOW_DAYS)
                if user.created_at is None or now - ensure_utc(user.created_at) > window:
                    return violation(msg.NEW_CUSTOMERS_ONLY)
            if rules.existing_customers_only and user.order_count == 0:
                return violation(msg.EXISTING_CUSTOMERS_ONLY)

        units = sum(item.quantity for item in items)
        if rules.min_quantity is not None and units < rules.min_quantity:
            return violation(msg.MIN_QUANTITY.format(quantity=rules.min_quantity))
        if rules.max_quantity is not None and units > rules.max_quantity:
            return violation(msg.MAX_QUANTITY.format(quantity=rules.max_quantity))
        return None

    def _check_applicability(
        self, coupon: Coupon, items: Sequence[CartItem]
    ) -> ValidationResult | None:
        if is_scoped(coupon) and not qualifying_items(coupon, items):
            return ValidationResult.reject(
                CouponErrorKind.NOT_APPLICABLE_TO_CART, msg.NOT_APPLICABLE
            )
        return None

    def _warnings(self, coupon: Coupon, discount: Decimal, now: datetime) -> list[str]:
        warnings = []
        if coupon.coupon_type == CouponType.FREE_SHIPPING.value:
            warnings.append("Free shipping will be applied at checkout")
        elif coupon.coupon_type == CouponType.BOGO.value and discount == 0:
            warnings.append("Add at least two eligible items to get the BOGO discount")

        if coupon.max_uses is not None:
            remaining = coupon.max_uses - (coupon.used_count or 0)
            if remaining <= settings.LOW_REMAINING_USES_WARNING:
                warnings.append(f"Only {remaining} uses left for this coupon")

        expires_in = ensure_utc(coupon.end_date) - now  # type: ignore[arg-type]
        if expires_in <= timedelta(hours=settings.EXPIRY_WARNING_HOURS):
            warnings.append("This coupon expires soon")
        return warnings
