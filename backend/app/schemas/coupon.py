"""Coupon, cart and usage schemas."""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.coupon import CouponStatus, CouponType
from app.models.shared import ensure_utc

COUPON_CODE_PATTERN = re.compile(r"^[A-Z0-9_-]+$")


def normalize_code(code: str) -> str:
    """Canonical form of a coupon code: trimmed and uppercased."""
    return code.strip().upper()


class CouponRestrictions(BaseModel):
    first_time_only: bool = False
    new_customers_only: bool = False
    existing_customers_only: bool = False
    min_quantity: int | None = Field(default=None, ge=0)
    max_quantity: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_quantity_bounds(self) -> "CouponRestrictions":
        if (
            self.min_quantity is not None
            and self.max_quantity is not None
            and self.min_quantity >= self.max_quantity
        ):
            raise ValueError("Minimum quantity must be less than maximum quantity")
        if self.first_time_only and self.existing_customers_only:
            raise ValueError("A coupon cannot target both first-time and existing customers")
        return self


class CouponCreate(BaseModel):
    code: str = Field(min_length=3, max_length=20)
    name: str = Field(min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    coupon_type: CouponType
    value: Decimal = Field(gt=0)
    minimum_amount: Decimal | None = Field(default=None, ge=0)
    maximum_amount: Decimal | None = Field(default=None, gt=0)
    max_uses: int | None = Field(default=None, gt=0)
    max_uses_per_user: int | None = Field(default=None, gt=0)
    max_uses_per_day: int | None = Field(default=None, gt=0)
    start_date: datetime
    end_date: datetime
    status: CouponStatus = CouponStatus.ACTIVE
    restrictions: CouponRestrictions | None = None
    applicable_products: list[str] | None = None
    applicable_categories: list[str] | None = None
    exclude_products: list[str] | None = None
    exclude_categories: list[str] | None = None

    @field_validator("code", mode="before")
    @classmethod
    def canonical_code(cls, v: Any) -> Any:
        return normalize_code(v) if isinstance(v, str) else v

    @field_validator("code")
    @classmethod
    def check_code_charset(cls, v: str) -> str:
        if not COUPON_CODE_PATTERN.match(v):
            raise ValueError(
                "Coupon code can only contain uppercase letters, numbers, hyphens, and underscores"
            )
        return v

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_value_and_window(self) -> "CouponCreate":
        if self.coupon_type == CouponType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage value must be between 0 and 100")
        if self.start_date >= self.end_date:
            raise ValueError("Start date must be before end date")
        return self


class CouponUpdate(BaseModel):
    """Partial update; the merged coupon is re-validated as a whole."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    coupon_type: CouponType | None = None
    value: Decimal | None = Field(default=None, gt=0)
    minimum_amount: Decimal | None = Field(default=None, ge=0)
    maximum_amount: Decimal | None = Field(default=None, gt=0)
    max_uses: int | None = Field(default=None, gt=0)
    max_uses_per_user: int | None = Field(default=None, gt=0)
    max_uses_per_day: int | None = Field(default=None, gt=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    status: CouponStatus | None = None
    restrictions: CouponRestrictions | None = None
    applicable_products: list[str] | None = None
    applicable_categories: list[str] | None = None
    exclude_products: list[str] | None = None
    exclude_categories: list[str] | None = None


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    name: str
    description: str | None = None
    coupon_type: str
    value: Decimal
    minimum_amount: Decimal | None = None
    maximum_amount: Decimal | None = None
    max_uses: int | None = None
    max_uses_per_user: int | None = None
    max_uses_per_day: int | None = None
    used_count: int
    start_date: datetime
    end_date: datetime
    status: str
    restrictions: dict[str, Any] | None = None
    applicable_products: list[str] | None = None
    applicable_categories: list[str] | None = None
    exclude_products: list[str] | None = None
    exclude_categories: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartItem(BaseModel):
    """A cart line as seen by the coupon engine. Read-only."""

    model_config = ConfigDict(frozen=True)

    product_id: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    category_id: str | None = None


class UserProfile(BaseModel):
    """Audience facts about the shopper, supplied by the caller."""

    user_id: str
    order_count: int = Field(default=0, ge=0)
    created_at: datetime | None = None


class ValidateCouponRequest(BaseModel):
    code: str = Field(max_length=50)
    user_id: str
    cart_items: list[CartItem] = Field(default_factory=list)
    subtotal: Decimal = Field(ge=0)
    user: UserProfile | None = None


class ValidationResultResponse(BaseModel):
    valid: bool
    coupon: CouponResponse | None = None
    discount_amount: Decimal | None = None
    error: str | None = None
    error_kind: str | None = None
    warnings: list[str] = Field(default_factory=list)


class ApplyCouponRequest(BaseModel):
    coupon_id: UUID
    user_id: str
    order_id: str
    discount_amount: Decimal = Field(ge=0)


class CouponUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    coupon_id: UUID
    coupon_code: str
    user_id: str
    order_id: str
    discount_amount: Decimal
    used_at: datetime


class CouponUsageSummaryResponse(BaseModel):
    """Redemption totals for a coupon."""

    times_used: int
    unique_users: int
    total_discount: Decimal
    remaining_uses: int | None = None


class SweepResponse(BaseModel):
    expired_count: int
