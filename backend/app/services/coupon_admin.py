"""Administrative coupon operations: create, edit, delete, look up and list."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from app.models.coupon import Coupon, CouponStatus
from app.models.shared import ensure_utc, utc_now
from app.repositories.coupon_repository import CouponFilter
from app.repositories.coupon_store import CouponStore
from app.schemas.coupon import CouponCreate, CouponUpdate
from app.services.coupon_errors import (
    CouponCodeExistsError,
    CouponNotFoundError,
    InvalidCouponDataError,
)

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = tuple(name for name in CouponCreate.model_fields if name != "code")


def _validation_message(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        text = str(error["msg"]).removeprefix("Value error, ")
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {text}" if location else text)
    return "; ".join(messages)


def _column_values(data: CouponCreate) -> dict[str, Any]:
    values = data.model_dump(exclude={"restrictions"})
    values["coupon_type"] = data.coupon_type.value
    values["status"] = data.status.value
    values["restrictions"] = (
        (data.restrictions.model_dump(exclude_defaults=True) or None) if data.restrictions else None
    )
    return values


class CouponAdminService:
    """Service for coupon administration.

    Every write is checked against the coupon invariants: a positive value,
    percentages no higher than 100, a start date before the end date, and a
    usage ceiling no lower than the redemptions already made.
    """

    def __init__(self, store: CouponStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock

    def create_coupon(self, data: CouponCreate) -> Coupon:
        """Create a coupon.

        Raises:
            CouponCodeExistsError: If the (uppercased) code is taken.
            InvalidCouponDataError: If the coupon would already be over.
        """
        if ensure_utc(data.end_date) <= ensure_utc(self.clock()):
            raise InvalidCouponDataError("End date must be in the future")
        if self.store.get_by_code(data.code) is not None:
            raise CouponCodeExistsError()

        coupon = self.store.create(_column_values(data))
        logger.info("Created coupon %s (%s)", coupon.code, coupon.coupon_type)
        return coupon

    def update_coupon(self, coupon_id: UUID, data: CouponUpdate) -> Coupon:
        """Apply a partial update, re-validating the coupon as a whole.

        Raises:
            CouponNotFoundError: If the coupon does not exist.
            InvalidCouponDataError: If the merged coupon breaks an invariant.
        """
        coupon = self._get(coupon_id)

        merged = {name: getattr(coupon, name) for name in _EDITABLE_FIELDS}
        merged["code"] = coupon.code
        merged.update(data.model_dump(exclude_unset=True))
        try:
            validated = CouponCreate.model_validate(merged)
        except ValidationError as exc:
            raise InvalidCouponDataError(_validation_message(exc)) from exc

        if validated.max_uses is not None and validated.max_uses < (coupon.used_count or 0):
            raise InvalidCouponDataError(
                "Max uses cannot be lower than the number of times the coupon was used"
            )

        values = _column_values(validated)
        values.pop("code")
        return self.store.update(coupon, values)

    def set_status(self, coupon_id: UUID, status: CouponStatus) -> Coupon:
        """Activate or deactivate a coupon."""
        return self.update_coupon(coupon_id, CouponUpdate(status=status))

    def delete_coupon(self, coupon_id: UUID) -> None:
        """Delete a coupon. Its usage history is kept.

        Raises:
            CouponNotFoundError: If the coupon does not exist.
        """
        if not self.store.delete(coupon_id):
            raise CouponNotFoundError()
        logger.info("Deleted coupon %s", coupon_id)

    def get_coupon_by_code(self, code: str) -> Coupon:
        coupon = self.store.get_by_code(code)
        if coupon is None:
            raise CouponNotFoundError()
        return coupon

    def list_coupons(self, filters: CouponFilter) -> tuple[list[Coupon], int]:
        """Return one page of coupons and the total matching the filter."""
        return self.store.list_coupons(filters), self.store.count_coupons(filters)

    def _get(self, coupon_id: UUID) -> Coupon:
        coupon = self.store.get_by_id(coupon_id)
        if coupon is None:
            raise CouponNotFoundError()
        return coupon
