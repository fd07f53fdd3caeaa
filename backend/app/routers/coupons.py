"""Coupon administration, validation and redemption endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.coupon import Coupon, CouponStatus, CouponType
from app.models.coupon_usage import CouponUsage
from app.repositories.coupon_repository import CouponFilter
from app.repositories.coupon_store import SqlCouponStore
from app.schemas.coupon import (
    ApplyCouponRequest,
    CouponCreate,
    CouponResponse,
    CouponUpdate,
    CouponUsageResponse,
    CouponUsageSummaryResponse,
    SweepResponse,
    ValidateCouponRequest,
    ValidationResultResponse,
)
from app.services.coupon_admin import CouponAdminService
from app.services.coupon_errors import (
    CouponCodeExistsError,
    CouponErrorKind,
    CouponNotFoundError,
    InvalidCouponDataError,
)
from app.services.coupon_expiration import CouponExpirationService
from app.services.coupon_usage_ledger import CouponUsageLedger
from app.services.coupon_validation import CouponValidationService

router = APIRouter()


@router.post(
    "/",
    response_model=CouponResponse,
    status_code=201,
    summary="Create coupon",
    responses={
        409: {"description": "Coupon with this code already exists"},
        422: {"description": "Validation error"},
    },
)
async def create_coupon(data: CouponCreate, db: Session = Depends(get_db)) -> Coupon:
    """Create a new coupon."""
    service = CouponAdminService(SqlCouponStore(db))
    try:
        return service.create_coupon(data)
    except CouponCodeExistsError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except InvalidCouponDataError as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc


@router.get(
    "/",
    response_model=list[CouponResponse],
    summary="List coupons",
)
async def list_coupons(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    order_by: str | None = Query(default=None),
    status: CouponStatus | None = None,
    coupon_type: CouponType | None = None,
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> list[Coupon]:
    """List coupons with optional status, type and text filters."""
    service = CouponAdminService(SqlCouponStore(db))
    coupons, total = service.list_coupons(
        CouponFilter(
            status=status,
            coupon_type=coupon_type,
            search=search,
            skip=skip,
            limit=limit,
            order_by=order_by,
        )
    )
    response.headers["X-Total-Count"] = str(total)
    return coupons


@router.post(
    "/validate",
    response_model=ValidationResultResponse,
    summary="Validate coupon for a cart",
)
async def validate_coupon(
    data: ValidateCouponRequest, db: Session = Depends(get_db)
) -> ValidationResultResponse:
    """Check a coupon code against a cart and price the discount.

    Business-rule rejections are returned with ``valid=false``, not as errors.
    """
    service = CouponValidationService(SqlCouponStore(db))
    result = service.validate(
        data.code,
        data.user_id,
        data.cart_items,
        data.subtotal,
        user=data.user,
    )
    return ValidationResultResponse(
        valid=result.valid,
        coupon=CouponResponse.model_validate(result.coupon) if result.coupon else None,
        discount_amount=result.discount_amount,
        error=result.error,
        error_kind=result.error_kind.value if result.error_kind else None,
        warnings=result.warnings,
    )


@router.post(
    "/apply",
    response_model=CouponUsageResponse,
    status_code=201,
    summary="Record coupon redemption",
    responses={
        404: {"description": "Coupon not found"},
        409: {"description": "Usage limit reached"},
    },
)
async def apply_coupon(data: ApplyCouponRequest, db: Session = Depends(get_db)) -> CouponUsage:
    """Record a coupon redemption for a confirmed order."""
    ledger = CouponUsageLedger(SqlCouponStore(db))
    result = ledger.apply(data.coupon_id, data.user_id, data.order_id, data.discount_amount)
    if result.usage is None:
        status_code = 404 if result.error_kind == CouponErrorKind.NOT_FOUND else 409
        raise HTTPException(status_code=status_code, detail=result.error)
    return result.usage


@router.post(
    "/sweep",
    response_model=SweepResponse,
    summary="Expire coupons past their end date",
)
async def sweep_expired_coupons(
    now: datetime | None = None, db: Session = Depends(get_db)
) -> SweepResponse:
    """Run the expiration sweep immediately."""
    service = CouponExpirationService(SqlCouponStore(db))
    return SweepResponse(expired_count=service.sweep(now))


@router.get(
    "/{code}",
    response_model=CouponResponse,
    summary="Get coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def get_coupon(code: str, db: Session = Depends(get_db)) -> Coupon:
    """Get a coupon by code (case-insensitive)."""
    service = CouponAdminService(SqlCouponStore(db))
    try:
        return service.get_coupon_by_code(code)
    except CouponNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


@router.put(
    "/{coupon_id}",
    response_model=CouponResponse,
    summary="Update coupon",
    responses={
        404: {"description": "Coupon not found"},
        422: {"description": "Validation error"},
    },
)
async def update_coupon(
    coupon_id: UUID, data: CouponUpdate, db: Session = Depends(get_db)
) -> Coupon:
    """Update a coupon; the result must still satisfy every coupon invariant."""
    service = CouponAdminService(SqlCouponStore(db))
    try:
        return service.update_coupon(coupon_id, data)
    except CouponNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    except InvalidCouponDataError as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc


@router.delete(
    "/{coupon_id}",
    status_code=204,
    summary="Delete coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def delete_coupon(coupon_id: UUID, db: Session = Depends(get_db)) -> None:
    """Delete a coupon. Its usage records are kept."""
    service = CouponAdminService(SqlCouponStore(db))
    try:
        service.delete_coupon(coupon_id)
    except CouponNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


@router.get(
    "/{code}/usage",
    response_model=list[CouponUsageResponse],
    summary="List coupon redemptions",
    responses={404: {"description": "Coupon not found"}},
)
async def list_coupon_usage(
    code: str,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[CouponUsage]:
    """List redemptions of a coupon, newest first."""
    store = SqlCouponStore(db)
    coupon = store.get_by_code(code)
    if coupon is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return CouponUsageLedger(store).list_usages(coupon.id, skip=skip, limit=limit)  # type: ignore[arg-type]


@router.get(
    "/{code}/usage/summary",
    response_model=CouponUsageSummaryResponse,
    summary="Get coupon redemption totals",
    responses={404: {"description": "Coupon not found"}},
)
async def get_coupon_usage_summary(
    code: str, db: Session = Depends(get_db)
) -> CouponUsageSummaryResponse:
    """Times used, distinct shoppers, total discount and remaining uses."""
    store = SqlCouponStore(db)
    coupon = store.get_by_code(code)
    if coupon is None:
        raise HTTPException(status_code=404, detail="Coupon not found")
    summary = CouponUsageLedger(store).usage_summary(coupon.id)  # type: ignore[arg-type]
    return CouponUsageSummaryResponse(
        times_used=summary.times_used,
        unique_users=summary.unique_users,
        total_discount=summary.total_discount,
        remaining_uses=summary.remaining_uses,
    )
