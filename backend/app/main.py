import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.database import init_db
from app.core.log_config import setup_logging
from app.routers import coupons
from app.services.coupon_errors import MalformedCouponError

setup_logging()
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {
        "name": "Coupons",
        "description": "Administer coupons, validate them against carts, and record redemptions.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Coupon validation and discount engine for the marketplace checkout. "
        "Validates coupon codes against carts, prices discounts, enforces usage "
        "limits, and expires coupons past their end date."
    ),
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Distinct from business rejections: the client should retry later.
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable, please try again"},
    )


@app.exception_handler(MalformedCouponError)
async def malformed_coupon_handler(request: Request, exc: MalformedCouponError) -> JSONResponse:
    logger.error("%s on %s %s", exc, request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content={"detail": "Service temporarily unavailable, please try again"},
    )


@app.get("/health", include_in_schema=False)
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(coupons.router, prefix="/v1/coupons", tags=["Coupons"])
