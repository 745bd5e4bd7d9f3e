"""Coupon service: looks up discount codes in the database."""

import logging
from datetime import timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from staybridge.models.coupon import Coupon as CouponRow
from staybridge.services.availability.interfaces import CouponStore
from staybridge.services.availability.models import Coupon, CouponType

logger = logging.getLogger(__name__)


def to_domain(row: CouponRow) -> Coupon:
    try:
        coupon_type = CouponType(row.coupon_type)
    except ValueError:
        logger.warning(f"Coupon {row.code} has unknown type {row.coupon_type!r}")
        coupon_type = CouponType.NONE

    if coupon_type == CouponType.PERCENTAGE:
        value = Decimal(row.percentage) / 100
    elif coupon_type == CouponType.FLAT:
        value = Decimal(row.amount)
    else:
        value = Decimal(0)

    expires_at = row.expiration
    if expires_at is not None and expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)

    return Coupon(
        code=row.code,
        coupon_type=coupon_type,
        value=value,
        usage_left=row.usage_left,
        expires_at=expires_at,
    )


class SqlCouponStore(CouponStore):
    """Read-only coupon lookups over an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_by_code(self, code: str) -> Coupon | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(CouponRow).where(CouponRow.code == code.strip().upper())
            )
            row = result.scalar_one_or_none()
            return to_domain(row) if row else None
