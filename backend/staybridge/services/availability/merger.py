"""Availability merger: per-party fan-out to the provider and merge into one hotel view."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TypeVar

from staybridge.schemas.provider import RawAvailability, RawRate
from staybridge.services.availability.errors import ProviderUnavailable
from staybridge.services.availability.interfaces import CouponStore, ProviderClient
from staybridge.services.availability.models import (
    CheckoutLine,
    CheckoutQuote,
    Coupon,
    CouponType,
    HotelAvailability,
    HotelRoom,
    PartyGroup,
    ProviderPayment,
    RateKey,
    RateQuote,
    SelectedRate,
)
from staybridge.services.availability.pricing import PricingEngine
from staybridge.services.availability.results import (
    Conflict,
    ConflictReason,
    Invalid,
    InvalidReason,
    MergeResult,
    Ok,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_all(coros: list[Awaitable[T]]) -> list[T]:
    """Run concurrently, results in input order; first failure cancels the rest and propagates."""
    tasks = [asyncio.ensure_future(c) for c in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AvailabilityMerger:
    """Queries the provider once per party group and merges the rates into one catalog."""

    def __init__(
        self,
        provider: ProviderClient,
        coupons: CouponStore | None = None,
        pricing: PricingEngine | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.provider = provider
        self.coupons = coupons
        self.pricing = pricing or PricingEngine()
        self.clock = clock

    async def get_merged_availability(
        self,
        hotel_id: str,
        check_in: date,
        check_out: date,
        party_groups: list[PartyGroup],
        selected_rates: list[SelectedRate] | None = None,
        coupon_code: str | None = None,
        quoted_total: Decimal | None = None,
    ) -> MergeResult:
        """
        Build the merged hotel availability for a stay.

        Without ``selected_rates`` the result wraps a ``HotelAvailability``.
        With them (checkout flow) every selection is matched against the fresh
        rates and the result wraps a ``CheckoutQuote``; a missing rate or a total
        that differs from ``quoted_total`` comes back as a ``Conflict``.
        Provider failures raise ``ProviderUnavailable``.
        """
        if not hotel_id or not hotel_id.strip():
            return Invalid(InvalidReason.INVALID_HOTEL_ID, "Hotel id is required")
        if check_out <= check_in:
            return Invalid(
                InvalidReason.INVALID_DATES,
                f"Check-out {check_out.isoformat()} must be after check-in {check_in.isoformat()}",
            )
        if not party_groups:
            return Invalid(InvalidReason.INVALID_PARTY, "At least one party group is required")
        if selected_rates is not None and not selected_rates:
            return Invalid(InvalidReason.INVALID_SELECTION, "No rates selected")

        coupon = await self._resolve_coupon(coupon_code)

        responses = await gather_all([
            self._query(hotel_id, check_in, check_out, group) for group in party_groups
        ])

        availability = HotelAvailability(
            hotel_id=hotel_id,
            check_in=check_in,
            check_out=check_out,
            party_groups=list(party_groups),
            coupon_valid=coupon is not None,
            discount_label=coupon.label if coupon else "",
        )
        rooms: dict[str, HotelRoom] = {}
        # party-group order, never response-arrival order
        for group, response in zip(party_groups, responses):
            for raw_rate in response.rates:
                quote = self._to_quote(hotel_id, raw_rate, group, coupon)
                if quote is None:
                    continue
                room = rooms.setdefault(quote.room_code, HotelRoom(quote.room_code, quote.room_name))
                room.rates.append(quote)
        availability.rooms = list(rooms.values())

        if selected_rates is None:
            return Ok(availability)
        return self._match_selection(availability, selected_rates, quoted_total)

    async def _query(
        self, hotel_id: str, check_in: date, check_out: date, group: PartyGroup
    ) -> RawAvailability:
        try:
            return await self.provider.query_availability(
                hotel_id, check_in, check_out, group.descriptor
            )
        except ProviderUnavailable as e:
            logger.error(f"Availability query failed for {hotel_id} party {group.descriptor}: {e}")
            raise

    async def _resolve_coupon(self, coupon_code: str | None) -> Coupon | None:
        if not coupon_code or not coupon_code.strip() or self.coupons is None:
            return None
        code = coupon_code.strip().upper()
        coupon = await self.coupons.find_by_code(code)
        if coupon is None:
            logger.info(f"Coupon {code} not found, pricing without discount")
            return None
        if not coupon.is_usable(self.clock()):
            logger.info(f"Coupon {code} expired or used up, pricing without discount")
            return None
        return coupon

    def _to_quote(
        self, hotel_id: str, raw: RawRate, group: PartyGroup, coupon: Coupon | None
    ) -> RateQuote | None:
        net = raw.pricing.price
        if net <= 0:
            logger.warning(f"Skipping rate {raw.id} of {hotel_id}: net price {net}")
            return None

        retail_total = raw.retail.price if raw.retail else None
        retail_discount = raw.retail.discount if raw.retail else None
        computed, profit_ratio = self.pricing.compute_guest_price(
            net_price=net,
            retail_price=retail_total,
            existing_margin=raw.pricing.margin,
            hotel_code=hotel_id,
            discount=coupon.value if coupon else Decimal(0),
            discount_type=coupon.coupon_type if coupon else CouponType.NONE,
        )
        return RateQuote(
            key=RateKey.for_group(raw.id, group),
            room_code=raw.type,
            room_name=raw.room_name,
            rate_name=raw.rate_name,
            board_code=raw.board_id or 0,
            net_price=net,
            retail_price=retail_total,
            computed_price=computed,
            profit_ratio=profit_ratio,
            sale_price=self.pricing.get_sale_price(retail_total, retail_discount, computed),
            remaining_rooms=raw.remaining or 0,
            party_group=group,
            cancellation_expiry=raw.cancellation_expiry,
            payment_schedule=[ProviderPayment(due=p.due, amount=p.amount) for p in raw.payments],
        )

    def _match_selection(
        self,
        availability: HotelAvailability,
        selected_rates: list[SelectedRate],
        quoted_total: Decimal | None,
    ) -> MergeResult:
        requested: dict[RateKey, int] = {}
        for selected in selected_rates:
            requested[selected.key] = requested.get(selected.key, 0) + selected.count

        by_key: dict[RateKey, RateQuote] = {}
        for quote in availability.all_rates():
            if quote.key in by_key:
                logger.warning(f"Duplicate rate {quote.rate_id} for {availability.hotel_id}, keeping the first")
                continue
            by_key[quote.key] = quote

        lines: list[CheckoutLine] = []
        for key, count in requested.items():
            quote = by_key.get(key)
            if quote is None or quote.remaining_rooms < count:
                remaining = quote.remaining_rooms if quote else 0
                logger.info(
                    f"Rate {key} of {availability.hotel_id} no longer available: "
                    f"requested {count}, remaining {remaining}"
                )
                return Conflict(
                    ConflictReason.RATE_NO_LONGER_AVAILABLE,
                    f"Rate {key} has {remaining} rooms left, {count} requested",
                )
            lines.append(CheckoutLine(quote=quote, count=count))

        total = sum((line.total_price for line in lines), Decimal(0))
        net_total = sum((line.quote.net_price * line.count for line in lines), Decimal(0))
        if quoted_total is not None and Decimal(str(quoted_total)) != total:
            logger.info(
                f"Price changed for {availability.hotel_id}: quoted {quoted_total}, now {total}"
            )
            return Conflict(
                ConflictReason.PRICE_CHANGED,
                f"Quoted total {quoted_total} no longer matches {total}",
            )

        return Ok(CheckoutQuote(
            hotel_id=availability.hotel_id,
            check_in=availability.check_in,
            check_out=availability.check_out,
            lines=lines,
            total_price=total,
            net_total=net_total,
            coupon_valid=availability.coupon_valid,
            discount_label=availability.discount_label,
        ))
