"""Booking service: search and prepare-payment pipelines over the availability engine."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from staybridge.config import settings
from staybridge.database import async_session_factory
from staybridge.services.availability.alternatives import AlternativeDateFinder
from staybridge.services.availability.config import PaymentPolicy, PricingPolicy
from staybridge.services.availability.installments import InstallmentScheduler, split_prepayment
from staybridge.services.availability.interfaces import CouponStore, ProviderClient
from staybridge.services.availability.merger import AvailabilityMerger
from staybridge.services.availability.models import (
    CheckoutQuote,
    HotelAvailability,
    PaymentInstallment,
    SelectedRate,
)
from staybridge.services.availability.party_planner import PartyPlanner, parse_hotel_id, parse_stay
from staybridge.services.availability.pricing import PricingEngine
from staybridge.services.availability.results import MergeResult, Ok
from staybridge.services.cache_service import cache_service
from staybridge.services.coupon_service import SqlCouponStore
from staybridge.services.webhotelier_client import webhotelier_client

logger = logging.getLogger(__name__)


@dataclass
class PaymentQuote:
    checkout: CheckoutQuote
    installments: list[PaymentInstallment]

    @property
    def prepay_amount(self) -> Decimal:
        return split_prepayment(self.installments)[0]

    @property
    def next_payments(self) -> list[PaymentInstallment]:
        return split_prepayment(self.installments)[1]

    def to_dict(self) -> dict:
        return {
            **self.checkout.to_dict(),
            "installments": [i.to_dict() for i in self.installments],
            "partial_payment": {
                "prepay_amount": float(self.prepay_amount),
                "next_payments": [i.to_dict() for i in self.next_payments],
            },
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingService:
    """PartyPlanner → AvailabilityMerger → AlternativeDateFinder / InstallmentScheduler."""

    def __init__(
        self,
        provider: ProviderClient,
        coupons: CouponStore | None = None,
        pricing_policy: PricingPolicy | None = None,
        payment_policy: PaymentPolicy | None = None,
        cache=None,
        tz_offset_hours: Callable[[datetime], int] = lambda _: 0,
        clock: Callable[[], datetime] = _utcnow,
        padding_days: int = 14,
    ):
        self.planner = PartyPlanner()
        self.merger = AvailabilityMerger(
            provider, coupons=coupons, pricing=PricingEngine(pricing_policy), clock=clock
        )
        self.alternatives = AlternativeDateFinder(
            provider,
            cache=cache,
            padding_days=padding_days,
            today=lambda: clock().date(),
        )
        self.scheduler = InstallmentScheduler(payment_policy)
        self.tz_offset_hours = tz_offset_hours
        self.clock = clock

    async def search(
        self,
        hotel_id: str,
        check_in: str | date,
        check_out: str | date,
        adults: int | None = None,
        children: str | None = None,
        party: str | None = None,
        coupon_code: str | None = None,
    ) -> MergeResult:
        """Merged availability; alternative windows are attached when nothing is bookable."""
        _, hotel_code = parse_hotel_id(hotel_id)
        ci, co = parse_stay(check_in, check_out)
        groups = self.planner.plan(adults=adults, children=children, party_json=party)

        result = await self.merger.get_merged_availability(
            hotel_code, ci, co, groups, coupon_code=coupon_code
        )
        if isinstance(result, Ok) and isinstance(result.value, HotelAvailability):
            availability = result.value
            if not availability.all_rates():
                logger.info(f"No rates for {hotel_code} {ci}..{co}, searching alternatives")
                availability.alternatives = await self.alternatives.find_alternatives(
                    hotel_code, groups, ci, co
                )
        return result

    async def prepare_payment(
        self,
        hotel_id: str,
        check_in: str | date,
        check_out: str | date,
        selected_rates: list[SelectedRate],
        quoted_total: Decimal,
        coupon_code: str | None = None,
    ) -> MergeResult:
        """Re-validate the selection against live rates and build the installment plan."""
        _, hotel_code = parse_hotel_id(hotel_id)
        ci, co = parse_stay(check_in, check_out)
        groups = self.planner.plan_from_selection(selected_rates)

        result = await self.merger.get_merged_availability(
            hotel_code,
            ci,
            co,
            groups,
            selected_rates=selected_rates,
            coupon_code=coupon_code,
            quoted_total=quoted_total,
        )
        if not isinstance(result, Ok):
            return result

        checkout: CheckoutQuote = result.value
        now = self.clock()
        installments = self.scheduler.build_installment_plan(
            total_price=checkout.total_price,
            profit_ratio=checkout.profit_ratio,
            provider_schedule=checkout.provider_schedule(),
            check_in_date=ci,
            now_utc=now,
            tz_offset_hours=self.tz_offset_hours(now),
        )
        return Ok(PaymentQuote(checkout=checkout, installments=installments))


booking_service = BookingService(
    provider=webhotelier_client,
    coupons=SqlCouponStore(async_session_factory),
    pricing_policy=PricingPolicy.from_settings(settings),
    payment_policy=PaymentPolicy.from_settings(settings),
    cache=cache_service,
    tz_offset_hours=settings.payment_tz_offset_hours,
    padding_days=settings.alternatives_padding_days,
)
