from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from staybridge.schemas.provider import RawAvailability, RawCalendar
from staybridge.services.availability.errors import ProviderUnavailable
from staybridge.services.availability.interfaces import CouponStore, ProviderClient
from staybridge.services.availability.models import Coupon, CouponType

NOW = datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)

COUPLE = '[{"adults":2}]'
FAMILY = '[{"adults":2,"children":[5]}]'


def rate_payload(
    rate_id,
    room: str = "DBL",
    net=100,
    retail=None,
    margin=None,
    remaining: int = 5,
    board: int = 1,
    payments: list[tuple[str, float]] | None = None,
    cancellation_expiry: str | None = None,
) -> dict:
    payload = {
        "id": rate_id,
        "type": room,
        "room": f"{room} room",
        "rate": "Standard",
        "board": board,
        "remaining": remaining,
        "pricing": {"price": net, "margin": margin, "discount": 0},
        "payments": [{"due": due, "amount": amount} for due, amount in (payments or [])],
        "cancellation_expiry": cancellation_expiry,
    }
    if retail is not None:
        payload["retail"] = {"price": retail[0], "discount": retail[1]}
    return payload


def calendar_payload(days: list[tuple[str, str, float, float, int]]) -> dict:
    return {
        "data": {
            "days": [
                {"date": d, "status": status, "price": price, "retail": retail, "min_stay": min_stay}
                for d, status, price, retail, min_stay in days
            ]
        }
    }


class FakeProvider(ProviderClient):
    """Serves canned payloads keyed by party descriptor."""

    def __init__(
        self,
        rates: dict[str, list[dict]] | None = None,
        calendars: dict[str, dict] | None = None,
        delays: dict[str, float] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.rates = rates or {}
        self.calendars = calendars or {}
        self.delays = delays or {}
        self.failing = failing or set()
        self.availability_calls: list[tuple] = []
        self.calendar_calls: list[tuple] = []

    async def query_availability(self, hotel_id, check_in, check_out, party_descriptor):
        self.availability_calls.append((hotel_id, check_in, check_out, party_descriptor))
        await asyncio.sleep(self.delays.get(party_descriptor, 0))
        if party_descriptor in self.failing:
            raise ProviderUnavailable(hotel_id, check_in, check_out, "HTTP 503")
        return RawAvailability.model_validate(
            {"data": {"code": hotel_id, "rates": self.rates.get(party_descriptor, [])}}
        )

    async def query_flexible_calendar(self, hotel_id, party_descriptor, from_date, to_date):
        self.calendar_calls.append((hotel_id, party_descriptor, from_date, to_date))
        if party_descriptor in self.failing:
            raise ProviderUnavailable(hotel_id, from_date, to_date, "HTTP 503")
        return RawCalendar.model_validate(self.calendars.get(party_descriptor, {"data": {"days": []}}))


class FakeCoupons(CouponStore):
    def __init__(self, coupons: list[Coupon]) -> None:
        self._by_code = {c.code: c for c in coupons}

    async def find_by_code(self, code: str) -> Coupon | None:
        return self._by_code.get(code)


class FakeCache:
    def __init__(self) -> None:
        self.data: dict[str, object] = {}

    def calendar_key(self, hotel_id, party, from_date, to_date) -> str:
        return f"calendar:{hotel_id}:{party}:{from_date}:{to_date}"

    async def get(self, key):
        return self.data.get(key)

    async def set_calendar(self, key, data) -> bool:
        self.data[key] = data
        return True


@pytest.fixture
def stay() -> tuple[date, date]:
    return date(2026, 7, 10), date(2026, 7, 12)


@pytest.fixture
def save10() -> Coupon:
    return Coupon(
        code="SAVE10",
        coupon_type=CouponType.PERCENTAGE,
        value=Decimal("0.10"),
        usage_left=5,
        expires_at=datetime(2027, 1, 1, tzinfo=timezone.utc),
    )
