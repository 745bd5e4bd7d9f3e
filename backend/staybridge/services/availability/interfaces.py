"""Collaborator contracts consumed by the engine."""

from abc import ABC, abstractmethod
from datetime import date

from staybridge.schemas.provider import RawAvailability, RawCalendar
from staybridge.services.availability.models import Coupon


class ProviderClient(ABC):
    @abstractmethod
    async def query_availability(
        self, hotel_id: str, check_in: date, check_out: date, party_descriptor: str
    ) -> RawAvailability:
        """Live rates for one party. Transport failures raise ProviderUnavailable."""
        ...

    @abstractmethod
    async def query_flexible_calendar(
        self, hotel_id: str, party_descriptor: str, from_date: date, to_date: date
    ) -> RawCalendar:
        ...


class CouponStore(ABC):
    @abstractmethod
    async def find_by_code(self, code: str) -> Coupon | None:
        ...
