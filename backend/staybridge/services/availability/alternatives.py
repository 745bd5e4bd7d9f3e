"""Alternative date finder: common bookable windows around a sold-out stay."""

import asyncio
import logging
from collections.abc import Callable
from datetime import date, timedelta
from decimal import Decimal

from staybridge.schemas.provider import RawCalendar, RawCalendarDay
from staybridge.services.availability.interfaces import ProviderClient
from staybridge.services.availability.models import AlternativeWindow, PartyGroup

logger = logging.getLogger(__name__)

DEFAULT_PADDING_DAYS = 14


def build_windows(days: list[RawCalendarDay], requested_nights: int) -> list[AlternativeWindow]:
    """
    Every feasible window in one party's calendar.

    A window starts on a bookable day and lasts ``max(requested_nights, min_stay)``
    nights. It is dropped if a night is missing or closed, if a night demands a
    longer minimum stay than the window, or if it runs past the last known day.
    """
    bookable = {d.day: d for d in days if d.is_bookable}
    if not bookable:
        return []
    last_checkout = max(d.day for d in days) + timedelta(days=1)

    windows: list[AlternativeWindow] = []
    for start in sorted(bookable):
        nights = max(requested_nights, bookable[start].min_stay)
        check_out = start + timedelta(days=nights)
        if check_out > last_checkout:
            continue

        min_price = Decimal(0)
        net_price = Decimal(0)
        feasible = True
        for offset in range(nights):
            night = bookable.get(start + timedelta(days=offset))
            if night is None or night.min_stay > nights:
                feasible = False
                break
            min_price += night.retail
            net_price += night.price
        if feasible:
            windows.append(AlternativeWindow(
                check_in=start,
                check_out=check_out,
                nights=nights,
                min_price=min_price,
                net_price=net_price,
            ))
    return windows


def intersect_windows(per_group: list[list[AlternativeWindow]]) -> list[AlternativeWindow]:
    """Keep the (check-in, check-out) pairs every group can book and sum their prices."""
    if not per_group:
        return []
    pair_sets = [{(w.check_in, w.check_out) for w in windows} for windows in per_group]
    common = set.intersection(*pair_sets)
    if not common:
        return []

    totals: dict[tuple[date, date], tuple[Decimal, Decimal]] = {}
    for windows in per_group:
        for w in windows:
            pair = (w.check_in, w.check_out)
            if pair not in common:
                continue
            min_total, net_total = totals.get(pair, (Decimal(0), Decimal(0)))
            totals[pair] = (min_total + w.min_price, net_total + w.net_price)

    return [
        AlternativeWindow(
            check_in=check_in,
            check_out=check_out,
            nights=(check_out - check_in).days,
            min_price=min_total,
            net_price=net_total,
        )
        for (check_in, check_out), (min_total, net_total) in sorted(totals.items())
    ]


class AlternativeDateFinder:
    """Best-effort search for alternative stays. Never fails the parent request."""

    def __init__(
        self,
        provider: ProviderClient,
        cache=None,
        padding_days: int = DEFAULT_PADDING_DAYS,
        today: Callable[[], date] = date.today,
    ):
        self.provider = provider
        self.cache = cache
        self.padding_days = padding_days
        self.today = today

    def calendar_range(self, requested_check_in: date, requested_check_out: date) -> tuple[date, date]:
        from_date = requested_check_in - timedelta(days=self.padding_days)
        to_date = requested_check_out + timedelta(days=self.padding_days)
        tomorrow = self.today() + timedelta(days=1)
        return max(from_date, tomorrow), to_date

    async def find_alternatives(
        self,
        hotel_id: str,
        party_groups: list[PartyGroup],
        requested_check_in: date,
        requested_check_out: date,
    ) -> list[AlternativeWindow]:
        if not party_groups:
            return []
        requested_nights = (requested_check_out - requested_check_in).days
        from_date, to_date = self.calendar_range(requested_check_in, requested_check_out)
        if from_date >= to_date:
            return []

        results = await asyncio.gather(
            *(self._fetch_calendar(hotel_id, g, from_date, to_date) for g in party_groups),
            return_exceptions=True,
        )

        per_group: list[list[AlternativeWindow]] = []
        for group, result in zip(party_groups, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning(
                    f"Flexible calendar failed for {hotel_id} party {group.descriptor} "
                    f"{from_date}..{to_date}: {result}"
                )
                return []
            per_group.append(build_windows(result.days, requested_nights))

        alternatives = intersect_windows(per_group)
        logger.info(f"Found {len(alternatives)} alternative windows for {hotel_id}")
        return alternatives

    async def _fetch_calendar(
        self, hotel_id: str, group: PartyGroup, from_date: date, to_date: date
    ) -> RawCalendar:
        key = None
        if self.cache is not None:
            key = self.cache.calendar_key(hotel_id, group.descriptor, from_date.isoformat(), to_date.isoformat())
            cached = await self.cache.get(key)
            if cached is not None:
                return RawCalendar.model_validate(cached)

        calendar = await self.provider.query_flexible_calendar(
            hotel_id, group.descriptor, from_date, to_date
        )
        if key is not None:
            await self.cache.set_calendar(key, calendar.model_dump(mode="json", by_alias=True))
        return calendar
