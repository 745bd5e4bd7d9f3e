"""Party planner: normalizes a room request into canonical party groups.

Also hosts the boundary validation for stay dates and composite hotel ids,
which is applied before any provider call is made.
"""

import json
import logging
from collections.abc import Iterable
from datetime import date, datetime

from staybridge.services.availability.errors import (
    InvalidDateFormat,
    InvalidHotelIdFormat,
    InvalidPartyFormat,
)
from staybridge.services.availability.models import PartyGroup, SelectedRate

logger = logging.getLogger(__name__)

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")


def _parse_children_csv(children: str | None) -> tuple[int, ...]:
    if not children or not children.strip():
        return ()
    try:
        ages = tuple(int(part) for part in children.split(",") if part.strip())
    except ValueError as e:
        raise InvalidPartyFormat(f"Children ages '{children}' are not a list of integers") from e
    if any(age < 0 for age in ages):
        raise InvalidPartyFormat(f"Children ages '{children}' contain a negative age")
    return ages


def _room_from_item(item) -> tuple[int, tuple[int, ...]]:
    if not isinstance(item, dict):
        raise InvalidPartyFormat(f"Room entry {item!r} is not an object")
    adults = item.get("adults")
    if isinstance(adults, bool) or not isinstance(adults, int) or adults < 1:
        raise InvalidPartyFormat(f"Room entry {item!r} needs at least one adult")
    children = item.get("children") or []
    if not isinstance(children, list) or any(
        isinstance(age, bool) or not isinstance(age, int) or age < 0 for age in children
    ):
        raise InvalidPartyFormat(f"Room entry {item!r} has invalid children ages")
    return adults, tuple(children)


def group_rooms(rooms: Iterable[tuple[int, tuple[int, ...]]]) -> list[PartyGroup]:
    """Collapse identical rooms into party groups, first-seen order."""
    counts: dict[tuple[int, tuple[int, ...]], int] = {}
    for room in rooms:
        counts[room] = counts.get(room, 0) + 1
    return [
        PartyGroup(adults=adults, children_ages=children, room_count=count)
        for (adults, children), count in counts.items()
    ]


class PartyPlanner:
    """Turns the guest's room specification into canonical party groups."""

    def plan_single_room(self, adults: int, children: str | None = None) -> list[PartyGroup]:
        """One room from an adults count and an optional children-ages CSV."""
        if adults < 1:
            raise InvalidPartyFormat(f"A room needs at least one adult, got {adults}")
        return group_rooms([(adults, _parse_children_csv(children))])

    def plan_rooms(self, party_json: str) -> list[PartyGroup]:
        """N rooms from a JSON array of ``{"adults": n, "children": [ages]}``."""
        try:
            items = json.loads(party_json)
        except (TypeError, ValueError) as e:
            raise InvalidPartyFormat(f"Party is not valid JSON: {e}") from e
        if isinstance(items, dict):
            items = [items]
        if not isinstance(items, list) or not items:
            raise InvalidPartyFormat("Party must be a non-empty JSON array of rooms")
        return group_rooms(_room_from_item(item) for item in items)

    def plan(
        self,
        adults: int | None = None,
        children: str | None = None,
        party_json: str | None = None,
    ) -> list[PartyGroup]:
        if party_json:
            groups = self.plan_rooms(party_json)
        elif adults is None:
            raise InvalidPartyFormat("Either a party or an adults count is required")
        else:
            groups = self.plan_single_room(adults, children)
        logger.debug(f"Planned {len(groups)} party groups for {sum(g.room_count for g in groups)} rooms")
        return groups

    def plan_from_selection(self, selected_rates: list[SelectedRate]) -> list[PartyGroup]:
        """Party groups implied by a checkout selection; room count = rooms selected."""
        if not selected_rates:
            raise InvalidPartyFormat("No rates selected")
        counts: dict[str, int] = {}
        parties: dict[str, PartyGroup] = {}
        for selected in selected_rates:
            key = selected.party_group_key
            parties.setdefault(key, selected.key.party)
            counts[key] = counts.get(key, 0) + selected.count
        return [
            PartyGroup(adults=g.adults, children_ages=g.children_ages, room_count=counts[key])
            for key, g in parties.items()
        ]


def parse_stay_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except (AttributeError, ValueError):
            continue
    raise InvalidDateFormat(f"Date '{value}' is not in YYYY-MM-DD or DD/MM/YYYY format")


def parse_stay(check_in: str | date, check_out: str | date) -> tuple[date, date]:
    ci = parse_stay_date(check_in)
    co = parse_stay_date(check_out)
    if co <= ci:
        raise InvalidDateFormat(f"Check-out {co.isoformat()} must be after check-in {ci.isoformat()}")
    return ci, co


def parse_hotel_id(composite_hotel_id: str) -> tuple[str, str]:
    """Split ``"{providerId}-{hotelCode}"`` on the first dash."""
    provider_id, sep, hotel_code = (composite_hotel_id or "").strip().partition("-")
    if not sep or not provider_id or not hotel_code:
        raise InvalidHotelIdFormat(
            f"Invalid hotel id '{composite_hotel_id}'. Expected format: {{providerId}}-{{hotelId}}"
        )
    return provider_id, hotel_code
