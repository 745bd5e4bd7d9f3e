"""Request-scoped domain types shared by the engine components."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from staybridge.services.availability.errors import InvalidPartyFormat

NO_BOARD_IDS = {0, 14}


def party_descriptor(adults: int, children_ages: tuple[int, ...] = ()) -> str:
    """Serialize one room's party the way the provider expects it.

    Children keep the order they were given in; ``[{"adults":2,"children":[5,7]}]``.
    """
    item: dict = {"adults": adults}
    if children_ages:
        item["children"] = list(children_ages)
    return json.dumps([item], separators=(",", ":"))


@dataclass(frozen=True)
class PartyGroup:
    """One or more identical rooms of a request."""
    adults: int
    children_ages: tuple[int, ...] = ()
    room_count: int = 1

    @property
    def canonical_key(self) -> str:
        return party_descriptor(self.adults, self.children_ages)

    @property
    def descriptor(self) -> str:
        return self.canonical_key

    @property
    def rate_suffix(self) -> str:
        return f"{self.adults}" + "".join(f"_{age}" for age in self.children_ages)

    def to_dict(self) -> dict:
        return {
            "adults": self.adults,
            "children": list(self.children_ages),
            "room_count": self.room_count,
            "party": self.canonical_key,
        }


@dataclass(frozen=True)
class RateKey:
    """Composite key (provider rate id, party key) joining a rate to its party group."""
    provider_rate_id: str
    party_key: str
    encoded: str = field(compare=False)
    party: PartyGroup = field(compare=False)

    @classmethod
    def for_group(cls, provider_rate_id: str, group: PartyGroup) -> "RateKey":
        return cls(
            provider_rate_id=str(provider_rate_id),
            party_key=group.canonical_key,
            encoded=f"{provider_rate_id}-{group.rate_suffix}",
            party=PartyGroup(adults=group.adults, children_ages=group.children_ages),
        )

    @classmethod
    def parse(cls, encoded: str) -> "RateKey":
        """Parse ``"{providerRateId}-{adults}[_{age}...]"`` into a key."""
        rate_id, sep, suffix = (encoded or "").strip().rpartition("-")
        if not sep or not rate_id or not suffix:
            raise InvalidPartyFormat(f"Rate id '{encoded}' does not carry a party suffix")
        try:
            adults, *children = (int(part) for part in suffix.split("_"))
        except ValueError as e:
            raise InvalidPartyFormat(f"Rate id '{encoded}' has a malformed party suffix") from e
        if adults < 1 or any(age < 0 for age in children):
            raise InvalidPartyFormat(f"Rate id '{encoded}' has an invalid party")
        group = PartyGroup(adults=adults, children_ages=tuple(children))
        return cls.for_group(rate_id, group)

    def __str__(self) -> str:
        return self.encoded


@dataclass(frozen=True)
class ProviderPayment:
    """One entry of the provider's payment-due schedule."""
    due: datetime | None
    amount: Decimal | None


@dataclass
class RateQuote:
    key: RateKey
    room_code: str
    board_code: int
    net_price: Decimal
    computed_price: Decimal
    remaining_rooms: int
    party_group: PartyGroup
    retail_price: Decimal | None = None
    profit_ratio: Decimal = Decimal(1)
    sale_price: Decimal = Decimal(0)
    room_name: str = ""
    rate_name: str = ""
    cancellation_expiry: datetime | None = None
    payment_schedule: list[ProviderPayment] = field(default_factory=list)

    @property
    def rate_id(self) -> str:
        return self.key.encoded

    @property
    def has_board(self) -> bool:
        return self.board_code not in NO_BOARD_IDS

    @property
    def has_free_cancellation(self) -> bool:
        return self.cancellation_expiry is not None

    def to_dict(self) -> dict:
        return {
            "rate_id": self.rate_id,
            "room_code": self.room_code,
            "room_name": self.room_name,
            "rate_name": self.rate_name,
            "board_code": self.board_code,
            "has_board": self.has_board,
            "total_price": float(self.computed_price),
            "sale_price": float(self.sale_price),
            "remaining_rooms": self.remaining_rooms,
            "has_cancellation": self.has_free_cancellation,
            "cancellation_expiry": self.cancellation_expiry.isoformat() if self.cancellation_expiry else None,
            "search_party": self.party_group.canonical_key,
        }


@dataclass(frozen=True)
class SelectedRate:
    """A rate chosen by the guest, keyed to the party group it was quoted for."""
    key: RateKey
    count: int = 1

    @classmethod
    def from_request(cls, rate_id: str | None, count: int, room_id: str | None = None) -> "SelectedRate":
        encoded = rate_id or room_id
        if not encoded:
            raise InvalidPartyFormat("Selected rate carries neither a rate id nor a room id")
        if count < 1:
            raise InvalidPartyFormat(f"Selected rate '{encoded}' has count {count}")
        return cls(key=RateKey.parse(encoded), count=count)

    @property
    def party_group_key(self) -> str:
        return self.key.party_key


@dataclass
class HotelRoom:
    room_code: str
    room_name: str
    rates: list[RateQuote] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "type": self.room_code,
            "room_name": self.room_name,
            "rates_count": len(self.rates),
            "rates": [r.to_dict() for r in self.rates],
        }


@dataclass(frozen=True)
class AlternativeWindow:
    check_in: date
    check_out: date
    nights: int
    min_price: Decimal
    net_price: Decimal

    def to_dict(self) -> dict:
        return {
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "min_price": float(self.min_price),
        }


@dataclass
class HotelAvailability:
    """Flat catalog of (room, rate, party group) tuples for one hotel and stay."""
    hotel_id: str
    check_in: date
    check_out: date
    party_groups: list[PartyGroup]
    rooms: list[HotelRoom] = field(default_factory=list)
    coupon_valid: bool = False
    discount_label: str = ""
    alternatives: list[AlternativeWindow] = field(default_factory=list)

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    def all_rates(self) -> list[RateQuote]:
        return [rate for room in self.rooms for rate in room.rates]

    @property
    def min_price(self) -> Decimal:
        prices = [rate.computed_price for rate in self.all_rates()]
        return min(prices) if prices else Decimal(0)

    def to_dict(self) -> dict:
        nights = self.nights or 1
        return {
            "hotel_id": self.hotel_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "party": [g.to_dict() for g in self.party_groups],
            "rooms": [room.to_dict() for room in self.rooms],
            "min_price": float(self.min_price),
            "min_price_per_night": float(self.min_price / nights),
            "coupon_valid": self.coupon_valid,
            "discount_label": self.discount_label,
            "alternatives": [a.to_dict() for a in self.alternatives],
        }


@dataclass
class CheckoutLine:
    quote: RateQuote
    count: int

    @property
    def total_price(self) -> Decimal:
        return self.quote.computed_price * self.count

    def to_dict(self) -> dict:
        return {
            "type": self.quote.room_code,
            "room_name": self.quote.room_name,
            "rate_id": self.quote.rate_id,
            "selected_quantity": self.count,
            "total_price": float(self.total_price),
            "board_code": self.quote.board_code,
            "has_cancellation": self.quote.has_free_cancellation,
            "search_party": self.quote.party_group.canonical_key,
        }


@dataclass
class CheckoutQuote:
    hotel_id: str
    check_in: date
    check_out: date
    lines: list[CheckoutLine]
    total_price: Decimal
    net_total: Decimal
    coupon_valid: bool = False
    discount_label: str = ""

    @property
    def profit_ratio(self) -> Decimal:
        if not self.net_total:
            return Decimal(1)
        return (self.total_price / self.net_total).quantize(Decimal("0.000001"))

    def provider_schedule(self) -> list[ProviderPayment]:
        """Combine every selected rate's schedule, amounts times count, summed per due date."""
        by_due: dict[datetime | None, Decimal] = {}
        for line in self.lines:
            for payment in line.quote.payment_schedule:
                amount = (payment.amount or Decimal(0)) * line.count
                by_due[payment.due] = by_due.get(payment.due, Decimal(0)) + amount
        ordered = sorted(by_due.items(), key=lambda item: (item[0] is not None, item[0] or datetime.min))
        return [ProviderPayment(due=due, amount=amount) for due, amount in ordered]

    def to_dict(self) -> dict:
        return {
            "hotel_id": self.hotel_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": (self.check_out - self.check_in).days,
            "total_price": float(self.total_price),
            "rooms": [line.to_dict() for line in self.lines],
            "coupon_valid": self.coupon_valid,
            "discount_label": self.discount_label,
        }


class CouponType(str, Enum):
    NONE = "none"
    PERCENTAGE = "percentage"
    FLAT = "flat"


@dataclass(frozen=True)
class Coupon:
    code: str
    coupon_type: CouponType
    value: Decimal
    usage_left: int
    expires_at: datetime | None = None

    def is_usable(self, now: datetime) -> bool:
        if self.coupon_type == CouponType.NONE or self.usage_left <= 0 or self.value <= 0:
            return False
        return self.expires_at is None or self.expires_at > now

    @property
    def label(self) -> str:
        if self.coupon_type == CouponType.PERCENTAGE:
            return f"-{(self.value * 100).normalize():f}%"
        if self.coupon_type == CouponType.FLAT:
            return f"-{self.value.normalize():f}€"
        return ""


class InstallmentRole(str, Enum):
    DEPOSIT = "deposit"
    MIDDLE = "middle"
    FINAL = "final"


@dataclass(frozen=True)
class PaymentInstallment:
    due_date: datetime
    amount: Decimal
    role: InstallmentRole
    due_now: bool = False

    def to_dict(self) -> dict:
        return {
            "due_date": self.due_date.isoformat(),
            "amount": float(self.amount),
            "role": self.role.value,
            "due_now": self.due_now,
        }
