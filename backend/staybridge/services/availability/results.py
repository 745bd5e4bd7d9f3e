"""Tagged outcome returned by the availability merger."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ConflictReason(str, Enum):
    RATE_NO_LONGER_AVAILABLE = "rate_no_longer_available"
    PRICE_CHANGED = "price_changed"


class InvalidReason(str, Enum):
    INVALID_HOTEL_ID = "invalid_hotel_id"
    INVALID_DATES = "invalid_dates"
    INVALID_PARTY = "invalid_party"
    INVALID_SELECTION = "invalid_selection"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Conflict:
    """Inventory or price moved since the quote; the caller must re-quote."""
    reason: ConflictReason
    detail: str


@dataclass(frozen=True)
class Invalid:
    reason: InvalidReason
    detail: str


MergeResult = Ok | Conflict | Invalid
