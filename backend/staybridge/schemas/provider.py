"""Provider payloads: availability and flexible-calendar responses as the provider sends them."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RawPricing(_ProviderModel):
    price: Decimal = Decimal(0)
    margin: Decimal | None = None
    discount: Decimal = Decimal(0)
    stay: Decimal | None = None
    taxes: Decimal | None = None


class RawPayment(_ProviderModel):
    due: datetime | None = None
    amount: Decimal | None = None


class RawCancellationFee(_ProviderModel):
    after: datetime | None = None
    fee: Decimal | None = None


class RawRate(_ProviderModel):
    id: str
    type: str = ""
    room_name: str = Field(default="", alias="room")
    rate_name: str = Field(default="", alias="rate")
    board_id: int | None = Field(default=None, alias="board")
    pricing: RawPricing = Field(default_factory=RawPricing)
    retail: RawPricing | None = None
    remaining: int | None = None
    cancellation_expiry: datetime | None = None
    cancellation_fees: list[RawCancellationFee] = Field(default_factory=list)
    payments: list[RawPayment] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, v):
        return str(v)

    @field_validator("cancellation_expiry", mode="before")
    @classmethod
    def _blank_expiry(cls, v):
        return v or None


class RawHotelData(_ProviderModel):
    code: str = ""
    name: str = ""
    rates: list[RawRate] = Field(default_factory=list)


class RawAvailability(_ProviderModel):
    http_code: int | None = None
    error_code: str | None = None
    error_msg: str | None = None
    data: RawHotelData | None = None

    @property
    def rates(self) -> list[RawRate]:
        return self.data.rates if self.data else []


class RawCalendarDay(_ProviderModel):
    day: date = Field(alias="date")
    status: str = ""
    price: Decimal = Decimal(0)
    retail: Decimal = Decimal(0)
    min_stay: int = 1

    @field_validator("min_stay", mode="before")
    @classmethod
    def _min_stay_as_int(cls, v):
        if v is None or v == "":
            return 1
        return int(v)

    @property
    def is_bookable(self) -> bool:
        return self.status.upper() in ("AVL", "MIN")


class RawCalendarData(_ProviderModel):
    days: list[RawCalendarDay] = Field(default_factory=list)


class RawCalendar(_ProviderModel):
    data: RawCalendarData | None = None

    @property
    def days(self) -> list[RawCalendarDay]:
        return self.data.days if self.data else []
