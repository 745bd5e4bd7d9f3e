from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class SelectedRateIn(BaseModel):
    rate_id: str | None = None
    room_id: str | None = None
    count: int = 1


class CheckoutRequest(BaseModel):
    check_in: date
    check_out: date
    selected_rates: list[SelectedRateIn] = Field(min_length=1)
    total_price: Decimal
    coupon_code: str | None = None
