"""Availability router: hotel availability search and checkout pricing."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from staybridge.schemas.availability import CheckoutRequest
from staybridge.services.availability.errors import (
    InvalidCancellationPolicy,
    ProviderUnavailable,
    ValidationError,
)
from staybridge.services.availability.models import SelectedRate
from staybridge.services.availability.results import Conflict, Invalid, MergeResult
from staybridge.services.booking_service import BookingService, booking_service

logger = logging.getLogger(__name__)

router = APIRouter()


def get_booking_service() -> BookingService:
    return booking_service


def _unwrap(result: MergeResult):
    if isinstance(result, Invalid):
        raise HTTPException(status_code=400, detail={"reason": result.reason.value, "message": result.detail})
    if isinstance(result, Conflict):
        raise HTTPException(status_code=409, detail={"reason": result.reason.value, "message": result.detail})
    return result.value


async def _run(call):
    try:
        return _unwrap(await call)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))
    except InvalidCancellationPolicy as e:
        logger.error(f"Payment plan rejected: {e}")
        raise HTTPException(status_code=500, detail="Could not build a payment plan for this booking")


@router.get("/{hotel_id}/availability")
async def get_availability(
    hotel_id: str,
    check_in: str = Query(..., alias="checkin"),
    check_out: str = Query(..., alias="checkout"),
    adults: int | None = None,
    children: str | None = None,
    party: str | None = None,
    coupon_code: str | None = Query(None, alias="coupon"),
    service: BookingService = Depends(get_booking_service),
):
    """Merged availability for a hotel and stay, with alternatives when sold out."""
    availability = await _run(service.search(
        hotel_id=hotel_id,
        check_in=check_in,
        check_out=check_out,
        adults=adults,
        children=children,
        party=party,
        coupon_code=coupon_code,
    ))
    return availability.to_dict()


@router.post("/{hotel_id}/checkout")
async def prepare_checkout(
    hotel_id: str,
    req: CheckoutRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Re-price the selected rates and return the guest payment plan."""
    try:
        selected = [SelectedRate.from_request(s.rate_id, s.count, s.room_id) for s in req.selected_rates]
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    quote = await _run(service.prepare_payment(
        hotel_id=hotel_id,
        check_in=req.check_in,
        check_out=req.check_out,
        selected_rates=selected,
        quoted_total=req.total_price,
        coupon_code=req.coupon_code,
    ))
    return quote.to_dict()
