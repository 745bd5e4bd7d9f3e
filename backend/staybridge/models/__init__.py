from staybridge.models.coupon import Coupon

__all__ = [
    "Coupon",
]
