"""Pricing engine: turns provider net prices into guest-facing prices."""

from decimal import ROUND_CEILING, ROUND_DOWN, ROUND_HALF_EVEN, Decimal

from staybridge.services.availability.config import PricingPolicy
from staybridge.services.availability.models import CouponType

PROFIT_RATIO_QUANT = Decimal("0.000001")
SALE_PRICE_MIN_GAP = Decimal(5)


def _dec(value) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


class PricingEngine:
    """Margin floor, special-hotel markdown and coupon rules, in that order."""

    def __init__(self, policy: PricingPolicy | None = None):
        self.policy = policy or PricingPolicy()

    def compute_guest_price(
        self,
        net_price: Decimal,
        retail_price: Decimal | None = None,
        existing_margin: Decimal | None = None,
        hotel_code: str = "",
        discount: Decimal = Decimal(0),
        discount_type: CouponType = CouponType.NONE,
    ) -> tuple[Decimal, Decimal]:
        """
        Return ``(computed_price, profit_ratio)``.

        The base is the provider's retail price when it already clears the
        margin floor, otherwise net plus the floor. The result is truncated to
        whole currency units. ``net_price`` must be positive.
        """
        net = _dec(net_price)
        retail = _dec(retail_price)
        margin = _dec(existing_margin)
        discount = _dec(discount) or Decimal(0)
        if net is None or net <= 0:
            raise ValueError(f"net_price must be positive, got {net_price}")

        min_margin = net * self.policy.min_margin
        if (
            retail is None
            or retail == 0
            or (retail - net) < min_margin
            or margin is None
            or margin < min_margin
        ):
            base = net + min_margin
        else:
            base = retail

        price_factor = self.policy.price_factor(hotel_code)

        percent_factor = Decimal(1)
        flat_amount = Decimal(0)
        if discount_type == CouponType.PERCENTAGE:
            percent_factor = 1 - discount
        elif discount_type == CouponType.FLAT:
            flat_amount = discount

        computed = (base * price_factor * percent_factor - flat_amount).quantize(
            Decimal(1), rounding=ROUND_DOWN
        )
        if discount_type == CouponType.NONE and computed < net:
            # truncation can only dip below cost for fractional nets
            computed = net.quantize(Decimal(1), rounding=ROUND_CEILING)
        profit_ratio = (computed / net).quantize(PROFIT_RATIO_QUANT, rounding=ROUND_HALF_EVEN)
        return computed, profit_ratio

    @staticmethod
    def get_sale_price(
        retail_total: Decimal | None,
        retail_discount: Decimal | None,
        computed_price: Decimal,
    ) -> Decimal:
        """Struck-through "was" price, shown only when it beats the guest price by more than 5."""
        sale = (_dec(retail_total) or Decimal(0)) + (_dec(retail_discount) or Decimal(0))
        if sale > computed_price + SALE_PRICE_MIN_GAP:
            return sale
        return Decimal(0)
