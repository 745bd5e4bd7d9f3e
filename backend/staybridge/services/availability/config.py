"""Engine configuration: explicit pricing and payment policies."""

from dataclasses import dataclass, field
from decimal import Decimal

DEFAULT_SPECIAL_HOTEL_CODES = frozenset({
    "GRECASTIR", "LEONIKIRES", "LAKOPETRA", "ROYALPARK", "CRETAPAL",
    "GREGNATIA", "EVAPALACE", "GREFILOXE", "GELINVRSPA", "GRECRHOROY",
    "DAPHNILBAY", "KOSIMPERIA", "OLYMPIAVIL", "ILIAPALMS", "GRECELGREC",
    "OLTHALASSO", "LARIMPER", "CLUBMARINE", "MELIPALACE", "PALLASATH",
    "PLAZAGRECO", "OLIVA", "AMIRANDES", "CAPESOUNIO", "CARAMEL",
    "CORFUIMPER", "MANDOLAROS", "MYKONOSBLU", "STARMYK", "VOULSUITES",
})


@dataclass(frozen=True)
class PricingPolicy:
    """Margin floor and markdown rules applied to every provider rate."""
    min_margin_percent: int = 10
    standard_markdown_percent: int = 5
    special_hotel_codes: frozenset[str] = field(default=DEFAULT_SPECIAL_HOTEL_CODES)

    @property
    def min_margin(self) -> Decimal:
        return Decimal(self.min_margin_percent) / 100

    @property
    def standard_price_factor(self) -> Decimal:
        return 1 - Decimal(self.standard_markdown_percent) / 100

    def is_special_hotel(self, hotel_code: str) -> bool:
        return hotel_code.upper() in self.special_hotel_codes

    def price_factor(self, hotel_code: str) -> Decimal:
        """Special hotels are never marked down."""
        if self.is_special_hotel(hotel_code):
            return Decimal(1)
        return self.standard_price_factor

    @classmethod
    def from_settings(cls, settings) -> "PricingPolicy":
        return cls(
            min_margin_percent=settings.pricing_min_margin_percent,
            standard_markdown_percent=settings.pricing_standard_markdown_percent,
            special_hotel_codes=settings.special_hotel_code_set,
        )


@dataclass(frozen=True)
class PaymentPolicy:
    """Deposit rules for turning a provider schedule into guest installments.

    ``low_deposit_threshold_percent`` decides whether a future first installment
    may be charged up front as-is. It is a business rule carried over unchanged
    and should only be revised together with the commercial team.
    """
    deposit_percent: int = 30
    low_deposit_threshold_percent: int = 40

    @property
    def deposit_ratio(self) -> Decimal:
        return Decimal(self.deposit_percent) / 100

    @property
    def low_deposit_ratio(self) -> Decimal:
        return Decimal(self.low_deposit_threshold_percent) / 100

    @classmethod
    def from_settings(cls, settings) -> "PaymentPolicy":
        return cls(
            deposit_percent=settings.deposit_percent,
            low_deposit_threshold_percent=settings.low_deposit_threshold_percent,
        )
