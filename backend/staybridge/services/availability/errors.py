"""Error taxonomy for the availability, pricing and installment engine."""

from datetime import date


class StayBridgeError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(StayBridgeError):
    """Caller input is malformed. Never retried."""


class InvalidPartyFormat(ValidationError):
    pass


class InvalidDateFormat(ValidationError):
    pass


class InvalidHotelIdFormat(ValidationError):
    pass


class PolicyError(StayBridgeError):
    """Provider data the engine cannot reconcile."""


class InvalidCancellationPolicy(PolicyError):
    pass


class UpstreamError(StayBridgeError):
    """Transport or HTTP failure from a collaborator. Retryable by the caller."""


class ProviderUnavailable(UpstreamError):
    def __init__(
        self,
        hotel_id: str,
        check_in: date | None = None,
        check_out: date | None = None,
        reason: str = "",
    ):
        self.hotel_id = hotel_id
        self.check_in = check_in
        self.check_out = check_out
        self.reason = reason
        window = ""
        if check_in and check_out:
            window = f" {check_in.isoformat()}..{check_out.isoformat()}"
        super().__init__(f"Provider unavailable for hotel {hotel_id}{window}: {reason}")
