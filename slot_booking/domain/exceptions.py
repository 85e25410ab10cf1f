

class SlotBookingError(Exception):
    """
    Base exception for all domain-level errors
    inside the slot booking engine.
    """


class ValidationError(SlotBookingError):
    """Raised when a request is missing fields or carries malformed values."""


class UnknownLocationError(ValidationError):
    """Raised when a location is not part of the catalog."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"Invalid location: {location}")


class UnknownPackageError(ValidationError):
    """Raised when a package tier is not offered at a location."""

    def __init__(self, location: str, package: str):
        self.location = location
        self.package = package
        super().__init__(f"Invalid package {package!r} for location {location}")


class InvalidSlotError(ValidationError):
    """Raised when a slot identifier is not a known time slot."""

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Invalid slot: {slot_id}")


class OrderNotFoundError(SlotBookingError):
    """Raised when an order id does not exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class SlotUnavailableError(SlotBookingError):
    """Raised when the requested slot is already booked."""

    def __init__(self, date: str, location: str, slot_id: str):
        self.date = date
        self.location = location
        self.slot_id = slot_id
        super().__init__("Slot already booked")


class OrderAlreadyCancelledError(SlotBookingError):
    """Raised when cancelling an order that is already cancelled."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already cancelled")


class OrderOwnershipError(SlotBookingError):
    """Raised when a customer acts on an order placed with another phone."""


class InvalidStateTransitionError(SlotBookingError):
    """
    Raised when an illegal order state transition is attempted.
    """

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)


class PaymentGatewayUnavailableError(SlotBookingError):
    """Raised when the payment gateway is unconfigured or unreachable."""


class InvalidWebhookError(SlotBookingError):
    """Raised when a webhook payload fails signature or shape validation."""


class PersistenceError(SlotBookingError):
    """Raised when a storage write fails."""


class OtpError(SlotBookingError):
    """Base class for one-time password failures."""


class OtpCooldownError(OtpError):
    """Raised when an OTP is requested again before the resend cooldown."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Wait {retry_after}s before retrying")


class OtpInvalidError(OtpError):
    """Raised when an OTP is missing, expired, wrong, or exhausted."""
