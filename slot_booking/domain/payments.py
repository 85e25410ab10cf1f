# slot_booking/domain/payments.py
"""
Payment gateway contract consumed by the booking core.

Gateway unavailability is an expected outcome, not a failure: the core keeps
taking orders in demo mode when no gateway is configured or reachable.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from slot_booking.domain.customer import CustomerDetails
from slot_booking.domain.exceptions import (
    InvalidWebhookError,
    PaymentGatewayUnavailableError,
)


class PaymentStatus(str, Enum):
    PAID = "paid"
    NOT_PAID = "not_paid"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class PaymentSession:
    session_id: str
    gateway_order_id: str


@dataclass(frozen=True)
class WebhookEvent:
    event: str
    is_success: bool
    order_id: Optional[str] = None
    gateway_order_id: Optional[str] = None
    payment_id: Optional[str] = None


class PaymentGateway(Protocol):
    provider: str

    def create_session(
        self,
        order_id: str,
        amount: int,
        customer: CustomerDetails,
    ) -> PaymentSession:
        """Open a checkout session. Raises PaymentGatewayUnavailableError."""
        ...

    def check_status(self, gateway_order_id: str) -> PaymentStatus:
        ...

    def validate_webhook(
        self,
        body: bytes,
        signature: Optional[str],
    ) -> WebhookEvent:
        """Verify and decode a webhook delivery. Raises InvalidWebhookError."""
        ...


class UnconfiguredGateway:
    """Stand-in used when no gateway credentials are configured."""

    provider = "demo"

    def create_session(
        self,
        order_id: str,
        amount: int,
        customer: CustomerDetails,
    ) -> PaymentSession:
        raise PaymentGatewayUnavailableError("Payment gateway not configured")

    def check_status(self, gateway_order_id: str) -> PaymentStatus:
        return PaymentStatus.UNAVAILABLE

    def validate_webhook(
        self,
        body: bytes,
        signature: Optional[str],
    ) -> WebhookEvent:
        raise InvalidWebhookError("Payment gateway not configured")
