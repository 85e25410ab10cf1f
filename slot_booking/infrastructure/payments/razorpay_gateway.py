# slot_booking/infrastructure/payments/razorpay_gateway.py

import json
import logging
from typing import Any

import razorpay
import requests

from slot_booking.config import Settings
from slot_booking.domain.customer import CustomerDetails
from slot_booking.domain.exceptions import (
    InvalidWebhookError,
    PaymentGatewayUnavailableError,
)
from slot_booking.domain.payments import (
    PaymentGateway,
    PaymentSession,
    PaymentStatus,
    UnconfiguredGateway,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

SUCCESS_EVENTS = frozenset({"payment.captured", "order.paid"})

_TRANSPORT_ERRORS = (
    razorpay.errors.BadRequestError,
    razorpay.errors.GatewayError,
    razorpay.errors.ServerError,
    requests.RequestException,
)


def _entity(payload: dict[str, Any], name: str) -> dict[str, Any]:
    section = payload.get(name)
    if not isinstance(section, dict):
        return {}
    entity = section.get("entity")
    return entity if isinstance(entity, dict) else {}


class RazorpayGateway:
    """Razorpay orders API behind the payment gateway contract."""

    provider = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str | None = None,
        currency: str = "INR",
        client: razorpay.Client | None = None,
    ):
        self.client = client or razorpay.Client(auth=(key_id, key_secret))
        self.webhook_secret = webhook_secret
        self.currency = currency

    def create_session(
        self,
        order_id: str,
        amount: int,
        customer: CustomerDetails,
    ) -> PaymentSession:
        try:
            gateway_order = self.client.order.create(
                {
                    "amount": amount * 100,
                    "currency": self.currency,
                    "receipt": order_id,
                    "notes": {
                        "order_id": order_id,
                        "customer_phone": customer.phone,
                        "customer_name": customer.name,
                    },
                }
            )
        except _TRANSPORT_ERRORS as exc:
            raise PaymentGatewayUnavailableError(
                f"Razorpay order creation failed: {exc}"
            ) from exc

        gateway_order_id = gateway_order.get("id")
        if not gateway_order_id:
            raise PaymentGatewayUnavailableError("Razorpay returned an order without id")
        return PaymentSession(session_id=gateway_order_id, gateway_order_id=gateway_order_id)

    def check_status(self, gateway_order_id: str) -> PaymentStatus:
        try:
            gateway_order = self.client.order.fetch(gateway_order_id)
        except _TRANSPORT_ERRORS:
            logger.warning("Razorpay status check failed for %s", gateway_order_id, exc_info=True)
            return PaymentStatus.UNAVAILABLE

        if gateway_order.get("status") == "paid":
            return PaymentStatus.PAID
        return PaymentStatus.NOT_PAID

    def validate_webhook(
        self,
        body: bytes,
        signature: str | None,
    ) -> WebhookEvent:
        if not self.webhook_secret:
            raise InvalidWebhookError("Webhook secret not configured")
        if not signature:
            raise InvalidWebhookError("Missing webhook signature")

        try:
            raw = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidWebhookError("Webhook body is not UTF-8") from exc

        try:
            self.client.utility.verify_webhook_signature(raw, signature, self.webhook_secret)
        except razorpay.errors.SignatureVerificationError as exc:
            raise InvalidWebhookError("Invalid webhook signature") from exc

        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise InvalidWebhookError("Webhook body is not JSON") from exc
        if not isinstance(data, dict) or "event" not in data:
            raise InvalidWebhookError("Webhook body has no event")

        payload = data.get("payload")
        if not isinstance(payload, dict):
            payload = {}
        order_entity = _entity(payload, "order")
        payment_entity = _entity(payload, "payment")
        notes = payment_entity.get("notes") or order_entity.get("notes") or {}
        if not isinstance(notes, dict):
            notes = {}

        return WebhookEvent(
            event=data["event"],
            is_success=data["event"] in SUCCESS_EVENTS,
            order_id=order_entity.get("receipt") or notes.get("order_id"),
            gateway_order_id=payment_entity.get("order_id") or order_entity.get("id"),
            payment_id=payment_entity.get("id"),
        )


def build_payment_gateway(settings: Settings) -> PaymentGateway:
    if not settings.payment_gateway_configured:
        logger.warning("Razorpay keys not configured. Payments run in demo mode.")
        return UnconfiguredGateway()
    return RazorpayGateway(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        webhook_secret=settings.razorpay_webhook_secret,
        currency=settings.payment_currency,
    )
