import hashlib
import hmac
import json
from unittest.mock import MagicMock

import pytest
import razorpay
import requests

from slot_booking.config import Settings
from slot_booking.domain.customer import CustomerDetails
from slot_booking.domain.exceptions import InvalidWebhookError, PaymentGatewayUnavailableError
from slot_booking.domain.payments import PaymentStatus, UnconfiguredGateway
from slot_booking.infrastructure.payments.razorpay_gateway import RazorpayGateway, build_payment_gateway

WEBHOOK_SECRET = "whsec_test"
CUSTOMER = CustomerDetails(name="Asha", phone="9876543210")


def _sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture
def razorpay_gateway():
    return RazorpayGateway("rzp_test_key", "rzp_test_secret", webhook_secret=WEBHOOK_SECRET)


def test_create_session_sends_amount_in_paise():
    client = MagicMock()
    client.order.create.return_value = {"id": "order_abc", "status": "created"}
    gateway = RazorpayGateway("key", "secret", client=client)

    session = gateway.create_session("EF1", 2499, CUSTOMER)

    assert session.session_id == "order_abc"
    assert session.gateway_order_id == "order_abc"
    payload = client.order.create.call_args.args[0]
    assert payload["amount"] == 249900
    assert payload["currency"] == "INR"
    assert payload["receipt"] == "EF1"
    assert payload["notes"]["order_id"] == "EF1"


@pytest.mark.parametrize(
    "error",
    [
        razorpay.errors.ServerError("boom"),
        razorpay.errors.BadRequestError("bad key"),
        requests.ConnectionError("offline"),
    ],
)
def test_create_session_failure_is_unavailable(error):
    client = MagicMock()
    client.order.create.side_effect = error
    gateway = RazorpayGateway("key", "secret", client=client)

    with pytest.raises(PaymentGatewayUnavailableError):
        gateway.create_session("EF1", 2499, CUSTOMER)


@pytest.mark.parametrize(
    "status, expected",
    [("paid", PaymentStatus.PAID), ("attempted", PaymentStatus.NOT_PAID), ("created", PaymentStatus.NOT_PAID)],
)
def test_check_status(status, expected):
    client = MagicMock()
    client.order.fetch.return_value = {"id": "order_abc", "status": status}
    gateway = RazorpayGateway("key", "secret", client=client)

    assert gateway.check_status("order_abc") == expected


def test_check_status_failure_is_unavailable():
    client = MagicMock()
    client.order.fetch.side_effect = requests.Timeout("slow")
    gateway = RazorpayGateway("key", "secret", client=client)

    assert gateway.check_status("order_abc") == PaymentStatus.UNAVAILABLE


def test_validate_webhook_payment_captured(razorpay_gateway):
    body = json.dumps(
        {
            "event": "payment.captured",
            "payload": {
                "payment": {
                    "entity": {
                        "id": "pay_1",
                        "order_id": "order_abc",
                        "notes": {"order_id": "EF1"},
                    }
                }
            },
        }
    ).encode()

    event = razorpay_gateway.validate_webhook(body, _sign(body))

    assert event.is_success
    assert event.order_id == "EF1"
    assert event.gateway_order_id == "order_abc"
    assert event.payment_id == "pay_1"


def test_validate_webhook_order_paid_uses_receipt(razorpay_gateway):
    body = json.dumps(
        {
            "event": "order.paid",
            "payload": {"order": {"entity": {"id": "order_abc", "receipt": "EF2"}}},
        }
    ).encode()

    event = razorpay_gateway.validate_webhook(body, _sign(body))

    assert event.is_success
    assert event.order_id == "EF2"
    assert event.gateway_order_id == "order_abc"


def test_validate_webhook_non_success_event(razorpay_gateway):
    body = json.dumps({"event": "payment.failed", "payload": {}}).encode()

    assert not razorpay_gateway.validate_webhook(body, _sign(body)).is_success


def test_validate_webhook_rejects_bad_signature(razorpay_gateway):
    body = json.dumps({"event": "payment.captured", "payload": {}}).encode()

    with pytest.raises(InvalidWebhookError):
        razorpay_gateway.validate_webhook(body, _sign(body, "wrong-secret"))

    with pytest.raises(InvalidWebhookError):
        razorpay_gateway.validate_webhook(body, None)


def test_validate_webhook_rejects_non_json(razorpay_gateway):
    body = b"not json"

    with pytest.raises(InvalidWebhookError):
        razorpay_gateway.validate_webhook(body, _sign(body))


def test_validate_webhook_rejects_non_utf8_body(razorpay_gateway):
    body = b"\xff\xfe{not utf8"

    with pytest.raises(InvalidWebhookError, match="UTF-8"):
        razorpay_gateway.validate_webhook(body, _sign(body))


@pytest.mark.parametrize(
    "payload",
    [
        {"payment": "x"},
        {"order": ["not", "a", "dict"]},
        {"payment": {"entity": "x"}},
        "not-a-dict",
    ],
)
def test_validate_webhook_tolerates_malformed_entities(razorpay_gateway, payload):
    body = json.dumps({"event": "payment.captured", "payload": payload}).encode()

    event = razorpay_gateway.validate_webhook(body, _sign(body))

    assert event.is_success
    assert event.order_id is None
    assert event.gateway_order_id is None
    assert event.payment_id is None


def test_validate_webhook_requires_secret():
    gateway = RazorpayGateway("key", "secret")
    body = b"{}"

    with pytest.raises(InvalidWebhookError):
        gateway.validate_webhook(body, _sign(body))


def test_build_payment_gateway():
    assert isinstance(build_payment_gateway(Settings()), UnconfiguredGateway)

    gateway = build_payment_gateway(Settings(razorpay_key_id="key", razorpay_key_secret="secret"))
    assert isinstance(gateway, RazorpayGateway)


def test_unconfigured_gateway():
    gateway = UnconfiguredGateway()

    with pytest.raises(PaymentGatewayUnavailableError):
        gateway.create_session("EF1", 100, CUSTOMER)
    assert gateway.check_status("order_abc") == PaymentStatus.UNAVAILABLE
    with pytest.raises(InvalidWebhookError):
        gateway.validate_webhook(b"{}", "sig")
