import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from slot_booking.api.dependencies import get_db, get_payment_gateway
from slot_booking.api.schemas.schemas import WebhookAck
from slot_booking.application.booking_service import BookingService
from slot_booking.domain.payments import PaymentGateway

router = APIRouter(tags=["payments"])
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"


def _apply_webhook(
    db: Session,
    gateway: PaymentGateway,
    body: bytes,
    signature: str | None,
) -> None:
    try:
        order = BookingService(db, gateway).handle_webhook(body, signature)
        db.commit()
    except Exception:
        db.rollback()
        raise

    if order is not None:
        logger.info("Webhook: order %s is %s", order.id, order.status.value)


@router.post("/api/payment/webhook", response_model=WebhookAck)
@router.post("/api/orders/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    # Gateways redeliver until they get a 2xx, so failures are logged, not returned.
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    try:
        await run_in_threadpool(_apply_webhook, db, gateway, body, signature)
    except Exception:
        logger.exception("Payment webhook processing failed")
    return WebhookAck()
