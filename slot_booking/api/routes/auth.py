import logging

from fastapi import APIRouter, Depends

from slot_booking.api.dependencies import get_booking_service, get_otp_service
from slot_booking.api.errors import to_http_exception
from slot_booking.api.schemas.schemas import (
    OtpSentResponse,
    OtpVerifiedResponse,
    SendOtpRequest,
    VerifyOtpRequest,
)
from slot_booking.application.booking_service import BookingService
from slot_booking.application.otp_service import OtpService
from slot_booking.domain.exceptions import SlotBookingError

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/send-otp", response_model=OtpSentResponse)
def send_otp(
    request: SendOtpRequest,
    otp_service: OtpService = Depends(get_otp_service),
):
    try:
        _, delivered = otp_service.send_otp(str(request.phone or ""), request.name)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return OtpSentResponse(message="OTP sent", is_demo=not delivered)


@router.post("/verify-otp", response_model=OtpVerifiedResponse)
def verify_otp(
    request: VerifyOtpRequest,
    otp_service: OtpService = Depends(get_otp_service),
    booking_service: BookingService = Depends(get_booking_service),
):
    try:
        entry = otp_service.verify_otp(str(request.phone or ""), str(request.otp))
        orders = booking_service.list_customer_orders(entry.phone)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return OtpVerifiedResponse(phone=entry.phone, name=entry.name, order_count=len(orders))
