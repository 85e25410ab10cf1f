import logging

from fastapi import APIRouter, Depends

from slot_booking.api.dependencies import get_booking_service
from slot_booking.api.errors import to_http_exception
from slot_booking.api.schemas.schemas import (
    CancelOrderRequest,
    CreateOrderRequest,
    CreateOrderResponse,
    OrderListResponse,
    OrderOut,
    OrderResponse,
    VerifyOrderRequest,
    VerifyOrderResponse,
)
from slot_booking.application.booking_service import BookingSelection, BookingService
from slot_booking.domain.customer import CustomerDetails
from slot_booking.domain.exceptions import SlotBookingError

router = APIRouter(prefix="/api/orders", tags=["orders"])
logger = logging.getLogger(__name__)


@router.post("/create", response_model=CreateOrderResponse)
def create_order(
    request: CreateOrderRequest,
    service: BookingService = Depends(get_booking_service),
):
    customer = CustomerDetails(
        name=request.customer.name or "",
        phone=str(request.customer.phone) if request.customer.phone is not None else "",
        email=request.customer.email,
    )
    booking = BookingSelection(
        location=request.booking.location,
        date=request.booking.date,
        slot_id=request.booking.slot_id,
        package=request.booking.package,
    )

    try:
        order = service.create_order(customer, booking)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return CreateOrderResponse(
        order_id=order.id,
        amount=order.amount,
        payment_session_id=order.payment_session_id,
        order=OrderOut.from_model(order),
    )


@router.post("/verify", response_model=VerifyOrderResponse)
def verify_order(
    request: VerifyOrderRequest,
    service: BookingService = Depends(get_booking_service),
):
    try:
        paid, order = service.verify_payment(request.order_id, demo=request.demo)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return VerifyOrderResponse(paid=paid, order=OrderOut.from_model(order))


@router.post("/cancel", response_model=OrderResponse)
def cancel_order(
    request: CancelOrderRequest,
    service: BookingService = Depends(get_booking_service),
):
    try:
        order = service.cancel_order(
            request.order_id,
            requester_phone=str(request.phone) if request.phone is not None else None,
            reason=request.reason,
        )
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return OrderResponse(message="Cancelled", order=OrderOut.from_model(order))


@router.get("", response_model=OrderListResponse)
def list_customer_orders(
    phone: str | None = None,
    service: BookingService = Depends(get_booking_service),
):
    orders = service.list_customer_orders(phone)
    return OrderListResponse(
        count=len(orders),
        orders=[OrderOut.from_model(order) for order in orders],
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    service: BookingService = Depends(get_booking_service),
):
    try:
        order = service.get_order(order_id)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return OrderResponse(order=OrderOut.from_model(order))
