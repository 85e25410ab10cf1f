from fastapi import APIRouter, Depends, HTTPException, Query, status

from slot_booking.api.dependencies import get_booking_service
from slot_booking.api.errors import to_http_exception
from slot_booking.api.schemas.schemas import SlotCheckResponse, SlotsResponse, TimeSlotOut
from slot_booking.application.booking_service import BookingService
from slot_booking.domain.exceptions import SlotBookingError

router = APIRouter(prefix="/api/slots", tags=["slots"])


@router.get("", response_model=SlotsResponse)
def get_slots(
    date: str | None = None,
    location: str | None = None,
    service: BookingService = Depends(get_booking_service),
):
    if not date or not location:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Date/Location required",
        )

    try:
        booked_map, global_bookings = service.slot_availability(date, location)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return SlotsResponse(
        date=date,
        location=location,
        booked_map=booked_map,
        global_bookings=global_bookings,
        time_slots=[TimeSlotOut.from_slot(slot) for slot in service.catalog.time_slots],
    )


@router.get("/check", response_model=SlotCheckResponse)
def check_slot(
    date: str | None = None,
    location: str | None = None,
    slot_id: str | None = Query(default=None, alias="slotId"),
    package: str | None = None,
    service: BookingService = Depends(get_booking_service),
):
    if not date or not location or not slot_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing params",
        )

    try:
        available = service.is_slot_available(date, location, slot_id, package)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    return SlotCheckResponse(slot_id=slot_id, available=available, booked=not available)
