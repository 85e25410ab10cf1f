import logging

from fastapi import APIRouter, Depends

from slot_booking.api.dependencies import (
    get_admin_service,
    get_booking_service,
    get_otp_store,
    require_admin,
)
from slot_booking.api.errors import to_http_exception
from slot_booking.api.schemas.schemas import (
    AdminStats,
    AdminStatsResponse,
    AdminStatusRequest,
    CustomerListResponse,
    CustomerSummaryOut,
    LedgerEntryOut,
    LedgerRecordOut,
    LedgerSnapshotResponse,
    OrderListResponse,
    OrderOut,
    OrderResponse,
    ReconcileRequest,
    ReconcileResponse,
)
from slot_booking.application.admin_service import AdminService, LedgerEntry
from slot_booking.application.booking_service import BookingService
from slot_booking.application.otp_service import OtpStore
from slot_booking.domain.exceptions import SlotBookingError
from slot_booking.domain.state_machine import OrderStatus

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)
logger = logging.getLogger(__name__)


def _entry_out(entry: LedgerEntry) -> LedgerEntryOut:
    return LedgerEntryOut(
        date=entry.key.date,
        location=entry.key.location,
        package=entry.key.package,
        slot_id=entry.slot_id,
    )


@router.get("/orders", response_model=OrderListResponse)
def list_orders(
    status: OrderStatus | None = None,
    service: AdminService = Depends(get_admin_service),
):
    orders = service.list_orders(status)
    return OrderListResponse(
        count=len(orders),
        orders=[OrderOut.from_model(order) for order in orders],
    )


@router.put("/orders/{order_id}", response_model=OrderResponse)
@router.put("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    request: AdminStatusRequest,
    service: BookingService = Depends(get_booking_service),
):
    try:
        order = service.admin_set_status(order_id, request.status, reason=request.reason)
    except SlotBookingError as exc:
        raise to_http_exception(exc) from exc

    logger.info("Admin set order %s to %s", order_id, request.status.value)
    return OrderResponse(message="Updated", order=OrderOut.from_model(order))


@router.get("/stats", response_model=AdminStatsResponse)
def get_stats(
    service: AdminService = Depends(get_admin_service),
    otp_store: OtpStore = Depends(get_otp_store),
):
    stats = service.stats(active_otps=otp_store.active_count())
    return AdminStatsResponse(stats=AdminStats(**stats))


@router.get("/customers", response_model=CustomerListResponse)
def list_customers(service: AdminService = Depends(get_admin_service)):
    customers = service.list_customers()
    return CustomerListResponse(
        count=len(customers),
        customers=[
            CustomerSummaryOut(
                phone=customer.phone,
                name=customer.name,
                email=customer.email,
                order_count=customer.order_count,
                confirmed_count=customer.confirmed_count,
                total_spent=customer.total_spent,
                last_order_at=customer.last_order_at,
            )
            for customer in customers
        ],
    )


@router.get("/slots", response_model=LedgerSnapshotResponse)
def ledger_snapshot(service: AdminService = Depends(get_admin_service)):
    return LedgerSnapshotResponse(
        slots=[
            LedgerRecordOut(
                date=key.date,
                location=key.location,
                package=key.package,
                booked_slot_ids=slot_ids,
            )
            for key, slot_ids in service.ledger_snapshot()
        ]
    )


@router.post("/slots/reconcile", response_model=ReconcileResponse)
def reconcile_slots(
    request: ReconcileRequest | None = None,
    service: AdminService = Depends(get_admin_service),
):
    release_orphans = request.release_orphans if request is not None else False
    report = service.reconcile_ledger(release_orphans=release_orphans)
    return ReconcileResponse(
        consistent=report.consistent,
        orphans_released=report.orphans_released,
        reserved=[_entry_out(entry) for entry in report.reserved],
        orphans=[_entry_out(entry) for entry in report.orphans],
    )
