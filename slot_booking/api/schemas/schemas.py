from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from slot_booking.domain.catalog import Location, Package, TimeSlot
from slot_booking.domain.state_machine import OrderStatus
from slot_booking.infrastructure.db.models import Order


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Requests
# -----------------------------
class CustomerIn(ApiModel):
    name: str | None = None
    phone: str | int | None = None
    email: str | None = None


class BookingIn(ApiModel):
    location: str | None = None
    date: str | None = None
    slot_id: str | None = None
    package: str | None = None


class CreateOrderRequest(ApiModel):
    customer: CustomerIn = Field(default_factory=CustomerIn)
    booking: BookingIn = Field(default_factory=BookingIn)


class VerifyOrderRequest(ApiModel):
    order_id: str
    demo: bool = False


class CancelOrderRequest(ApiModel):
    order_id: str
    phone: str | int | None = None
    reason: str | None = None


class AdminStatusRequest(ApiModel):
    status: OrderStatus
    reason: str | None = None


class ReconcileRequest(ApiModel):
    release_orphans: bool = False


class SendOtpRequest(ApiModel):
    phone: str | int | None = None
    name: str | None = None


class VerifyOtpRequest(ApiModel):
    phone: str | int | None = None
    otp: str | int


# -----------------------------
# Orders
# -----------------------------
class CustomerOut(ApiModel):
    name: str
    phone: str
    email: str | None = None


class BookingOut(ApiModel):
    location: str
    date: str
    slot_id: str
    slot_label: str
    package: str | None = None
    package_price: int
    features: list[str]


class OrderOut(ApiModel):
    order_id: str
    customer: CustomerOut
    booking: BookingOut
    amount: int
    status: OrderStatus
    payment_session_id: str | None = None
    gateway_order_id: str | None = None
    payment_reference: str | None = None
    created_at: datetime
    updated_at: datetime
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    @classmethod
    def from_model(cls, order: Order) -> "OrderOut":
        return cls(
            order_id=order.id,
            customer=CustomerOut(
                name=order.customer_name,
                phone=order.customer_phone,
                email=order.customer_email,
            ),
            booking=BookingOut(
                location=order.location,
                date=order.booking_date,
                slot_id=order.slot_id,
                slot_label=order.slot_label,
                package=order.package,
                package_price=order.package_price,
                features=list(order.features or []),
            ),
            amount=order.amount,
            status=order.status,
            payment_session_id=order.payment_session_id,
            gateway_order_id=order.gateway_order_id,
            payment_reference=order.payment_reference,
            created_at=order.created_at,
            updated_at=order.updated_at,
            paid_at=order.paid_at,
            cancelled_at=order.cancelled_at,
            cancellation_reason=order.cancellation_reason,
        )


class CreateOrderResponse(ApiModel):
    success: bool = True
    order_id: str
    amount: int
    payment_session_id: str | None = None
    order: OrderOut


class VerifyOrderResponse(ApiModel):
    success: bool = True
    paid: bool
    order: OrderOut


class OrderResponse(ApiModel):
    success: bool = True
    message: str | None = None
    order: OrderOut


class OrderListResponse(ApiModel):
    success: bool = True
    count: int
    orders: list[OrderOut]


class WebhookAck(ApiModel):
    success: bool = True
    received: bool = True


# -----------------------------
# Slots and catalog
# -----------------------------
class TimeSlotOut(ApiModel):
    id: str
    label: str
    start: str
    end: str

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "TimeSlotOut":
        return cls(id=slot.id, label=slot.label, start=slot.start, end=slot.end)


class SlotsResponse(ApiModel):
    success: bool = True
    date: str
    location: str
    booked_map: dict[str, list[str]]
    global_bookings: list[str]
    time_slots: list[TimeSlotOut]


class SlotCheckResponse(ApiModel):
    success: bool = True
    slot_id: str
    available: bool
    booked: bool


class LocationOut(ApiModel):
    id: str
    name: str
    address: str
    contact: str

    @classmethod
    def from_location(cls, location: Location) -> "LocationOut":
        return cls(
            id=location.name,
            name=location.name,
            address=location.address,
            contact=location.contact,
        )


class PackageOut(ApiModel):
    name: str
    price: int
    features: list[str]
    popular: bool = False

    @classmethod
    def from_package(cls, package: Package) -> "PackageOut":
        return cls(
            name=package.name,
            price=package.price,
            features=list(package.features),
            popular=package.popular,
        )


class LocationsResponse(ApiModel):
    success: bool = True
    locations: list[LocationOut]


class PackagesResponse(ApiModel):
    success: bool = True
    location: str
    contact: str
    address: str
    packages: dict[str, PackageOut]


# -----------------------------
# Admin
# -----------------------------
class AdminStats(ApiModel):
    total_orders: int
    confirmed_orders: int
    pending_orders: int
    cancelled_orders: int
    failed_orders: int
    total_revenue: int
    total_customers: int
    active_otps: int
    location_stats: dict[str, int]
    package_stats: dict[str, int]


class AdminStatsResponse(ApiModel):
    success: bool = True
    stats: AdminStats


class CustomerSummaryOut(ApiModel):
    phone: str
    name: str
    email: str | None = None
    order_count: int
    confirmed_count: int
    total_spent: int
    last_order_at: datetime | None = None


class CustomerListResponse(ApiModel):
    success: bool = True
    count: int
    customers: list[CustomerSummaryOut]


class LedgerRecordOut(ApiModel):
    date: str
    location: str
    package: str | None = None
    booked_slot_ids: list[str]


class LedgerSnapshotResponse(ApiModel):
    success: bool = True
    slots: list[LedgerRecordOut]


class LedgerEntryOut(ApiModel):
    date: str
    location: str
    package: str | None = None
    slot_id: str


class ReconcileResponse(ApiModel):
    success: bool = True
    consistent: bool
    orphans_released: bool
    reserved: list[LedgerEntryOut]
    orphans: list[LedgerEntryOut]


# -----------------------------
# Auth
# -----------------------------
class OtpSentResponse(ApiModel):
    success: bool = True
    message: str
    is_demo: bool


class OtpVerifiedResponse(ApiModel):
    success: bool = True
    phone: str
    name: str
    order_count: int
