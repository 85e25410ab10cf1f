# slot_booking/infrastructure/db/models.py

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from slot_booking.infrastructure.db.session import Base
from slot_booking.domain.state_machine import OrderStatus

# Package column value of a reservation record in the legacy global scope.
GLOBAL_SCOPE_PACKAGE = ""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    """
    Order table reflecting domain state.
    Booking details, amount and features are copied from the catalog
    when the order is created and never recomputed.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    customer_name: Mapped[str] = mapped_column(String(128), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    location: Mapped[str] = mapped_column(String(64), nullable=False)
    booking_date: Mapped[str] = mapped_column(String(10), nullable=False)
    slot_id: Mapped[str] = mapped_column(String(32), nullable=False)
    slot_label: Mapped[str] = mapped_column(String(64), nullable=False)
    package: Mapped[str | None] = mapped_column(String(32), nullable=True)
    package_price: Mapped[int] = mapped_column(Integer, nullable=False)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    payment_session_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    gateway_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    payment_reference: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_order_amount_nonnegative"),
        Index(
            "ix_orders_slot_status",
            "booking_date",
            "location",
            "package",
            "slot_id",
            "status",
        ),
    )


class SlotReservation(Base):
    """
    Reservation record for one ledger key. Created on first reservation,
    never deleted; its member set may become empty.
    """

    __tablename__ = "slot_reservations"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    booking_date: Mapped[str] = mapped_column(String(10), nullable=False)
    location: Mapped[str] = mapped_column(String(64), nullable=False)
    package: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=GLOBAL_SCOPE_PACKAGE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "booking_date",
            "location",
            "package",
            name="uq_slot_reservation_key",
        ),
    )


class ReservedSlot(Base):
    """One member of a reservation record's booked slot set."""

    __tablename__ = "reserved_slots"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    reservation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("slot_reservations.id"),
        nullable=False,
    )
    slot_id: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "reservation_id",
            "slot_id",
            name="uq_reserved_slot_member",
        ),
    )
