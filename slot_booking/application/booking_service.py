import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from slot_booking.domain.catalog import CATALOG, Catalog
from slot_booking.domain.customer import CustomerDetails, generate_order_id, normalize_phone
from slot_booking.domain.exceptions import (
    InvalidWebhookError,
    OrderAlreadyCancelledError,
    OrderOwnershipError,
    PaymentGatewayUnavailableError,
    SlotUnavailableError,
    ValidationError,
)
from slot_booking.domain.ledger import LedgerKey, normalize_booking_date
from slot_booking.domain.payments import PaymentGateway, PaymentStatus
from slot_booking.domain.state_machine import (
    LedgerEffect,
    OrderStateMachine,
    OrderStatus,
    TransitionSource,
)
from slot_booking.infrastructure.db.models import Order
from slot_booking.infrastructure.repositories.order_repository import OrderRepository
from slot_booking.infrastructure.repositories.slot_ledger_repository import SlotLedgerRepository

logger = logging.getLogger(__name__)

DEMO_PAYMENT_REFERENCE = "demo"


@dataclass(frozen=True)
class BookingSelection:
    location: str | None
    date: str | None
    slot_id: str | None
    package: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ledger_key_for(order: Order) -> LedgerKey:
    return LedgerKey.for_booking(order.booking_date, order.location, order.package)


class BookingService:
    """
    Application service coordinating the order lifecycle with the slot ledger.

    Every status change goes through _transition, which writes the status and
    applies the matching ledger effect in the same session transaction.
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway,
        catalog: Catalog = CATALOG,
        allow_demo_payments: bool = True,
    ):
        self.db = db
        self.gateway = gateway
        self.catalog = catalog
        self.allow_demo_payments = allow_demo_payments
        self.order_repository = OrderRepository(db)
        self.slot_ledger = SlotLedgerRepository(db)

    # -----------------------------
    # Queries
    # -----------------------------
    def get_order(self, order_id: str) -> Order:
        return self.order_repository.get(order_id)

    def list_customer_orders(self, phone: str | None) -> list[Order]:
        # Stored phones are always normalized, so an unparseable one matches nothing.
        try:
            normalized = normalize_phone(phone)
        except ValidationError:
            return []
        return self.order_repository.list_by_customer_phone(normalized)

    def slot_availability(
        self,
        date: str,
        location: str,
    ) -> tuple[dict[str, list[str]], list[str]]:
        return self.slot_ledger.booked_map(normalize_booking_date(date), location)

    def is_slot_available(
        self,
        date: str,
        location: str,
        slot_id: str,
        package: str | None = None,
    ) -> bool:
        return self.slot_ledger.is_available(
            normalize_booking_date(date),
            location,
            package,
            slot_id,
        )

    # -----------------------------
    # Commands
    # -----------------------------
    def create_order(
        self,
        customer: CustomerDetails,
        booking: BookingSelection,
    ) -> Order:
        """
        Validate a booking against the catalog and ledger, then persist a pending order.

        Availability is checked here but the slot is only reserved on
        confirmation, so two orders for one slot can both be created.
        """
        name = (customer.name or "").strip()
        if not name or not customer.phone:
            raise ValidationError("Missing details")
        if not booking.location or not booking.date or not booking.slot_id or not booking.package:
            raise ValidationError("Missing details")

        phone = normalize_phone(customer.phone)
        booking_date = normalize_booking_date(booking.date)
        package = self.catalog.get_package(booking.location, booking.package)
        slot = self.catalog.get_time_slot(booking.slot_id)

        if not self.slot_ledger.is_available(booking_date, booking.location, package.name, slot.id):
            raise SlotUnavailableError(booking_date, booking.location, slot.id)

        details = CustomerDetails(name=name, phone=phone, email=customer.email or None)
        order_id = generate_order_id()

        payment_session = None
        try:
            payment_session = self.gateway.create_session(order_id, package.price, details)
        except PaymentGatewayUnavailableError as exc:
            logger.warning("Payment session unavailable for order %s, using demo mode: %s", order_id, exc)

        order = self.order_repository.create_order(
            order_id=order_id,
            customer=details,
            location=booking.location,
            booking_date=booking_date,
            slot_id=slot.id,
            slot_label=slot.label,
            package=package.name,
            package_price=package.price,
            features=list(package.features),
            amount=package.price,
            payment_session_id=payment_session.session_id if payment_session else None,
            gateway_order_id=payment_session.gateway_order_id if payment_session else None,
        )
        logger.info(
            "Order %s created location=%s date=%s slot=%s package=%s amount=%s",
            order.id,
            order.location,
            order.booking_date,
            order.slot_id,
            order.package,
            order.amount,
        )
        return order

    def confirm_order(
        self,
        order_id: str,
        source: TransitionSource,
        payment_reference: str | None = None,
    ) -> Order:
        order = self.order_repository.get_for_update(order_id)
        return self._confirm(order, source, payment_reference)

    def verify_payment(self, order_id: str, demo: bool = False) -> tuple[bool, Order]:
        """
        Client-initiated payment check. Returns (paid, order).

        demo=True simulates a successful payment only when the gateway cannot
        answer for this order.
        """
        order = self.order_repository.get_for_update(order_id)
        if order.status == OrderStatus.CONFIRMED:
            return True, order
        if order.status != OrderStatus.PENDING:
            return False, order

        status = PaymentStatus.UNAVAILABLE
        if order.gateway_order_id:
            status = self.gateway.check_status(order.gateway_order_id)

        if status == PaymentStatus.PAID:
            self._confirm(order, TransitionSource.CLIENT_VERIFY)
        elif demo and status == PaymentStatus.UNAVAILABLE:
            if self.allow_demo_payments:
                logger.warning("Order %s confirmed with a simulated demo payment", order.id)
                self._confirm(order, TransitionSource.CLIENT_VERIFY, DEMO_PAYMENT_REFERENCE)
            else:
                logger.warning("Demo payment refused for order %s", order.id)

        return order.status == OrderStatus.CONFIRMED, order

    def cancel_order(
        self,
        order_id: str,
        requester_phone: str | None = None,
        reason: str | None = None,
        source: TransitionSource = TransitionSource.CUSTOMER,
    ) -> Order:
        order = self.order_repository.get_for_update(order_id)

        if source == TransitionSource.CUSTOMER and requester_phone:
            try:
                owner_matches = normalize_phone(requester_phone) == order.customer_phone
            except ValidationError:
                owner_matches = False
            if not owner_matches:
                raise OrderOwnershipError("Unauthorized")

        if order.status == OrderStatus.CANCELLED:
            raise OrderAlreadyCancelledError(order.id)

        return self._transition(order, OrderStatus.CANCELLED, source, reason=reason)

    def handle_webhook(self, body: bytes, signature: str | None) -> Order | None:
        """
        Apply a gateway webhook. Invalid payloads, non-success events and
        unknown orders are logged and ignored since gateways retry until acknowledged.
        """
        try:
            event = self.gateway.validate_webhook(body, signature)
        except InvalidWebhookError as exc:
            logger.warning("Rejected payment webhook: %s", exc)
            return None

        if not event.is_success:
            logger.info("Ignoring payment webhook event %s", event.event)
            return None

        order = None
        if event.order_id:
            order = self.order_repository.get_by_id(event.order_id)
        if order is None and event.gateway_order_id:
            order = self.order_repository.get_by_gateway_order_id(event.gateway_order_id)
        if order is None:
            logger.warning(
                "Payment webhook for unknown order order_id=%s gateway_order_id=%s",
                event.order_id,
                event.gateway_order_id,
            )
            return None

        order = self.order_repository.get_for_update(order.id)
        return self._confirm(order, TransitionSource.WEBHOOK, event.payment_id)

    def admin_set_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        reason: str | None = None,
    ) -> Order:
        """
        Administrative override. Any target status is accepted; the ledger
        follows the same (old, new) rule as the customer and gateway flows.
        """
        order = self.order_repository.get_for_update(order_id)
        if order.status == new_status:
            return order
        return self._transition(
            order,
            new_status,
            TransitionSource.ADMIN_ACTION,
            reason=reason,
            enforce=False,
        )

    # -----------------------------
    # Transitions
    # -----------------------------
    def _confirm(
        self,
        order: Order,
        source: TransitionSource,
        payment_reference: str | None = None,
    ) -> Order:
        if order.status == OrderStatus.CONFIRMED:
            logger.info("Order %s already confirmed, %s confirmation is a no-op", order.id, source.value)
            return order
        if order.status != OrderStatus.PENDING:
            logger.warning(
                "Ignoring %s confirmation for order %s in status %s",
                source.value,
                order.id,
                order.status.value,
            )
            return order
        return self._transition(
            order,
            OrderStatus.CONFIRMED,
            source,
            payment_reference=payment_reference,
        )

    def _transition(
        self,
        order: Order,
        to_status: OrderStatus,
        source: TransitionSource,
        *,
        reason: str | None = None,
        payment_reference: str | None = None,
        enforce: bool = True,
    ) -> Order:
        from_status = order.status
        if enforce:
            OrderStateMachine.validate_transition(from_status, to_status)
        effect = OrderStateMachine.ledger_effect(from_status, to_status)

        now = _utcnow()
        self.order_repository.update_status(
            order,
            to_status,
            paid_at=now if to_status == OrderStatus.CONFIRMED else None,
            cancelled_at=now if to_status == OrderStatus.CANCELLED else None,
            cancellation_reason=reason if to_status == OrderStatus.CANCELLED else None,
            payment_reference=payment_reference,
        )
        self._apply_ledger_effect(order, effect)

        logger.info(
            "Order %s transitioned %s -> %s source=%s ledger=%s",
            order.id,
            from_status.value,
            to_status.value,
            source.value,
            effect.value,
        )
        return order

    def _apply_ledger_effect(self, order: Order, effect: LedgerEffect) -> None:
        key = ledger_key_for(order)

        if effect == LedgerEffect.RESERVE:
            self.slot_ledger.reserve(key, order.slot_id)
        elif effect == LedgerEffect.RELEASE:
            # Confirmations of sibling orders reserve under the same record lock,
            # so the holder count below sees every committed confirmation.
            if self.slot_ledger.lock(key) is None:
                logger.warning("Slot %s on %s has no reservation record to release", order.slot_id, key)
                return
            holders = self.order_repository.count_confirmed_for_slot(
                order.booking_date,
                order.location,
                order.package,
                order.slot_id,
                exclude_order_id=order.id,
            )
            if holders:
                logger.warning(
                    "Slot %s on %s kept reserved, %s other confirmed order(s) hold it",
                    order.slot_id,
                    key,
                    holders,
                )
                return
            self.slot_ledger.release(key, order.slot_id)
