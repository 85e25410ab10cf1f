# slot_booking/infrastructure/repositories/order_repository.py

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from slot_booking.domain.customer import CustomerDetails, generate_order_id
from slot_booking.domain.exceptions import OrderNotFoundError, PersistenceError
from slot_booking.domain.state_machine import OrderStatus
from slot_booking.infrastructure.db.models import Order


class OrderRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        order_id: str,
    ) -> Order | None:

        stmt = select(Order).where(Order.id == order_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get(self, order_id: str) -> Order:
        order = self.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_for_update(self, order_id: str) -> Order:
        """
        SELECT ... FOR UPDATE
        Serializes concurrent transitions of the same order.
        """
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = self.db.execute(stmt).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def get_by_gateway_order_id(self, gateway_order_id: str) -> Order | None:
        stmt = select(Order).where(Order.gateway_order_id == gateway_order_id)
        return self.db.execute(stmt).scalars().first()

    def create_order(
        self,
        *,
        customer: CustomerDetails,
        location: str,
        booking_date: str,
        slot_id: str,
        slot_label: str,
        package: str | None,
        package_price: int,
        features: list[str],
        amount: int,
        payment_session_id: str | None = None,
        gateway_order_id: str | None = None,
        order_id: str | None = None,
    ) -> Order:

        order = Order(
            id=order_id or generate_order_id(),
            customer_name=customer.name,
            customer_phone=customer.phone,
            customer_email=customer.email,
            location=location,
            booking_date=booking_date,
            slot_id=slot_id,
            slot_label=slot_label,
            package=package,
            package_price=package_price,
            features=list(features),
            amount=amount,
            status=OrderStatus.PENDING,
            payment_session_id=payment_session_id,
            gateway_order_id=gateway_order_id,
        )

        self.db.add(order)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise PersistenceError(f"Could not persist order {order.id}") from exc

        return order

    def list_by_customer_phone(self, phone: str) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.customer_phone == phone)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_all(self, status: OrderStatus | None = None) -> list[Order]:
        stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
        if status is not None:
            stmt = stmt.where(Order.status == status)
        return list(self.db.execute(stmt).scalars().all())

    def count_confirmed_for_slot(
        self,
        booking_date: str,
        location: str,
        package: str | None,
        slot_id: str,
        exclude_order_id: str | None = None,
    ) -> int:
        package_clause = Order.package.is_(None) if package is None else Order.package == package
        stmt = (
            select(func.count(Order.id))
            .where(Order.booking_date == booking_date)
            .where(Order.location == location)
            .where(package_clause)
            .where(Order.slot_id == slot_id)
            .where(Order.status == OrderStatus.CONFIRMED)
        )
        if exclude_order_id is not None:
            stmt = stmt.where(Order.id != exclude_order_id)
        return self.db.execute(stmt).scalar_one()

    def update_status(
        self,
        order: Order,
        new_status: OrderStatus,
        *,
        paid_at: datetime | None = None,
        cancelled_at: datetime | None = None,
        cancellation_reason: str | None = None,
        payment_reference: str | None = None,
    ) -> Order:

        order.status = new_status
        if paid_at is not None:
            order.paid_at = paid_at
        if cancelled_at is not None:
            order.cancelled_at = cancelled_at
        if cancellation_reason is not None:
            order.cancellation_reason = cancellation_reason
        if payment_reference is not None:
            order.payment_reference = payment_reference
        self.db.flush()
        return order
