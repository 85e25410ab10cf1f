import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from slot_booking.application.booking_service import ledger_key_for
from slot_booking.domain.catalog import CATALOG, Catalog
from slot_booking.domain.ledger import LedgerKey
from slot_booking.domain.state_machine import OrderStatus
from slot_booking.infrastructure.db.models import Order
from slot_booking.infrastructure.repositories.order_repository import OrderRepository
from slot_booking.infrastructure.repositories.slot_ledger_repository import SlotLedgerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    key: LedgerKey
    slot_id: str


@dataclass
class ReconciliationReport:
    reserved: list[LedgerEntry] = field(default_factory=list)
    orphans: list[LedgerEntry] = field(default_factory=list)
    orphans_released: bool = False

    @property
    def consistent(self) -> bool:
        return not self.reserved and not self.orphans


@dataclass
class CustomerSummary:
    phone: str
    name: str
    email: str | None
    order_count: int = 0
    confirmed_count: int = 0
    total_spent: int = 0
    last_order_at: datetime | None = None


class AdminService:
    """Read models and maintenance operations behind the admin API."""

    def __init__(self, db: Session, catalog: Catalog = CATALOG):
        self.db = db
        self.catalog = catalog
        self.order_repository = OrderRepository(db)
        self.slot_ledger = SlotLedgerRepository(db)

    def list_orders(self, status: OrderStatus | None = None) -> list[Order]:
        return self.order_repository.list_all(status)

    def list_customers(self) -> list[CustomerSummary]:
        customers: dict[str, CustomerSummary] = {}
        # Newest first, so the first order seen carries the latest contact details.
        for order in self.order_repository.list_all():
            summary = customers.get(order.customer_phone)
            if summary is None:
                summary = CustomerSummary(
                    phone=order.customer_phone,
                    name=order.customer_name,
                    email=order.customer_email,
                    last_order_at=order.created_at,
                )
                customers[order.customer_phone] = summary
            summary.order_count += 1
            if order.status == OrderStatus.CONFIRMED:
                summary.confirmed_count += 1
                summary.total_spent += order.amount
        return list(customers.values())

    def stats(self, active_otps: int = 0) -> dict:
        orders = self.order_repository.list_all()
        by_status = {status: 0 for status in OrderStatus}
        location_stats = {name: 0 for name in self.catalog.location_names()}
        package_stats = {name: 0 for name in self.catalog.package_names()}
        revenue = 0

        for order in orders:
            by_status[order.status] += 1
            if order.status == OrderStatus.CONFIRMED:
                revenue += order.amount
            if order.location in location_stats:
                location_stats[order.location] += 1
            if order.package in package_stats:
                package_stats[order.package] += 1

        return {
            "total_orders": len(orders),
            "confirmed_orders": by_status[OrderStatus.CONFIRMED],
            "pending_orders": by_status[OrderStatus.PENDING],
            "cancelled_orders": by_status[OrderStatus.CANCELLED],
            "failed_orders": by_status[OrderStatus.FAILED],
            "total_revenue": revenue,
            "total_customers": len({order.customer_phone for order in orders}),
            "active_otps": active_otps,
            "location_stats": location_stats,
            "package_stats": package_stats,
        }

    def ledger_snapshot(self) -> list[tuple[LedgerKey, list[str]]]:
        return self.slot_ledger.all_reservations()

    def reconcile_ledger(self, release_orphans: bool = False) -> ReconciliationReport:
        """
        Bring the slot ledger back in line with confirmed orders.

        Missing reservations for confirmed orders are always added. Ledger
        members with no confirmed order behind them are reported, and removed
        only when release_orphans is set.
        """
        report = ReconciliationReport(orphans_released=release_orphans)
        expected: dict[LedgerKey, set[str]] = {}

        for order in self.order_repository.list_all(OrderStatus.CONFIRMED):
            key = ledger_key_for(order)
            expected.setdefault(key, set()).add(order.slot_id)
            if self.slot_ledger.reserve(key, order.slot_id):
                report.reserved.append(LedgerEntry(key=key, slot_id=order.slot_id))

        for key, slot_ids in self.slot_ledger.all_reservations():
            for slot_id in slot_ids:
                if slot_id in expected.get(key, set()):
                    continue
                report.orphans.append(LedgerEntry(key=key, slot_id=slot_id))
                if release_orphans:
                    self.slot_ledger.release(key, slot_id)

        if report.consistent:
            logger.info("Slot ledger reconciliation found no drift")
        else:
            logger.warning(
                "Slot ledger reconciliation reserved=%s orphans=%s released=%s",
                len(report.reserved),
                len(report.orphans),
                release_orphans,
            )
        return report
