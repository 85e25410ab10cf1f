from slot_booking.application.admin_service import AdminService
from slot_booking.application.booking_service import BookingSelection
from slot_booking.domain.customer import CustomerDetails
from slot_booking.domain.ledger import LedgerKey
from slot_booking.domain.state_machine import OrderStatus, TransitionSource
from slot_booking.infrastructure.repositories.order_repository import OrderRepository
from slot_booking.infrastructure.repositories.slot_ledger_repository import SlotLedgerRepository

DATE = "2026-11-01"
GOLD_KEY = LedgerKey.for_booking(DATE, "Surat", "Gold")


def _confirmed(booking_service, customer, slot_id="slot-2", package="Gold", location="Surat"):
    order = booking_service.create_order(
        customer,
        BookingSelection(location=location, date=DATE, slot_id=slot_id, package=package),
    )
    return booking_service.confirm_order(order.id, TransitionSource.WEBHOOK)


def test_reconcile_consistent_ledger(booking_service, customer, db_session):
    _confirmed(booking_service, customer)

    report = AdminService(db_session).reconcile_ledger()

    assert report.consistent
    assert report.reserved == []
    assert report.orphans == []


def test_reconcile_restores_missing_reservation(booking_service, customer, db_session):
    order = _confirmed(booking_service, customer)
    SlotLedgerRepository(db_session).release(GOLD_KEY, order.slot_id)

    report = AdminService(db_session).reconcile_ledger()

    assert not report.consistent
    assert [(entry.key, entry.slot_id) for entry in report.reserved] == [(GOLD_KEY, "slot-2")]
    assert SlotLedgerRepository(db_session).booked_slot_ids(GOLD_KEY) == {"slot-2"}


def test_reconcile_reports_orphans_without_releasing(db_session):
    SlotLedgerRepository(db_session).reserve(GOLD_KEY, "slot-4")

    report = AdminService(db_session).reconcile_ledger()

    assert [(entry.key, entry.slot_id) for entry in report.orphans] == [(GOLD_KEY, "slot-4")]
    assert report.orphans_released is False
    assert SlotLedgerRepository(db_session).booked_slot_ids(GOLD_KEY) == {"slot-4"}


def test_reconcile_releases_orphans_on_request(db_session):
    SlotLedgerRepository(db_session).reserve(GOLD_KEY, "slot-4")

    report = AdminService(db_session).reconcile_ledger(release_orphans=True)

    assert report.orphans_released is True
    assert SlotLedgerRepository(db_session).booked_slot_ids(GOLD_KEY) == set()
    assert AdminService(db_session).reconcile_ledger().consistent


def test_reconcile_after_admin_resurrection(booking_service, customer, db_session):
    order = _confirmed(booking_service, customer)
    booking_service.admin_set_status(order.id, OrderStatus.CANCELLED)
    booking_service.admin_set_status(order.id, OrderStatus.CONFIRMED)

    report = AdminService(db_session).reconcile_ledger()

    assert [entry.slot_id for entry in report.reserved] == ["slot-2"]
    assert SlotLedgerRepository(db_session).booked_slot_ids(GOLD_KEY) == {"slot-2"}


def test_stats(booking_service, customer, db_session):
    _confirmed(booking_service, customer)
    _confirmed(booking_service, CustomerDetails(name="Ravi", phone="9999999999"), location="Rajkot")
    pending = booking_service.create_order(
        customer,
        BookingSelection(location="Surat", date=DATE, slot_id="slot-3", package="Silver"),
    )
    booking_service.cancel_order(pending.id, customer.phone)

    stats = AdminService(db_session).stats(active_otps=2)

    assert stats["total_orders"] == 3
    assert stats["confirmed_orders"] == 2
    assert stats["cancelled_orders"] == 1
    assert stats["pending_orders"] == 0
    assert stats["total_revenue"] == 2499 + 3200
    assert stats["total_customers"] == 2
    assert stats["active_otps"] == 2
    assert stats["location_stats"]["Surat"] == 2
    assert stats["location_stats"]["Rajkot"] == 1
    assert stats["location_stats"]["Junagadh"] == 0
    assert stats["package_stats"] == {"Silver": 1, "Gold": 2, "Platinum": 0}


def test_list_customers(booking_service, customer, db_session):
    _confirmed(booking_service, customer)
    booking_service.create_order(
        customer,
        BookingSelection(location="Surat", date=DATE, slot_id="slot-3", package="Silver"),
    )

    customers = AdminService(db_session).list_customers()

    assert len(customers) == 1
    assert customers[0].phone == customer.phone
    assert customers[0].order_count == 2
    assert customers[0].confirmed_count == 1
    assert customers[0].total_spent == 2499


def test_list_orders_by_status(booking_service, customer, db_session):
    _confirmed(booking_service, customer)
    booking_service.create_order(
        customer,
        BookingSelection(location="Surat", date=DATE, slot_id="slot-3", package="Silver"),
    )

    service = AdminService(db_session)

    assert len(service.list_orders()) == 2
    assert len(service.list_orders(OrderStatus.PENDING)) == 1


def test_ledger_snapshot(booking_service, customer, db_session):
    _confirmed(booking_service, customer)
    legacy = OrderRepository(db_session).create_order(
        customer=customer,
        location="Surat",
        booking_date=DATE,
        slot_id="slot-6",
        slot_label="9:00 PM - 11:00 PM",
        package=None,
        package_price=1999,
        features=[],
        amount=1999,
    )
    booking_service.confirm_order(legacy.id, TransitionSource.ADMIN_ACTION)

    snapshot = dict(AdminService(db_session).ledger_snapshot())

    assert snapshot == {GOLD_KEY: ["slot-2"], GOLD_KEY.coarse(): ["slot-6"]}
