from slot_booking.domain.ledger import LedgerKey
from slot_booking.infrastructure.repositories.slot_ledger_repository import SlotLedgerRepository

DATE = "2026-11-01"


def test_reserve_is_set_insertion(db_session):
    ledger = SlotLedgerRepository(db_session)
    key = LedgerKey.for_booking(DATE, "Surat", "Gold")

    assert ledger.reserve(key, "slot-2") is True
    assert ledger.reserve(key, "slot-2") is False
    assert ledger.reserve(key, "slot-3") is True

    assert ledger.booked_slot_ids(key) == {"slot-2", "slot-3"}


def test_release_removes_member_but_keeps_record(db_session):
    ledger = SlotLedgerRepository(db_session)
    key = LedgerKey.for_booking(DATE, "Surat", "Gold")
    ledger.reserve(key, "slot-2")

    assert ledger.release(key, "slot-2") is True
    assert ledger.release(key, "slot-2") is False
    assert ledger.booked_slot_ids(key) == set()
    assert ledger.all_reservations() == [(key, [])]


def test_release_of_unknown_key_is_a_noop(db_session):
    ledger = SlotLedgerRepository(db_session)

    assert ledger.release(LedgerKey.for_booking(DATE, "Surat", "Gold"), "slot-1") is False


def test_lock_returns_record_only_once_reserved(db_session):
    ledger = SlotLedgerRepository(db_session)
    key = LedgerKey.for_booking(DATE, "Surat", "Gold")

    assert ledger.lock(key) is None

    ledger.reserve(key, "slot-2")
    record_id = ledger.lock(key)
    ledger.release(key, "slot-2")

    assert record_id is not None
    assert ledger.lock(key) == record_id


def test_package_scopes_do_not_block_each_other(db_session):
    ledger = SlotLedgerRepository(db_session)
    ledger.reserve(LedgerKey.for_booking(DATE, "Surat", "Gold"), "slot-2")

    assert not ledger.is_available(DATE, "Surat", "Gold", "slot-2")
    assert ledger.is_available(DATE, "Surat", "Silver", "slot-2")
    assert ledger.is_available(DATE, "Ahmedabad", "Gold", "slot-2")
    assert ledger.is_available("2026-11-02", "Surat", "Gold", "slot-2")


def test_global_scope_blocks_every_package(db_session):
    ledger = SlotLedgerRepository(db_session)
    ledger.reserve(LedgerKey.for_booking(DATE, "Surat", None), "slot-4")

    assert not ledger.is_available(DATE, "Surat", "Silver", "slot-4")
    assert not ledger.is_available(DATE, "Surat", "Gold", "slot-4")
    assert not ledger.is_available(DATE, "Surat", None, "slot-4")
    assert ledger.is_available(DATE, "Surat", "Gold", "slot-5")


def test_package_reservation_does_not_block_global_scope(db_session):
    ledger = SlotLedgerRepository(db_session)
    ledger.reserve(LedgerKey.for_booking(DATE, "Surat", "Gold"), "slot-4")

    assert ledger.is_available(DATE, "Surat", None, "slot-4")


def test_booked_map_splits_package_and_global_sets(db_session):
    ledger = SlotLedgerRepository(db_session)
    ledger.reserve(LedgerKey.for_booking(DATE, "Surat", "Gold"), "slot-3")
    ledger.reserve(LedgerKey.for_booking(DATE, "Surat", "Gold"), "slot-1")
    ledger.reserve(LedgerKey.for_booking(DATE, "Surat", "Silver"), "slot-2")
    ledger.reserve(LedgerKey.for_booking(DATE, "Surat", None), "slot-6")
    ledger.reserve(LedgerKey.for_booking(DATE, "Rajkot", "Gold"), "slot-5")

    per_package, global_ids = ledger.booked_map(DATE, "Surat")

    assert per_package == {"Gold": ["slot-1", "slot-3"], "Silver": ["slot-2"]}
    assert global_ids == ["slot-6"]


def test_reservations_visible_across_sessions_after_commit(session_factory):
    key = LedgerKey.for_booking(DATE, "Surat", "Gold")

    writer = session_factory()
    SlotLedgerRepository(writer).reserve(key, "slot-2")
    writer.commit()
    writer.close()

    reader = session_factory()
    try:
        assert SlotLedgerRepository(reader).reserve(key, "slot-2") is False
        assert SlotLedgerRepository(reader).booked_slot_ids(key) == {"slot-2"}
    finally:
        reader.close()
