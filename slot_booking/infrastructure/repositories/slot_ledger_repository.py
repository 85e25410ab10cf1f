# slot_booking/infrastructure/repositories/slot_ledger_repository.py
"""
Slot ledger persistence.

Every write is a single set-style statement at the storage layer
(insert-or-ignore to add, delete to remove) so concurrent confirmations
under the same key never lose each other's members.
"""

import logging
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from slot_booking.domain.exceptions import PersistenceError
from slot_booking.domain.ledger import GlobalScope, LedgerKey, PackageScope
from slot_booking.infrastructure.db.models import (
    GLOBAL_SCOPE_PACKAGE,
    ReservedSlot,
    SlotReservation,
)
from slot_booking.infrastructure.db.session import dialect_name

logger = logging.getLogger(__name__)


def _package_column(key: LedgerKey) -> str:
    return key.package if key.package else GLOBAL_SCOPE_PACKAGE


def _key_from_record(record: SlotReservation) -> LedgerKey:
    scope = PackageScope(record.package) if record.package else GlobalScope()
    return LedgerKey(date=record.booking_date, location=record.location, scope=scope)


class SlotLedgerRepository:

    def __init__(self, db: Session):
        self.db = db
        self._dialect = dialect_name(db)

    def _insert(self, model):
        if self._dialect == "postgresql":
            return pg_insert(model)
        if self._dialect == "sqlite":
            return sqlite_insert(model)
        raise PersistenceError(f"Slot ledger does not support dialect {self._dialect}")

    def _record_stmt(self, key: LedgerKey):
        return (
            select(SlotReservation.id)
            .where(SlotReservation.booking_date == key.date)
            .where(SlotReservation.location == key.location)
            .where(SlotReservation.package == _package_column(key))
        )

    def _record_id(self, key: LedgerKey) -> str | None:
        return self.db.execute(self._record_stmt(key)).scalar_one_or_none()

    def lock(self, key: LedgerKey) -> str | None:
        """
        SELECT ... FOR UPDATE on the reservation record for key.
        Held until commit, so reserve and release under one key are serialized.
        Returns None when the key has never been reserved.
        """
        stmt = self._record_stmt(key).with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def _ensure_record(self, key: LedgerKey) -> str:
        stmt = (
            self._insert(SlotReservation)
            .values(
                id=str(uuid4()),
                booking_date=key.date,
                location=key.location,
                package=_package_column(key),
                created_at=datetime.now(timezone.utc),
            )
            .on_conflict_do_nothing(
                index_elements=["booking_date", "location", "package"],
            )
        )
        self.db.execute(stmt)

        record_id = self.lock(key)
        if record_id is None:
            raise PersistenceError(f"Reservation record missing after upsert for {key}")
        return record_id

    def reserve(self, key: LedgerKey, slot_id: str) -> bool:
        """
        Add slot_id to the set for key. Returns True when it was not already present.
        """
        record_id = self._ensure_record(key)
        stmt = (
            self._insert(ReservedSlot)
            .values(
                id=str(uuid4()),
                reservation_id=record_id,
                slot_id=slot_id,
                created_at=datetime.now(timezone.utc),
            )
            .on_conflict_do_nothing(index_elements=["reservation_id", "slot_id"])
        )
        added = self.db.execute(stmt).rowcount == 1
        logger.debug("Ledger reserve key=%s slot=%s added=%s", key, slot_id, added)
        return added

    def release(self, key: LedgerKey, slot_id: str) -> bool:
        """
        Remove slot_id from the set for key. Returns True when it was present.
        """
        record_id = self._record_id(key)
        if record_id is None:
            return False

        stmt = (
            delete(ReservedSlot)
            .where(ReservedSlot.reservation_id == record_id)
            .where(ReservedSlot.slot_id == slot_id)
            .execution_options(synchronize_session=False)
        )
        removed = self.db.execute(stmt).rowcount > 0
        logger.debug("Ledger release key=%s slot=%s removed=%s", key, slot_id, removed)
        return removed

    def booked_slot_ids(self, key: LedgerKey) -> set[str]:
        stmt = (
            select(ReservedSlot.slot_id)
            .join(SlotReservation, ReservedSlot.reservation_id == SlotReservation.id)
            .where(SlotReservation.booking_date == key.date)
            .where(SlotReservation.location == key.location)
            .where(SlotReservation.package == _package_column(key))
        )
        return set(self.db.execute(stmt).scalars().all())

    def is_reserved(self, key: LedgerKey, slot_id: str) -> bool:
        stmt = (
            select(ReservedSlot.id)
            .join(SlotReservation, ReservedSlot.reservation_id == SlotReservation.id)
            .where(SlotReservation.booking_date == key.date)
            .where(SlotReservation.location == key.location)
            .where(SlotReservation.package == _package_column(key))
            .where(ReservedSlot.slot_id == slot_id)
        )
        return self.db.execute(stmt).first() is not None

    def is_available(
        self,
        date: str,
        location: str,
        package: str | None,
        slot_id: str,
    ) -> bool:
        key = LedgerKey.for_booking(date, location, package)
        return not any(self.is_reserved(k, slot_id) for k in key.lookup_keys())

    def booked_map(self, date: str, location: str) -> tuple[dict[str, list[str]], list[str]]:
        """
        Booked slot ids for a date and location: per package, plus the global set.
        """
        stmt = (
            select(SlotReservation.package, ReservedSlot.slot_id)
            .join(ReservedSlot, ReservedSlot.reservation_id == SlotReservation.id)
            .where(SlotReservation.booking_date == date)
            .where(SlotReservation.location == location)
            .order_by(SlotReservation.package, ReservedSlot.slot_id)
        )
        per_package: dict[str, list[str]] = {}
        global_ids: list[str] = []
        for package, slot_id in self.db.execute(stmt).all():
            if package == GLOBAL_SCOPE_PACKAGE:
                global_ids.append(slot_id)
            else:
                per_package.setdefault(package, []).append(slot_id)
        return per_package, global_ids

    def all_reservations(self) -> list[tuple[LedgerKey, list[str]]]:
        stmt = (
            select(SlotReservation, ReservedSlot.slot_id)
            .outerjoin(ReservedSlot, ReservedSlot.reservation_id == SlotReservation.id)
            .order_by(
                SlotReservation.booking_date,
                SlotReservation.location,
                SlotReservation.package,
                ReservedSlot.slot_id,
            )
        )
        grouped: dict[str, tuple[LedgerKey, list[str]]] = {}
        for record, slot_id in self.db.execute(stmt).all():
            entry = grouped.setdefault(record.id, (_key_from_record(record), []))
            if slot_id is not None:
                entry[1].append(slot_id)
        return list(grouped.values())
