# slot_booking/domain/ledger.py
"""
Slot ledger keys.

A reservation set is addressed by (date, location, scope). The scope is either
a single package tier or the legacy global scope, which blocks a slot for
every package at that date and location.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple, Union

from slot_booking.domain.exceptions import ValidationError


@dataclass(frozen=True)
class PackageScope:
    package: str


@dataclass(frozen=True)
class GlobalScope:
    pass


LedgerScope = Union[PackageScope, GlobalScope]


@dataclass(frozen=True)
class LedgerKey:
    date: str
    location: str
    scope: LedgerScope

    @classmethod
    def for_booking(
        cls,
        date: str,
        location: str,
        package: Optional[str] = None,
    ) -> "LedgerKey":
        scope: LedgerScope = PackageScope(package) if package else GlobalScope()
        return cls(date=date, location=location, scope=scope)

    @property
    def is_global(self) -> bool:
        return isinstance(self.scope, GlobalScope)

    @property
    def package(self) -> Optional[str]:
        if isinstance(self.scope, PackageScope):
            return self.scope.package
        return None

    def coarse(self) -> "LedgerKey":
        return LedgerKey(date=self.date, location=self.location, scope=GlobalScope())

    def lookup_keys(self) -> Tuple["LedgerKey", ...]:
        """Keys whose sets block a slot for this key: its own, then the global one."""
        if self.is_global:
            return (self,)
        return (self, self.coarse())


def normalize_booking_date(value: str) -> str:
    """Canonical YYYY-MM-DD form of a booking date."""
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date().isoformat()
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value}") from exc
