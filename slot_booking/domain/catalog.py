# slot_booking/domain/catalog.py
"""
Static venue catalog: locations, their package tiers, and the daily slot grid.

The catalog is reference data. Orders copy price and features out of it at
creation time, so edits here never touch existing orders.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from slot_booking.domain.exceptions import (
    InvalidSlotError,
    UnknownLocationError,
    UnknownPackageError,
)


@dataclass(frozen=True)
class Package:
    name: str
    price: int
    features: Tuple[str, ...]
    popular: bool = False


@dataclass(frozen=True)
class Location:
    name: str
    contact: str
    address: str
    packages: Dict[str, Package] = field(default_factory=dict)


@dataclass(frozen=True)
class TimeSlot:
    id: str
    label: str
    start: str
    end: str


class Catalog:

    def __init__(self, locations: List[Location], time_slots: List[TimeSlot]):
        self._locations = {location.name: location for location in locations}
        self._time_slots = list(time_slots)
        self._slots_by_id = {slot.id: slot for slot in time_slots}

    @property
    def locations(self) -> List[Location]:
        return list(self._locations.values())

    @property
    def time_slots(self) -> List[TimeSlot]:
        return list(self._time_slots)

    def location_names(self) -> List[str]:
        return list(self._locations)

    def get_location(self, name: str) -> Location:
        location = self._locations.get(name)
        if location is None:
            raise UnknownLocationError(name)
        return location

    def get_package(self, location_name: str, package_name: str) -> Package:
        location = self.get_location(location_name)
        package = location.packages.get(package_name)
        if package is None:
            raise UnknownPackageError(location_name, package_name)
        return package

    def get_time_slot(self, slot_id: str) -> TimeSlot:
        slot = self._slots_by_id.get(slot_id)
        if slot is None:
            raise InvalidSlotError(slot_id)
        return slot

    def package_names(self) -> List[str]:
        names: List[str] = []
        for location in self._locations.values():
            for name in location.packages:
                if name not in names:
                    names.append(name)
        return names


_SILVER = Package(
    name="Silver",
    price=1999,
    features=(
        "Private Theatre",
        "3 types of beautiful decorations",
        "12 person capacity",
    ),
)

_PLATINUM = Package(
    name="Platinum",
    price=3200,
    features=(
        "Exclusive Private Theatre",
        "3 types of beautiful decorations",
        "Rose entry or Fog Entry",
        "Bubble entry",
        "Cake",
    ),
)

_GOLD = Package(
    name="Gold",
    price=2499,
    popular=True,
    features=(
        "Private Theatre",
        "3 types of beautiful decoration",
        "Cake",
        "Smoke entry",
    ),
)


LOCATIONS: List[Location] = [
    Location(
        name="Surat",
        contact="7984003900",
        address="Second floor, 2001 shop no 2nd floor, Event Flix, Veneziano Mall, Vesu, Surat, Gujarat 395007",
        packages={"Silver": _SILVER, "Gold": _GOLD, "Platinum": _PLATINUM},
    ),
    Location(
        name="Ahmedabad",
        contact="9409495788",
        address="Aarya Apoch, 311, Vijay Cross Rd, Navrangpura, Ahmedabad, Gujarat 380009",
        packages={"Silver": _SILVER, "Gold": _GOLD, "Platinum": _PLATINUM},
    ),
    Location(
        name="Rajkot",
        contact="7984003900",
        address="Event Flix, 4th Floor, KTM Showroom Complex, Amin Marg, 150 Feet Ring Rd, Rajkot, Gujarat 360001",
        packages={
            "Silver": Package(
                name="Silver",
                price=1999,
                features=("Private Theatre", "3 types of beautiful decoration"),
            ),
            "Gold": Package(
                name="Gold",
                price=3200,
                popular=True,
                features=(
                    "Exclusive Private Theatre",
                    "3 types of decoration",
                    "Cake",
                    "Rose or Fog entry",
                    "Bubble entry",
                ),
            ),
        },
    ),
    Location(
        name="Junagadh",
        contact="7621840803",
        address="2nd Floor, Event Flix, Krishna Complex, Near Reliance Digital, Madhuvan Society, Vishnu Colony, Junagadh, Gujarat 362002",
        packages={
            "Silver": _SILVER,
            "Gold": Package(
                name="Gold",
                price=2999,
                popular=True,
                features=(
                    "Private Theatre",
                    "3 types of beautiful decoration",
                    "Cake",
                    "Rose entry",
                ),
            ),
            "Platinum": Package(
                name="Platinum",
                price=3499,
                features=(
                    "Exclusive Private Theatre",
                    "3 types of beautiful decorations",
                    "Fog Entry",
                    "Bubble entry",
                    "Cake",
                ),
            ),
        },
    ),
]

TIME_SLOTS: List[TimeSlot] = [
    TimeSlot(id="slot-1", label="11:00 AM - 1:00 PM", start="11:00", end="13:00"),
    TimeSlot(id="slot-2", label="1:00 PM - 3:00 PM", start="13:00", end="15:00"),
    TimeSlot(id="slot-3", label="3:00 PM - 5:00 PM", start="15:00", end="17:00"),
    TimeSlot(id="slot-4", label="5:00 PM - 7:00 PM", start="17:00", end="19:00"),
    TimeSlot(id="slot-5", label="7:00 PM - 9:00 PM", start="19:00", end="21:00"),
    TimeSlot(id="slot-6", label="9:00 PM - 11:00 PM", start="21:00", end="23:00"),
]

CATALOG = Catalog(LOCATIONS, TIME_SLOTS)
