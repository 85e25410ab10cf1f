from fastapi import APIRouter, HTTPException, status

from slot_booking.api.schemas.schemas import (
    LocationOut,
    LocationsResponse,
    PackageOut,
    PackagesResponse,
)
from slot_booking.domain.catalog import CATALOG
from slot_booking.domain.exceptions import UnknownLocationError

router = APIRouter(prefix="/api", tags=["catalog"])


@router.get("/locations", response_model=LocationsResponse)
def list_locations():
    return LocationsResponse(
        locations=[LocationOut.from_location(location) for location in CATALOG.locations]
    )


@router.get("/packages/{location}", response_model=PackagesResponse)
def list_packages(location: str):
    try:
        found = CATALOG.get_location(location)
    except UnknownLocationError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Location not found. Available locations: {', '.join(CATALOG.location_names())}",
        ) from exc

    return PackagesResponse(
        location=found.name,
        contact=found.contact,
        address=found.address,
        packages={name: PackageOut.from_package(package) for name, package in found.packages.items()},
    )
