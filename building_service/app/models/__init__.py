from shared.models.profiles import Profile
from .address_approval.locations import County, Municipality, Settlement
from .address_approval.addresses import Address
from .building_inventory.buildings import Building
from .building_inventory.flats import Flat
from .flat_registration.flat_registration_requests import FlatRegistrationRequest

__all__ = [
    "Profile",
    "County",
    "Municipality",
    "Settlement",
    "Address",
    "Building",
    "Flat",
    "FlatRegistrationRequest",
]
