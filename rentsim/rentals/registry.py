"""Repository of vehicles, users and rentals for one simulation run."""

import bisect
import logging
from collections import defaultdict
from datetime import date, datetime
from itertools import groupby
from typing import Dict, List, Optional, Tuple

from rentsim.config.constants import DISCOUNT_EVERY_N_RENTALS
from rentsim.errors import DuplicateBookingError, UnknownVehicleTypeError
from rentsim.faults.fault_model import FaultModel
from rentsim.fleet.vehicle import Vehicle
from rentsim.rentals.rental import Rental, User

logger = logging.getLogger(__name__)

TimeGroup = Tuple[datetime, List[Rental]]
DayGroup = Tuple[date, List[TimeGroup]]


class RentalRegistry:
    """Holds the deduplicated rentals and the entities they reference.

    Lifecycle is one simulation run; the scheduler and its components receive
    the registry explicitly.
    """

    def __init__(self, vehicles: Dict[str, Vehicle], fault_model: Optional[FaultModel] = None):
        self.vehicles = dict(vehicles)
        self.fault_model = fault_model or FaultModel()
        self.users: Dict[str, User] = {}
        self.rentals: List[Rental] = []
        self._keys: set = set()
        self._starts_by_vehicle: Dict[str, List[datetime]] = defaultdict(list)

    def __len__(self) -> int:
        return len(self.rentals)

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        return self.vehicles.get(vehicle_id)

    def get_or_create_user(self, id_document: str, driver_license: str = "Unknown") -> User:
        user = self.users.get(id_document)
        if user is None:
            user = User(id_document, driver_license)
            self.users[id_document] = user
        return user

    def add_rental(self, rental: Rental) -> Rental:
        """Add a rental, registering its fault if one was pre-declared.

        Raises:
            DuplicateBookingError: the vehicle is already booked at this timestamp.
            UnknownVehicleTypeError: the rental references an unknown vehicle.
        """
        if rental.key in self._keys:
            raise DuplicateBookingError(
                f"Vehicle {rental.vehicle_id} already rented out at {rental.timestamp:%d.%m.%Y %H:%M}"
            )
        vehicle = self.vehicles.get(rental.vehicle_id)
        if vehicle is None:
            raise UnknownVehicleTypeError(f"Invalid vehicle ID: {rental.vehicle_id}")

        rental.user = self.get_or_create_user(rental.user.id_document, rental.user.driver_license)
        self._keys.add(rental.key)
        self.rentals.append(rental)
        bisect.insort(self._starts_by_vehicle[rental.vehicle_id], rental.timestamp)

        if rental.fault:
            self.fault_model.register_fault(vehicle, rental.timestamp)
        return rental

    def group_by_timestamp(self) -> List[TimeGroup]:
        """Rentals grouped by exact timestamp, ascending; feed order within a group."""
        ordered = sorted(self.rentals, key=lambda r: r.timestamp)  # stable
        return [(ts, list(group)) for ts, group in groupby(ordered, key=lambda r: r.timestamp)]

    def group_by_day_then_timestamp(self) -> List[DayGroup]:
        """Time-groups bucketed by calendar day, both levels ascending."""
        days: Dict[date, List[TimeGroup]] = {}
        for ts, rentals in self.group_by_timestamp():
            days.setdefault(ts.date(), []).append((ts, rentals))
        return sorted(days.items(), key=lambda item: item[0])

    def assign_discounts(self) -> int:
        """Flag every user's 10th, 20th, ... chronological rental for a discount.

        Resets all rent counters first, so the pass is idempotent.

        Returns:
            Number of rentals flagged.
        """
        for user in self.users.values():
            user.reset_rent_counter()

        flagged = 0
        for rental in sorted(self.rentals, key=lambda r: r.timestamp):
            rental.discount = False
            if rental.user.increment_rent_counter() % DISCOUNT_EVERY_N_RENTALS == 0:
                rental.discount = True
                flagged += 1

        logger.info(f"Discount assigned to {flagged} of {len(self.rentals)} rentals")
        return flagged

    def next_rental_start(self, rental: Rental) -> Optional[datetime]:
        """Earliest booking of the same vehicle strictly after ``rental`` starts."""
        starts = self._starts_by_vehicle.get(rental.vehicle_id, [])
        idx = bisect.bisect_right(starts, rental.timestamp)
        return starts[idx] if idx < len(starts) else None
