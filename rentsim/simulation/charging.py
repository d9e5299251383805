"""Battery charging between consecutive rentals of a vehicle."""

import logging
from datetime import datetime
from typing import Optional

from rentsim.config.constants import BATTERY_FULL, CHARGE_RATE_PER_MINUTE
from rentsim.fleet.vehicle import Vehicle

logger = logging.getLogger(__name__)


class ChargingModel:
    """Charges at a fixed rate per elapsed minute, capped at a full battery."""

    def __init__(self, rate_per_minute: int = CHARGE_RATE_PER_MINUTE):
        self.rate_per_minute = rate_per_minute

    def charge_until_next(
        self,
        vehicle: Vehicle,
        rental_end: datetime,
        next_rental_start: Optional[datetime],
    ) -> int:
        """Charge ``vehicle`` for the gap before its next booking.

        Without a next booking the vehicle returns to the depot fully charged.
        Only whole minutes count; a next booking that starts before this rental
        ends adds nothing.

        Returns:
            The new battery level.
        """
        if next_rental_start is None:
            vehicle.set_battery(BATTERY_FULL)
            logger.info(f"No further rentals for vehicle {vehicle.vehicle_id}, battery set to 100%")
            return vehicle.battery_level

        minutes = max(0, int((next_rental_start - rental_end).total_seconds() // 60))
        vehicle.set_battery(min(BATTERY_FULL, vehicle.battery_level + minutes * self.rate_per_minute))
        logger.info(
            f"Vehicle {vehicle.vehicle_id} charged for {minutes} min before "
            f"{next_rental_start:%d.%m.%Y %H:%M}: battery {vehicle.battery_level}%"
        )
        return vehicle.battery_level
