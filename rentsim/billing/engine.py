"""Rental pricing: area, discount and promo rules on top of a per-second rate."""

import logging
import threading
from pathlib import Path
from typing import Optional

from rentsim.billing.bill_record import Bill, write_bill
from rentsim.config.constants import AREA_NARROW, AREA_WIDE, NARROW_AREA_MAX, NARROW_AREA_MIN
from rentsim.config.schema import PricingConfig
from rentsim.errors import UnknownVehicleTypeError
from rentsim.fleet.vehicle import Vehicle
from rentsim.rentals.rental import Rental

logger = logging.getLogger(__name__)


def classify_area(rental: Rental) -> str:
    """Return "wide" if any start/goal coordinate lies outside the inner ring."""
    coords = rental.start + rental.goal
    if any(c < NARROW_AREA_MIN or c > NARROW_AREA_MAX for c in coords):
        return AREA_WIDE
    return AREA_NARROW


class BillingEngine:
    """Prices completed rentals and persists one bill file per rental.

    Bill ids increase monotonically across all worker threads.

    Args:
        pricing: Unit prices and factors.
        bills_dir: Where bill files go; ``None`` keeps bills in memory only.
        start_id: Last id already used; the first bill gets ``start_id + 1``.
    """

    def __init__(self, pricing: PricingConfig, bills_dir: Optional[Path] = None, start_id: int = 0):
        self.pricing = pricing
        self.bills_dir = Path(bills_dir) if bills_dir is not None else None
        self._last_id = start_id
        self._id_lock = threading.Lock()

    def _next_id(self) -> int:
        with self._id_lock:
            self._last_id += 1
            return self._last_id

    def base_price(self, rental: Rental, vehicle: Optional[Vehicle]) -> float:
        if vehicle is None:
            raise UnknownVehicleTypeError(f"Invalid vehicle ID: {rental.vehicle_id}")
        unit_price = self.pricing.unit_prices.get(vehicle.vehicle_type)
        if unit_price is None:
            raise UnknownVehicleTypeError(
                f"Invalid vehicle type for {vehicle.vehicle_id}: {vehicle.vehicle_type}"
            )
        return unit_price * rental.duration_s

    def compute_bill(self, rental: Rental, vehicle: Optional[Vehicle]) -> Bill:
        """Price ``rental``, assign a bill id and persist the bill.

        Faulted rentals are billed at zero. Discount and promo both apply to
        the area-adjusted price and do not compound.

        Raises:
            UnknownVehicleTypeError: the vehicle is missing or cannot be priced.
            PersistenceError: the bill file could not be written.
        """
        area = classify_area(rental)
        base = self.base_price(rental, vehicle)
        distance_factor = (
            self.pricing.distance_wide if area == AREA_WIDE else self.pricing.distance_narrow
        )
        discount_factor = self.pricing.discount_pct / 100.0 if rental.discount else 0.0
        promo_factor = self.pricing.promo_pct / 100.0 if rental.promo else 0.0

        if rental.fault:
            base = 0.0
            total = 0.0
        else:
            primary = base * distance_factor
            total = primary - discount_factor * primary - promo_factor * primary

        bill = Bill(
            bill_id=self._next_id(),
            area=area,
            vehicle_id=rental.vehicle_id,
            timestamp=rental.timestamp,
            fault=rental.fault,
            base_price=base,
            distance_factor=distance_factor,
            discount_factor=discount_factor,
            promo_factor=promo_factor,
            total_price=total,
        )

        if self.bills_dir is not None:
            write_bill(bill, self.bills_dir)
        logger.info(f"Bill {bill.bill_id} generated for vehicle {rental.vehicle_id}: {total:.2f}")
        return bill
