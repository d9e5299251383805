"""Worst repair loss per vehicle type."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from rentsim.billing.bill_record import Bill
from rentsim.config.constants import VEHICLE_TYPES
from rentsim.config.schema import RepairConfig
from rentsim.fleet.vehicle import Vehicle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LossRecord:
    vehicle_type: str
    loss: float = 0.0                       # Repair coefficient x purchase price
    vehicle_id: Optional[str] = None        # None when no faulted rental of this type
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    purchase_price: Optional[float] = None


def analyze_losses(
    bills: List[Bill], vehicles: Dict[str, Vehicle], repair: RepairConfig,
) -> Dict[str, LossRecord]:
    """Find, per vehicle type, the faulted rental with the largest repair cost.

    Bills are scanned in ledger order and only a strictly greater loss replaces
    the current maximum, so ties keep the earliest bill.

    Returns:
        Mapping of every known vehicle type to its worst loss record.
    """
    worst: Dict[str, LossRecord] = {vtype: LossRecord(vtype) for vtype in VEHICLE_TYPES}

    for bill in bills:
        if not bill.fault:
            continue
        vehicle = vehicles.get(bill.vehicle_id)
        if vehicle is None:
            logger.warning(f"Loss analysis: unknown vehicle {bill.vehicle_id} on bill {bill.bill_id}")
            continue
        coefficient = repair.repair_coefficients.get(vehicle.vehicle_type)
        if coefficient is None:
            logger.warning(f"Loss analysis: no repair coefficient for {vehicle.vehicle_type}")
            continue

        loss = coefficient * vehicle.purchase_price
        current = worst.get(vehicle.vehicle_type)
        if current is None or loss > current.loss:
            worst[vehicle.vehicle_type] = LossRecord(
                vehicle_type=vehicle.vehicle_type,
                loss=loss,
                vehicle_id=vehicle.vehicle_id,
                manufacturer=vehicle.manufacturer,
                model=vehicle.model,
                purchase_price=vehicle.purchase_price,
            )

    for record in worst.values():
        if record.vehicle_id is not None:
            logger.info(
                f"Largest {record.vehicle_type} loss: {record.vehicle_id} "
                f"({record.manufacturer} {record.model}) {record.loss:.2f}"
            )
    return worst
