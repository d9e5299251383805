"""Vehicle dataclass representing a single shared vehicle in the fleet."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from rentsim.faults.fault_model import Fault


@dataclass(eq=False)
class Vehicle:
    vehicle_id: str
    vehicle_type: str             # "car", "bicycle" or "scooter"
    manufacturer: str
    model: str
    purchase_price: float
    battery_level: int = 100      # Percent, mutated only under ``lock``
    autonomy: Optional[int] = None        # Bicycles: grid steps per charge
    max_speed: Optional[int] = None       # Scooters
    purchase_date: Optional[date] = None  # Cars
    description: str = ""                 # Cars
    faults: List["Fault"] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def set_battery(self, level: int) -> None:
        self.battery_level = max(0, min(100, int(level)))

    def summary(self) -> str:
        extra = {
            "car": f"description: {self.description}",
            "bicycle": f"autonomy: {self.autonomy}",
            "scooter": f"max speed: {self.max_speed}",
        }.get(self.vehicle_type, "")
        return (
            f"{self.vehicle_type} {self.vehicle_id} ({self.manufacturer} {self.model}, "
            f"{extra}, battery {self.battery_level}%)"
        )
