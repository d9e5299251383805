"""Fault registration and lookup for rented vehicles."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np

from rentsim.config.constants import FAULT_DESCRIPTIONS
from rentsim.fleet.vehicle import Vehicle


@dataclass(frozen=True)
class Fault:
    description: str      # One of FAULT_DESCRIPTIONS
    timestamp: datetime   # Start of the rental during which it occurred


class FaultModel:
    """Registers faults on vehicles and answers per-rental fault lookups.

    Descriptions are drawn from an injected RNG so a run is reproducible from
    its seed. Both operations mutate or read per-vehicle state: callers must
    hold ``vehicle.lock`` or run before the scheduler starts.
    """

    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._faulted: Dict[str, Vehicle] = {}

    def register_fault(self, vehicle: Vehicle, timestamp: datetime) -> Fault:
        """Append a fault with a random description and keep the list time-sorted."""
        description = FAULT_DESCRIPTIONS[int(self.rng.integers(len(FAULT_DESCRIPTIONS)))]
        fault = Fault(description=description, timestamp=timestamp)
        vehicle.faults.append(fault)
        vehicle.faults.sort(key=lambda f: f.timestamp)
        self._faulted[vehicle.vehicle_id] = vehicle
        return fault

    def lookup_fault(self, vehicle: Vehicle, timestamp: datetime) -> Optional[Fault]:
        """Return the fault registered exactly at ``timestamp``, if any."""
        for fault in vehicle.faults:
            if fault.timestamp == timestamp:
                return fault
            if fault.timestamp > timestamp:
                break
        return None

    def faults_by_vehicle(self) -> Dict[str, List[Fault]]:
        """Fault history of every vehicle that has at least one fault, by id."""
        return {
            vehicle_id: list(vehicle.faults)
            for vehicle_id, vehicle in sorted(self._faulted.items())
        }
