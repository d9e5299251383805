"""Step-by-step movement and battery model for one rental.

The route is Manhattan: X axis first, one grid cell per step, then Y. Battery
decays linearly with steps taken:

    battery(s) = max(5, 100 - s * 33 // N)

with N = |dx| + |dy|. Bicycles drop to the floor once ``s`` reaches their
autonomy. A battery below 15% removes the vehicle from the grid; a
pre-declared fault stops it after the X phase.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple

from rentsim.config.constants import (
    BATTERY_DRAIN_PER_ROUTE,
    BATTERY_FLOOR,
    BATTERY_FULL,
    LOW_BATTERY_THRESHOLD,
)
from rentsim.errors import SimulationAbortError, SimulationCancelledError
from rentsim.faults.fault_model import Fault, FaultModel
from rentsim.fleet.vehicle import Vehicle
from rentsim.rentals.rental import Rental

logger = logging.getLogger(__name__)

# Movement states
ROUTING_X = "routing_x"
ROUTING_Y = "routing_y"
FINISHED = "finished"
LOW_BATTERY = "low_battery"
FAULTED = "faulted"

# Position update statuses
STATUS_MOVING = "moving"
STATUS_REMOVED = "low-battery-removed"
STATUS_FAULTED = "faulted"
STATUS_FINISHED = "finished"


@dataclass(frozen=True)
class PositionUpdate:
    vehicle_id: str
    position: Tuple[int, int]
    battery: int
    status: str       # One of the STATUS_* values


@dataclass(frozen=True)
class MovementOutcome:
    rental: Rental
    state: str                    # FINISHED, LOW_BATTERY or FAULTED
    battery: int
    position: Tuple[int, int]
    steps_taken: int
    fault: Optional[Fault] = None

    @property
    def completed(self) -> bool:
        return self.state == FINISHED

    @property
    def aborted(self) -> bool:
        return self.state in (LOW_BATTERY, FAULTED)


Observer = Callable[[PositionUpdate], None]


def battery_at(steps_taken: int, n_steps: int, vehicle: Vehicle) -> int:
    """Battery percentage after ``steps_taken`` of ``n_steps``."""
    if vehicle.vehicle_type == "bicycle" and vehicle.autonomy is not None:
        if steps_taken >= vehicle.autonomy:
            return BATTERY_FLOOR
    if n_steps <= 0:
        return BATTERY_FULL
    return max(BATTERY_FLOOR, BATTERY_FULL - steps_taken * BATTERY_DRAIN_PER_ROUTE // n_steps)


def step_duration_ms(duration_s: int, n_steps: int, vehicle: Vehicle) -> int:
    """Milliseconds spent on each grid step.

    Scooters are additionally capped at ``max_speed * 1000 // n_steps``.
    Returns 0 for a zero-step route.
    """
    if n_steps <= 0:
        return 0
    per_step = duration_s * 1000 // n_steps
    if vehicle.vehicle_type == "scooter" and vehicle.max_speed is not None:
        per_step = min(per_step, vehicle.max_speed * 1000 // n_steps)
    return per_step


def _axis(start: int, goal: int) -> Iterator[int]:
    """Cells visited moving from ``start`` to ``goal``, start excluded."""
    step = 1 if goal >= start else -1
    return iter(range(start + step, goal + step, step))


def _log_update(update: PositionUpdate) -> None:
    logger.debug(
        f"Vehicle {update.vehicle_id} {update.status} at {update.position}, "
        f"battery {update.battery}%"
    )


class VehicleMovementSimulator:
    """Runs the movement state machine for a rental and reports positions.

    Args:
        fault_model: Source of the fault registered for a rental.
        observer: Receives every PositionUpdate, in order, per rental.
        time_scale: Multiplier on real sleep time (0 disables sleeping).
    """

    def __init__(
        self,
        fault_model: FaultModel,
        observer: Optional[Observer] = None,
        time_scale: float = 1.0,
    ):
        self.fault_model = fault_model
        self.observer = observer or _log_update
        self.time_scale = time_scale

    def simulate(
        self,
        rental: Rental,
        vehicle: Vehicle,
        cancel: Optional[threading.Event] = None,
    ) -> MovementOutcome:
        """Move ``vehicle`` along the rental route, mutating its battery.

        The caller must hold ``vehicle.lock``.

        Raises:
            SimulationCancelledError: ``cancel`` was set between steps.
        """
        (sx, sy), (gx, gy) = rental.start, rental.goal
        n_steps = rental.step_count

        if n_steps == 0:
            self._emit(vehicle, (sx, sy), vehicle.battery_level, STATUS_FINISHED)
            return MovementOutcome(rental, FINISHED, vehicle.battery_level, (sx, sy), 0)

        delay = step_duration_ms(rental.duration_s, n_steps, vehicle) / 1000.0 * self.time_scale
        logger.info(
            f"Vehicle {vehicle.vehicle_id} starting from ({sx},{sy}) heading to ({gx},{gy})"
        )

        state = ROUTING_X
        position = (sx, sy)
        steps = 0
        fault = None
        try:
            self._visit(rental, vehicle, position, steps, n_steps)
            for x in _axis(sx, gx):
                self._wait(delay, cancel, rental)
                steps += 1
                position = (x, sy)
                self._visit(rental, vehicle, position, steps, n_steps)

            if rental.fault:
                fault = self.fault_model.lookup_fault(vehicle, rental.timestamp)
                if fault is None:
                    fault = self.fault_model.register_fault(vehicle, rental.timestamp)
                state = FAULTED
                self._emit(vehicle, position, vehicle.battery_level, STATUS_FAULTED)
                raise SimulationAbortError(vehicle.vehicle_id, f"fault ({fault.description})")

            state = ROUTING_Y
            for y in _axis(sy, gy):
                self._wait(delay, cancel, rental)
                steps += 1
                position = (gx, y)
                self._visit(rental, vehicle, position, steps, n_steps)

            state = FINISHED
            self._emit(vehicle, position, vehicle.battery_level, STATUS_FINISHED)
        except SimulationAbortError as exc:
            if state != FAULTED:
                state = LOW_BATTERY
            logger.info(str(exc))

        return MovementOutcome(rental, state, vehicle.battery_level, position, steps, fault)

    def _visit(
        self, rental: Rental, vehicle: Vehicle, position: Tuple[int, int],
        steps: int, n_steps: int,
    ) -> None:
        battery = battery_at(steps, n_steps, vehicle)
        vehicle.set_battery(battery)
        if battery < LOW_BATTERY_THRESHOLD:
            self._emit(vehicle, position, battery, STATUS_REMOVED)
            raise SimulationAbortError(vehicle.vehicle_id, f"low battery level ({battery}%)")
        self._emit(vehicle, position, battery, STATUS_MOVING)

    def _wait(self, delay: float, cancel: Optional[threading.Event], rental: Rental) -> None:
        if cancel is None:
            if delay > 0:
                time.sleep(delay)
            return
        if cancel.wait(delay) if delay > 0 else cancel.is_set():
            raise SimulationCancelledError(f"{rental!r} cancelled mid-route")

    def _emit(self, vehicle: Vehicle, position: Tuple[int, int], battery: int, status: str) -> None:
        self.observer(PositionUpdate(vehicle.vehicle_id, position, battery, status))
