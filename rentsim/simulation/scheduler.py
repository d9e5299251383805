"""Replays the rental log: days, then time-groups, each group run concurrently.

Time-groups are processed strictly in order. Every rental of a group runs on
the worker pool (movement -> billing -> charging); the scheduler blocks on a
barrier until the whole group is done, pauses for the throttle delay, then
dispatches the next group.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from rentsim.billing.bill_record import Bill
from rentsim.billing.engine import BillingEngine
from rentsim.config.constants import GRID_MAX, GRID_MIN, THROTTLE_DELAY_SECONDS
from rentsim.errors import (
    DuplicateBookingError,
    MalformedRecordError,
    PersistenceError,
    SimulationCancelledError,
    SimulationTimeoutError,
    UnknownVehicleTypeError,
)
from rentsim.rentals.registry import RentalRegistry
from rentsim.rentals.rental import Rental
from rentsim.simulation.charging import ChargingModel
from rentsim.simulation.movement import VehicleMovementSimulator

logger = logging.getLogger(__name__)

# Scheduler states
NEXT_DAY = "next_day"
NEXT_TIME_GROUP = "next_time_group"
DISPATCH_CONCURRENT = "dispatch_concurrent"
BARRIER_WAIT = "barrier_wait"
THROTTLE_DELAY = "throttle_delay"
DONE = "done"
TIMED_OUT = "timed_out"

# Task states beyond the movement states
TASK_ERROR = "error"
TASK_CANCELLED = "cancelled"


@dataclass
class RentalResult:
    rental: Rental
    state: str                      # Movement state, TASK_ERROR or TASK_CANCELLED
    bill: Optional[Bill] = None
    battery: Optional[int] = None   # Battery after movement and charging
    error: Optional[str] = None


@dataclass
class SimulationResult:
    results: List[RentalResult] = field(default_factory=list)
    bills: List[Bill] = field(default_factory=list)   # Ledger, ordered by bill id
    groups_processed: int = 0

    def count_by_state(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for result in self.results:
            counts[result.state] = counts.get(result.state, 0) + 1
        return counts


class SimulationScheduler:
    """Runs every rental of a registry, one concurrent wave per timestamp.

    Args:
        registry: Rentals and vehicles for this run.
        billing: Prices each rental after its movement.
        movement: Movement simulator; built from the registry's fault model if omitted.
        charging: Charging model applied after a finished route.
        n_workers: Size of the worker pool.
        throttle_seconds: Fixed pause after each time-group.
        group_timeout: Barrier timeout per group in seconds (``None`` waits forever).
        sleep: Used for the throttle pause.
    """

    def __init__(
        self,
        registry: RentalRegistry,
        billing: BillingEngine,
        movement: Optional[VehicleMovementSimulator] = None,
        charging: Optional[ChargingModel] = None,
        n_workers: int = 8,
        throttle_seconds: float = THROTTLE_DELAY_SECONDS,
        group_timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.registry = registry
        self.billing = billing
        self.movement = movement or VehicleMovementSimulator(registry.fault_model)
        self.charging = charging or ChargingModel()
        self.n_workers = n_workers
        self.throttle_seconds = throttle_seconds
        self.group_timeout = group_timeout
        self.sleep = sleep

        self.state = NEXT_DAY
        self._ledger: List[Bill] = []
        self._ledger_lock = threading.Lock()

    def run(self) -> SimulationResult:
        """Simulate all rentals and return the results with the bill ledger.

        Raises:
            SimulationTimeoutError: a time-group exceeded ``group_timeout``. Its
                ``partial`` attribute holds the results and bills produced so far.
        """
        result = SimulationResult()
        day_groups = self.registry.group_by_day_then_timestamp()
        logger.info(
            f"Starting simulation: {len(self.registry)} rentals over {len(day_groups)} days "
            f"({self.n_workers} workers, throttle={self.throttle_seconds}s)"
        )

        executor = ThreadPoolExecutor(max_workers=self.n_workers, thread_name_prefix="rental")
        try:
            for day, time_groups in day_groups:
                self.state = NEXT_DAY
                logger.info(f"Processing rentals for {day:%d.%m.%Y}")

                for timestamp, rentals in time_groups:
                    self.state = NEXT_TIME_GROUP
                    self._run_group(executor, timestamp, rentals, result.results)
                    result.groups_processed += 1

                    self.state = THROTTLE_DELAY
                    if self.throttle_seconds > 0:
                        self.sleep(self.throttle_seconds)
        except SimulationTimeoutError as exc:
            self.state = TIMED_OUT
            exc.partial = self._collect_bills(result)
            logger.error(f"Simulation stopped after {result.groups_processed} groups: {exc}")
            raise
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        self.state = DONE
        self._collect_bills(result)
        logger.info(f"Simulation finished: {result.count_by_state()}")
        return result

    def _collect_bills(self, result: SimulationResult) -> SimulationResult:
        with self._ledger_lock:
            result.bills = sorted(self._ledger, key=lambda b: b.bill_id)
        return result

    def _run_group(
        self, executor: ThreadPoolExecutor, timestamp: datetime, rentals: List[Rental],
        results: List[RentalResult],
    ) -> None:
        """Dispatch one time-group and block until all of its tasks finish.

        Results are appended to ``results`` in dispatch order. On timeout only
        the tasks that already finished are appended.
        """
        cancel = threading.Event()

        self.state = DISPATCH_CONCURRENT
        futures: List[Future] = []
        for rental in rentals:
            logger.info(f"Date/Time: {timestamp:%d.%m.%Y %H:%M} - vehicle: {rental.vehicle_id}")
            futures.append(executor.submit(self._run_task, rental, cancel))

        self.state = BARRIER_WAIT
        done, not_done = wait(futures, timeout=self.group_timeout)
        if not_done:
            cancel.set()
            for future in not_done:
                future.cancel()
            results.extend(future.result() for future in futures if future in done)
            raise SimulationTimeoutError(timestamp, len(not_done), self.group_timeout)

        results.extend(future.result() for future in futures)

    def _run_task(self, rental: Rental, cancel: threading.Event) -> RentalResult:
        """Worker entry point. Never raises: failures become TASK_ERROR results."""
        try:
            return self._simulate_rental(rental, cancel)
        except SimulationCancelledError as exc:
            logger.warning(str(exc))
            return RentalResult(rental, TASK_CANCELLED, error=str(exc))
        except Exception as exc:
            logger.exception(f"Simulation of {rental!r} failed")
            return RentalResult(rental, TASK_ERROR, error=str(exc))

    def _simulate_rental(self, rental: Rental, cancel: threading.Event) -> RentalResult:
        if not all(GRID_MIN <= c <= GRID_MAX for c in rental.start + rental.goal):
            raise MalformedRecordError(f"coordinates out of bounds: {rental.start} -> {rental.goal}")

        vehicle = self.registry.get_vehicle(rental.vehicle_id)
        if vehicle is None:
            raise UnknownVehicleTypeError(f"Invalid vehicle ID: {rental.vehicle_id}")

        # Booking uniqueness means the lock is always free here
        if not vehicle.lock.acquire(blocking=False):
            raise DuplicateBookingError(
                f"Vehicle {vehicle.vehicle_id} is already being simulated"
            )
        try:
            outcome = self.movement.simulate(rental, vehicle, cancel)

            bill = None
            try:
                bill = self.billing.compute_bill(rental, vehicle)
            except (UnknownVehicleTypeError, PersistenceError) as exc:
                logger.error(f"No bill for {rental!r}: {exc}")
            else:
                with self._ledger_lock:
                    self._ledger.append(bill)

            if outcome.completed:
                self.charging.charge_until_next(
                    vehicle, rental.end_time, self.registry.next_rental_start(rental),
                )

            return RentalResult(rental, outcome.state, bill, vehicle.battery_level)
        finally:
            vehicle.lock.release()
