"""Exception taxonomy for feed loading, simulation, billing and persistence."""


class RentSimError(Exception):
    """Base class for all rentsim errors."""


class ConfigurationError(RentSimError):
    """Configuration or pricing file missing or unparseable. Fatal for a run."""


class MalformedRecordError(RentSimError):
    """A feed row failed validation; the row is skipped."""


class DuplicateBookingError(RentSimError):
    """The same vehicle was booked twice at the same timestamp."""


class UnknownVehicleTypeError(RentSimError):
    """A rental references a vehicle that cannot be priced."""


class PersistenceError(RentSimError):
    """A bill or report could not be written or read back."""


class SimulationAbortError(RentSimError):
    """A rental stopped mid-route (low battery or fault).

    Expected behaviour: the movement simulator reports it as an outcome state
    rather than letting it escape a task.
    """

    def __init__(self, vehicle_id: str, reason: str):
        super().__init__(f"Vehicle {vehicle_id} aborted: {reason}")
        self.vehicle_id = vehicle_id
        self.reason = reason


class SimulationCancelledError(RentSimError):
    """A rental task observed its cancellation token."""


class SimulationTimeoutError(RentSimError):
    """A time-group did not finish before the barrier timeout.

    The scheduler sets ``partial`` to the results and bills of the work that
    completed before the timeout.
    """

    def __init__(self, timestamp, pending: int, timeout: float):
        super().__init__(
            f"Time-group {timestamp} still has {pending} running task(s) "
            f"after {timeout:.1f}s"
        )
        self.timestamp = timestamp
        self.pending = pending
        self.timeout = timeout
        self.partial = None
