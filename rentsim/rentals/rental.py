"""Rental and User records."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Tuple


@dataclass
class User:
    id_document: str
    driver_license: str = "Unknown"
    rent_counter: int = field(default=0, compare=False)

    def reset_rent_counter(self) -> None:
        self.rent_counter = 0

    def increment_rent_counter(self) -> int:
        self.rent_counter += 1
        return self.rent_counter


@dataclass(eq=False)
class Rental:
    """One historical rental. Only ``discount`` changes after loading."""

    timestamp: datetime
    vehicle_id: str
    user: User
    start: Tuple[int, int]     # (x, y) grid cell
    goal: Tuple[int, int]      # (x, y) grid cell
    duration_s: int            # Planned duration in seconds
    fault: bool = False        # Pre-declared fault during this rental
    promo: bool = False
    discount: bool = False     # Set by RentalRegistry.assign_discounts()

    @property
    def key(self) -> Tuple[str, datetime]:
        return (self.vehicle_id, self.timestamp)

    @property
    def end_time(self) -> datetime:
        return self.timestamp + timedelta(seconds=self.duration_s)

    @property
    def step_count(self) -> int:
        return abs(self.goal[0] - self.start[0]) + abs(self.goal[1] - self.start[1])

    def __repr__(self) -> str:
        return (
            f"Rental({self.vehicle_id} @ {self.timestamp:%d.%m.%Y %H:%M}, "
            f"{self.start}->{self.goal}, {self.duration_s}s)"
        )
