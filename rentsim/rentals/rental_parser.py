"""Rental feed loading into a RentalRegistry."""

import logging
from datetime import datetime
from pathlib import Path
from typing import List

from rentsim.config.constants import GRID_MAX, GRID_MIN, RENTAL_DATETIME_FORMAT, YES_TOKENS
from rentsim.errors import DuplicateBookingError, MalformedRecordError, UnknownVehicleTypeError
from rentsim.fleet.vehicle_parser import feed_rows, read_feed
from rentsim.rentals.registry import RentalRegistry
from rentsim.rentals.rental import Rental, User

logger = logging.getLogger(__name__)

RENTAL_COLUMNS = 10
# Feeds that quote locations as "x,y" carry one column per location
RENTAL_COLUMNS_QUOTED = 8


def _parse_int(value: str, name: str) -> int:
    try:
        return int(value.replace('"', "").strip())
    except ValueError as exc:
        raise MalformedRecordError(f"invalid {name}: {value!r}") from exc


def _normalize(values: List[str]) -> List[str]:
    """Expand the quoted-location layout to the ten-column layout."""
    if len(values) >= RENTAL_COLUMNS_QUOTED and "," in values[3]:
        if len(values) > RENTAL_COLUMNS_QUOTED and any(values[RENTAL_COLUMNS_QUOTED:]):
            raise MalformedRecordError(f"unexpected fields after quoted locations: {values}")
        values = values[:RENTAL_COLUMNS_QUOTED]
        start = values[3].replace('"', "").split(",")
        goal = values[4].replace('"', "").split(",")
        if len(start) != 2 or len(goal) != 2:
            raise MalformedRecordError(f"invalid locations: {values[3]!r} -> {values[4]!r}")
        return values[:3] + start + goal + values[5:]
    return values


def parse_rental_row(values: List[str]) -> Rental:
    """Validate one rental row.

    Column order: date/time, user id, vehicle id, start x, start y, goal x,
    goal y, duration (s), fault, promo.
    """
    values = [v.strip() for v in _normalize([str(v) for v in values])]
    if len(values) != RENTAL_COLUMNS:
        raise MalformedRecordError(f"expected {RENTAL_COLUMNS} columns, got {len(values)}")

    raw_ts, user_id, vehicle_id, sx, sy, gx, gy, duration, fault, promo = values
    if not vehicle_id:
        raise MalformedRecordError("vehicle id is empty")
    if not user_id:
        raise MalformedRecordError("user info missing")

    try:
        timestamp = datetime.strptime(raw_ts, RENTAL_DATETIME_FORMAT)
    except ValueError as exc:
        raise MalformedRecordError(f"invalid rental date: {raw_ts!r}") from exc

    start = (_parse_int(sx, "start x"), _parse_int(sy, "start y"))
    goal = (_parse_int(gx, "goal x"), _parse_int(gy, "goal y"))
    if not all(GRID_MIN <= c <= GRID_MAX for c in start + goal):
        raise MalformedRecordError(f"coordinates out of bounds: {start} -> {goal}")

    duration_s = _parse_int(duration, "duration")
    if duration_s < 0:
        raise MalformedRecordError(f"negative duration: {duration_s}")

    return Rental(
        timestamp=timestamp,
        vehicle_id=vehicle_id,
        user=User(user_id),
        start=start,
        goal=goal,
        duration_s=duration_s,
        fault=fault.lower() in YES_TOKENS,
        promo=promo.lower() in YES_TOKENS,
    )


def load_rentals(path: Path, registry: RentalRegistry) -> int:
    """Load the rental feed into ``registry`` and run the discount pass.

    Malformed rows, unknown vehicles and duplicate bookings are logged and
    skipped.

    Returns:
        Number of rentals accepted.

    Raises:
        ConfigurationError: the feed file cannot be opened.
    """
    df = read_feed(path, RENTAL_COLUMNS)

    accepted = 0
    for row_idx, values in feed_rows(df):
        try:
            rental = parse_rental_row(values)
        except MalformedRecordError as exc:
            logger.warning(f"Skipping rental row {row_idx}: {exc}")
            continue

        try:
            registry.add_rental(rental)
        except (DuplicateBookingError, UnknownVehicleTypeError) as exc:
            logger.warning(f"Skipping rental row {row_idx}: {exc}")
            continue
        accepted += 1

    registry.assign_discounts()
    logger.info(f"Loaded {accepted} rentals from {path}")
    return accepted
