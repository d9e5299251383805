"""Fleet loading: builds validated Vehicle records from the vehicle CSV feed."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

import pandas as pd

from rentsim.config.constants import (
    INITIAL_BATTERY_LEVEL,
    PURCHASE_DATE_FORMAT,
    VEHICLE_TYPE_ALIASES,
)
from rentsim.errors import ConfigurationError, MalformedRecordError
from rentsim.fleet.vehicle import Vehicle

logger = logging.getLogger(__name__)

VEHICLE_COLUMNS = 9


def read_feed(path: Path, n_columns: int) -> pd.DataFrame:
    """Read a CSV feed as strings, ignoring the width of its header line.

    The first line is skipped as a header. Every row is read into
    ``n_columns + 1`` positional columns so that a header narrower or wider
    than the data cannot shift fields into an index. Empty fields stay ``""``;
    fields a short row does not have are NaN.

    Args:
        path: CSV file.
        n_columns: Widest valid row layout of this feed.

    Returns:
        DataFrame of raw rows; empty if the file has no data.

    Raises:
        ConfigurationError: the file cannot be opened.
    """
    try:
        return pd.read_csv(
            path, header=None, skiprows=1, names=list(range(n_columns + 1)), index_col=False,
            dtype=str, keep_default_na=False, skip_blank_lines=True, on_bad_lines="warn",
        )
    except pd.errors.EmptyDataError:
        logger.warning(f"Feed {path} is empty")
        return pd.DataFrame(columns=list(range(n_columns + 1)), dtype=str)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read feed {path}: {exc}") from exc


def feed_rows(df: pd.DataFrame) -> Iterator[Tuple[int, List[str]]]:
    """Yield ``(row number, fields)`` with the padding of short rows removed."""
    for row_idx, row in enumerate(df.itertuples(index=False), start=1):
        values = list(row)
        while values and not isinstance(values[-1], str):
            values.pop()
        yield row_idx, values


def _parse_vehicle_row(values: List[str]) -> Vehicle:
    """Validate one feed row and build the matching Vehicle.

    Column order: id, manufacturer, model, purchase date, purchase price,
    autonomy, max speed, description, type.
    """
    if len(values) != VEHICLE_COLUMNS:
        raise MalformedRecordError(f"expected {VEHICLE_COLUMNS} columns, got {len(values)}")

    vehicle_id, manufacturer, model, purchase_date, price, autonomy, max_speed, description, vtype = (
        v.strip() for v in values
    )
    if not vehicle_id:
        raise MalformedRecordError("vehicle id is empty")
    if not manufacturer or not model:
        raise MalformedRecordError(f"vehicle {vehicle_id}: manufacturer/model missing")

    vehicle_type = VEHICLE_TYPE_ALIASES.get(vtype.lower())
    if vehicle_type is None:
        raise MalformedRecordError(f"vehicle {vehicle_id}: unexpected type {vtype!r}")

    try:
        purchase_price = float(price)
    except ValueError as exc:
        raise MalformedRecordError(f"vehicle {vehicle_id}: bad purchase price {price!r}") from exc

    vehicle = Vehicle(
        vehicle_id=vehicle_id,
        vehicle_type=vehicle_type,
        manufacturer=manufacturer,
        model=model,
        purchase_price=purchase_price,
        battery_level=INITIAL_BATTERY_LEVEL,
    )

    try:
        if vehicle_type == "car":
            vehicle.purchase_date = datetime.strptime(purchase_date, PURCHASE_DATE_FORMAT).date()
            vehicle.description = description
        elif vehicle_type == "bicycle":
            vehicle.autonomy = int(autonomy)
        else:
            vehicle.max_speed = int(max_speed)
    except ValueError as exc:
        raise MalformedRecordError(f"vehicle {vehicle_id} ({vehicle_type}): {exc}") from exc

    return vehicle


def load_vehicles(path: Path) -> Dict[str, Vehicle]:
    """Load the vehicle feed, skipping malformed and duplicate rows.

    Args:
        path: CSV file with a header row.

    Returns:
        Dict mapping vehicle id to Vehicle, in feed order.

    Raises:
        ConfigurationError: the feed file cannot be opened.
    """
    df = read_feed(path, VEHICLE_COLUMNS)

    vehicles: Dict[str, Vehicle] = {}
    for row_idx, values in feed_rows(df):
        try:
            vehicle = _parse_vehicle_row(values)
        except MalformedRecordError as exc:
            logger.warning(f"Skipping vehicle row {row_idx}: {exc}")
            continue

        if vehicle.vehicle_id in vehicles:
            logger.warning(f"Skipping vehicle row {row_idx}: duplicate vehicle id {vehicle.vehicle_id}")
            continue
        vehicles[vehicle.vehicle_id] = vehicle
        logger.debug(f"Loaded {vehicle.summary()}")

    logger.info(f"Loaded {len(vehicles)} vehicles from {path}")
    return vehicles
