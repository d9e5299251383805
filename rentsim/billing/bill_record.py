"""Bill record and its key:value text format (one file per bill)."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List

from rentsim.config.constants import BILL_FILE_GLOB, BILL_FILE_TEMPLATE, RENTAL_DATETIME_FORMAT
from rentsim.errors import MalformedRecordError, PersistenceError

logger = logging.getLogger(__name__)

# Text keys, in file order
BILL_KEYS = (
    "bill",
    "for",
    "rental of the vehicle",
    "date and time",
    "fault",
    "base price",
    "distance factor",
    "discount factor",
    "promo factor",
    "total price",
)


@dataclass(frozen=True)
class Bill:
    bill_id: int
    area: str               # "wide" or "narrow"
    vehicle_id: str
    timestamp: datetime     # Rental start
    fault: bool
    base_price: float
    distance_factor: float
    discount_factor: float
    promo_factor: float
    total_price: float

    @property
    def distance_price(self) -> float:
        return self.base_price * self.distance_factor

    @property
    def discount_amount(self) -> float:
        return self.distance_price * self.discount_factor

    @property
    def promo_amount(self) -> float:
        return self.distance_price * self.promo_factor


def format_bill(bill: Bill) -> str:
    """Render a bill as text. Floats keep full round-trip precision."""
    lines = [
        f"bill: {bill.bill_id}",
        f"for: {bill.area} area",
        f"rental of the vehicle: {bill.vehicle_id}",
        f"date and time: {bill.timestamp.strftime(RENTAL_DATETIME_FORMAT)}",
        f"fault: {'yes' if bill.fault else 'no'}",
        f"base price: {float(bill.base_price)!r}",
        f"distance factor: {float(bill.distance_factor)!r}",
        f"discount factor: {float(bill.discount_factor)!r}",
        f"promo factor: {float(bill.promo_factor)!r}",
        f"total price: {float(bill.total_price)!r}",
    ]
    return "\n".join(lines) + "\n"


def parse_bill_text(text: str) -> Bill:
    """Parse the text produced by :func:`format_bill`.

    Unknown keys are ignored; every key in BILL_KEYS must be present.

    Raises:
        MalformedRecordError: a key is missing or a value does not parse.
    """
    raw: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        if key in BILL_KEYS:
            raw[key] = value.strip()

    missing = [key for key in BILL_KEYS if key not in raw]
    if missing:
        raise MalformedRecordError(f"bill is missing keys: {', '.join(missing)}")

    area = raw["for"].split()
    if len(area) != 2 or area[1] != "area":
        raise MalformedRecordError(f"invalid area: {raw['for']!r}")

    try:
        return Bill(
            bill_id=int(raw["bill"]),
            area=area[0],
            vehicle_id=raw["rental of the vehicle"],
            timestamp=datetime.strptime(raw["date and time"], RENTAL_DATETIME_FORMAT),
            fault=raw["fault"].lower() == "yes",
            base_price=float(raw["base price"]),
            distance_factor=float(raw["distance factor"]),
            discount_factor=float(raw["discount factor"]),
            promo_factor=float(raw["promo factor"]),
            total_price=float(raw["total price"]),
        )
    except ValueError as exc:
        raise MalformedRecordError(f"invalid bill value: {exc}") from exc


def write_bill(bill: Bill, bills_dir: Path) -> Path:
    """Write ``bill`` to ``<bills_dir>/<bill_id>_rentbill.txt``.

    Raises:
        PersistenceError: the directory or file cannot be written.
    """
    path = Path(bills_dir) / BILL_FILE_TEMPLATE.format(bill_id=bill.bill_id)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(format_bill(bill), encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Cannot write bill {bill.bill_id} to {path}: {exc}") from exc
    return path


def read_bill(path: Path) -> Bill:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"Cannot read bill {path}: {exc}") from exc
    return parse_bill_text(text)


def load_bills(bills_dir: Path) -> List[Bill]:
    """Read back every bill in ``bills_dir``, ordered by bill id.

    Unreadable, malformed and duplicate bills are logged and skipped.
    """
    bills_dir = Path(bills_dir)
    if not bills_dir.is_dir():
        logger.warning(f"Invalid bills directory: {bills_dir}")
        return []

    bills: Dict[int, Bill] = {}
    for path in sorted(bills_dir.glob(BILL_FILE_GLOB)):
        try:
            bill = read_bill(path)
        except (MalformedRecordError, PersistenceError) as exc:
            logger.warning(f"Skipping bill {path.name}: {exc}")
            continue
        if bill.bill_id in bills:
            logger.warning(f"Bill already processed: {bill.bill_id}")
            continue
        bills[bill.bill_id] = bill

    return [bills[bill_id] for bill_id in sorted(bills)]
