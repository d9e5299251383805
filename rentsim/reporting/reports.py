"""Daily and summary business reports folded over the bill ledger."""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, List

import pandas as pd

from rentsim.billing.bill_record import Bill
from rentsim.config.constants import AREA_NARROW, AREA_WIDE
from rentsim.config.schema import RepairConfig
from rentsim.fleet.vehicle import Vehicle

logger = logging.getLogger(__name__)

DAILY_COLUMNS = [
    "total_income",
    "total_discount",
    "total_promo",
    "narrow_area_income",
    "wide_area_income",
    "maintenance_cost",
    "repair_cost",
]


@dataclass(frozen=True)
class SummaryReport:
    total_income: float
    total_discount: float
    total_promo: float
    narrow_area_income: float
    wide_area_income: float
    maintenance_cost: float
    repair_cost: float
    expense_cost: float
    tax_cost: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def bills_frame(
    bills: List[Bill], vehicles: Dict[str, Vehicle], repair: RepairConfig,
) -> pd.DataFrame:
    """One row per bill with the derived amounts reports aggregate.

    Repair cost is non-zero only for faulted bills: type coefficient times the
    vehicle's purchase price.
    """
    rows = []
    for bill in bills:
        vehicle = vehicles.get(bill.vehicle_id)
        vehicle_type = vehicle.vehicle_type if vehicle else None
        repair_cost = 0.0
        if bill.fault:
            coefficient = repair.repair_coefficients.get(vehicle_type)
            if vehicle is None or coefficient is None:
                logger.warning(f"Bill {bill.bill_id}: undefined vehicle type for {bill.vehicle_id}")
            else:
                repair_cost = coefficient * vehicle.purchase_price

        rows.append({
            "bill_id": bill.bill_id,
            "day": bill.timestamp.date(),
            "area": bill.area,
            "vehicle_id": bill.vehicle_id,
            "vehicle_type": vehicle_type,
            "purchase_price": vehicle.purchase_price if vehicle else float("nan"),
            "fault": bill.fault,
            "total_price": bill.total_price,
            "discount_amount": bill.discount_amount,
            "promo_amount": bill.promo_amount,
            "repair_cost": repair_cost,
        })

    columns = [
        "bill_id", "day", "area", "vehicle_id", "vehicle_type", "purchase_price",
        "fault", "total_price", "discount_amount", "promo_amount", "repair_cost",
    ]
    return pd.DataFrame(rows, columns=columns)


def daily_report(
    bills: List[Bill], vehicles: Dict[str, Vehicle], repair: RepairConfig,
) -> pd.DataFrame:
    """Per calendar day totals, indexed by day (ascending)."""
    df = bills_frame(bills, vehicles, repair)
    if df.empty:
        return pd.DataFrame(columns=DAILY_COLUMNS, index=pd.Index([], name="day"), dtype=float)

    df["narrow_income"] = df["total_price"].where(df["area"] == AREA_NARROW, 0.0)
    df["wide_income"] = df["total_price"].where(df["area"] == AREA_WIDE, 0.0)

    grouped = df.groupby("day", sort=True)
    report = pd.DataFrame({
        "total_income": grouped["total_price"].sum(),
        "total_discount": grouped["discount_amount"].sum(),
        "total_promo": grouped["promo_amount"].sum(),
        "narrow_area_income": grouped["narrow_income"].sum(),
        "wide_area_income": grouped["wide_income"].sum(),
        "repair_cost": grouped["repair_cost"].sum(),
    })
    report["maintenance_cost"] = report["total_income"] * repair.maintenance_coefficient
    return report[DAILY_COLUMNS]


def summary_report(
    bills: List[Bill], vehicles: Dict[str, Vehicle], repair: RepairConfig,
) -> SummaryReport:
    """Totals over every bill, plus expense and tax cost."""
    df = bills_frame(bills, vehicles, repair)

    income = float(df["total_price"].sum())
    maintenance = income * repair.maintenance_coefficient
    repair_cost = float(df["repair_cost"].sum())
    expense = income * repair.expense_coefficient
    tax = abs(income - maintenance - repair_cost - expense) * repair.tax_coefficient

    return SummaryReport(
        total_income=income,
        total_discount=float(df["discount_amount"].sum()),
        total_promo=float(df["promo_amount"].sum()),
        narrow_area_income=float(df.loc[df["area"] == AREA_NARROW, "total_price"].sum()),
        wide_area_income=float(df.loc[df["area"] == AREA_WIDE, "total_price"].sum()),
        maintenance_cost=maintenance,
        repair_cost=repair_cost,
        expense_cost=expense,
        tax_cost=tax,
    )
