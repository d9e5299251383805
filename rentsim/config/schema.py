"""Dataclass models for application, pricing and repair configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from rentsim.config.constants import REPAIR_COEFFICIENT_KEYS, UNIT_PRICE_KEYS
from rentsim.errors import ConfigurationError


def _require_float(props: Dict[str, str], key: str, source: str) -> float:
    if key not in props:
        raise ConfigurationError(f"{source}: missing property '{key}'")
    try:
        return float(props[key])
    except ValueError as exc:
        raise ConfigurationError(
            f"{source}: property '{key}' is not a number: {props[key]!r}"
        ) from exc


@dataclass(frozen=True)
class PricingConfig:
    """Rental pricing parameters."""

    unit_prices: Dict[str, float]   # vehicle type -> price per second
    distance_wide: float            # Area multiplier for wide rentals
    distance_narrow: float          # Area multiplier for narrow rentals
    discount_pct: float             # 10th-rental discount (percent)
    promo_pct: float                # Promotional discount (percent)

    @classmethod
    def from_properties(cls, props: Dict[str, str], source: str = "pricing") -> PricingConfig:
        return cls(
            unit_prices={
                vtype: _require_float(props, key, source)
                for vtype, key in UNIT_PRICE_KEYS.items()
            },
            distance_wide=_require_float(props, "DISTANCE_WIDE", source),
            distance_narrow=_require_float(props, "DISTANCE_NARROW", source),
            discount_pct=_require_float(props, "DISCOUNT", source),
            promo_pct=_require_float(props, "DISCOUNT_PROM", source),
        )


@dataclass(frozen=True)
class RepairConfig:
    """Cost coefficients used by reporting and loss analysis."""

    repair_coefficients: Dict[str, float]   # vehicle type -> share of purchase price
    maintenance_coefficient: float
    expense_coefficient: float
    tax_coefficient: float

    @classmethod
    def from_properties(cls, props: Dict[str, str], source: str = "repair") -> RepairConfig:
        return cls(
            repair_coefficients={
                vtype: _require_float(props, key, source)
                for vtype, key in REPAIR_COEFFICIENT_KEYS.items()
            },
            maintenance_coefficient=_require_float(props, "MAINTENANCE_COEFFICIENT", source),
            expense_coefficient=_require_float(props, "EXPENSE_COEFFICIENT", source),
            tax_coefficient=_require_float(props, "TAX_COEFFICIENT", source),
        )


@dataclass(frozen=True)
class AppConfig:
    """Input/output locations for one simulation run."""

    vehicles_file: Path
    rentals_file: Path
    pricing_file: Path
    repair_file: Path
    bills_dir: Path
    loss_analysis_dir: Path

    @classmethod
    def from_properties(cls, props: Dict[str, str], base_dir: Path = Path(".")) -> AppConfig:
        keys = {
            "vehicles_file": "VEHICLES_FILE_PATH",
            "rentals_file": "RENTALS_FILE_PATH",
            "pricing_file": "PRICING_PROPERTIES_FILE_PATH",
            "repair_file": "REPAIR_PROPERTIES_FILE_PATH",
            "bills_dir": "BILLS_DIRECTORY",
            "loss_analysis_dir": "LOSS_ANALYSIS_DIRECTORY",
        }
        missing = [key for key in keys.values() if not props.get(key)]
        if missing:
            raise ConfigurationError(f"Missing config properties: {', '.join(missing)}")

        return cls(**{
            field_name: Path(base_dir) / props[key]
            for field_name, key in keys.items()
        })
