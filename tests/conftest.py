"""Shared test fixtures."""

from datetime import date, datetime

import numpy as np
import pytest

from rentsim.config.schema import PricingConfig, RepairConfig
from rentsim.fleet.vehicle import Vehicle
from rentsim.rentals.rental import Rental, User


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def car():
    return Vehicle(
        vehicle_id="A1",
        vehicle_type="car",
        manufacturer="Tesla",
        model="Model 3",
        purchase_price=40000.0,
        purchase_date=date(2021, 3, 15),
        description="sedan",
    )


@pytest.fixture
def bicycle():
    return Vehicle(
        vehicle_id="B1",
        vehicle_type="bicycle",
        manufacturer="Cube",
        model="E-City",
        purchase_price=2000.0,
        autonomy=4,
    )


@pytest.fixture
def scooter():
    return Vehicle(
        vehicle_id="T1",
        vehicle_type="scooter",
        manufacturer="Xiaomi",
        model="Pro 2",
        purchase_price=600.0,
        max_speed=10,
    )


@pytest.fixture
def fleet(car, bicycle, scooter):
    return {v.vehicle_id: v for v in (car, bicycle, scooter)}


@pytest.fixture
def pricing():
    return PricingConfig(
        unit_prices={"car": 1.0, "bicycle": 0.5, "scooter": 0.25},
        distance_wide=1.5,
        distance_narrow=1.0,
        discount_pct=10.0,
        promo_pct=5.0,
    )


@pytest.fixture
def repair():
    return RepairConfig(
        repair_coefficients={"car": 0.07, "bicycle": 0.04, "scooter": 0.02},
        maintenance_coefficient=0.2,
        expense_coefficient=0.1,
        tax_coefficient=0.1,
    )


def _rental(vehicle_id="A1", start=(5, 5), goal=(8, 9), duration_s=60,
            timestamp=datetime(2024, 1, 1, 10, 0), user="U1", **flags):
    return Rental(
        timestamp=timestamp,
        vehicle_id=vehicle_id,
        user=User(user),
        start=start,
        goal=goal,
        duration_s=duration_s,
        **flags,
    )


@pytest.fixture
def make_rental():
    """Factory for Rental records with sensible defaults."""
    return _rental
