"""Tests for daily/summary reports, loss analysis and the loss snapshot."""

from datetime import date, datetime

import pandas as pd
import pyarrow.parquet as pq
import pytest

from rentsim.billing.bill_record import Bill
from rentsim.errors import PersistenceError
from rentsim.fleet.vehicle import Vehicle
from rentsim.reporting.loss_analysis import LossRecord, analyze_losses
from rentsim.reporting.reports import DAILY_COLUMNS, daily_report, summary_report
from rentsim.storage.loss_snapshot import read_loss_snapshot, write_loss_snapshot

DAY1 = datetime(2024, 1, 1, 10, 0)
DAY2 = datetime(2024, 1, 2, 9, 0)


def _bill(bill_id, vehicle_id, timestamp, area="narrow", fault=False, base=0.0,
          distance=1.0, discount=0.0, promo=0.0, total=0.0):
    return Bill(bill_id, area, vehicle_id, timestamp, fault, base, distance, discount, promo, total)


@pytest.fixture
def bills():
    return [
        _bill(1, "A1", DAY1, base=100.0, discount=0.1, total=90.0),
        _bill(2, "B1", DAY1, area="wide", base=20.0, distance=1.5, promo=0.05, total=28.5),
        _bill(3, "A1", DAY2, fault=True),
        _bill(4, "T1", DAY2, fault=True),
    ]


class TestDailyReport:
    def test_per_day_totals(self, bills, fleet, repair):
        report = daily_report(bills, fleet, repair)

        assert list(report.index) == [date(2024, 1, 1), date(2024, 1, 2)]
        assert list(report.columns) == DAILY_COLUMNS

        day1 = report.loc[date(2024, 1, 1)]
        assert day1["total_income"] == pytest.approx(118.5)
        assert day1["total_discount"] == pytest.approx(10.0)
        assert day1["total_promo"] == pytest.approx(1.5)
        assert day1["narrow_area_income"] == pytest.approx(90.0)
        assert day1["wide_area_income"] == pytest.approx(28.5)
        assert day1["maintenance_cost"] == pytest.approx(118.5 * 0.2)
        assert day1["repair_cost"] == 0.0

        day2 = report.loc[date(2024, 1, 2)]
        assert day2["total_income"] == 0.0
        assert day2["repair_cost"] == pytest.approx(40000 * 0.07 + 600 * 0.02)

    def test_empty_ledger(self, fleet, repair):
        report = daily_report([], fleet, repair)
        assert report.empty
        assert list(report.columns) == DAILY_COLUMNS


class TestSummaryReport:
    def test_totals_and_tax(self, bills, fleet, repair):
        summary = summary_report(bills, fleet, repair)

        income = 118.5
        maintenance = income * 0.2
        repair_cost = 2800.0 + 12.0
        expense = income * 0.1
        assert summary.total_income == pytest.approx(income)
        assert summary.repair_cost == pytest.approx(repair_cost)
        assert summary.expense_cost == pytest.approx(expense)
        assert summary.tax_cost == pytest.approx(
            abs(income - maintenance - repair_cost - expense) * 0.1
        )
        assert summary.narrow_area_income + summary.wide_area_income == pytest.approx(income)

    def test_unknown_vehicle_has_no_repair_cost(self, fleet, repair):
        summary = summary_report([_bill(1, "ZZ", DAY1, fault=True)], fleet, repair)
        assert summary.repair_cost == 0.0

    def test_matches_daily_sum(self, bills, fleet, repair):
        daily = daily_report(bills, fleet, repair)
        summary = summary_report(bills, fleet, repair).to_dict()
        for column in DAILY_COLUMNS:
            assert daily[column].sum() == pytest.approx(summary[column])


class TestLossAnalysis:
    def test_worst_per_type(self, bills, fleet, repair):
        losses = analyze_losses(bills, fleet, repair)

        assert set(losses) == {"car", "bicycle", "scooter"}
        assert losses["car"].vehicle_id == "A1"
        assert losses["car"].loss == pytest.approx(2800.0)
        assert losses["scooter"].loss == pytest.approx(12.0)
        assert losses["bicycle"] == LossRecord("bicycle")

    def test_ties_keep_first(self, bills, fleet, repair):
        fleet = dict(fleet)
        fleet["A2"] = Vehicle("A2", "car", "Tesla", "Model 3", 40000.0)
        losses = analyze_losses(bills + [_bill(5, "A2", DAY2, fault=True)], fleet, repair)
        assert losses["car"].vehicle_id == "A1"

    def test_strictly_greater_replaces(self, bills, fleet, repair):
        fleet = dict(fleet)
        fleet["A2"] = Vehicle("A2", "car", "Audi", "e-tron", 80000.0)
        losses = analyze_losses(bills + [_bill(5, "A2", DAY2, fault=True)], fleet, repair)
        assert losses["car"].vehicle_id == "A2"
        assert losses["car"].manufacturer == "Audi"


class TestLossSnapshot:
    def test_round_trip(self, bills, fleet, repair, tmp_path):
        losses = analyze_losses(bills, fleet, repair)
        path = write_loss_snapshot(losses, tmp_path / "loss")

        assert path.name == "loss_analysis.parquet"
        assert read_loss_snapshot(path) == losses

    def test_schema_metadata(self, bills, fleet, repair, tmp_path):
        path = write_loss_snapshot(analyze_losses(bills, fleet, repair), tmp_path)
        metadata = pq.read_schema(path).metadata
        assert metadata[b"schema_version"] == b"1"
        assert metadata[b"record"] == b"loss_analysis"

    def test_version_mismatch(self, bills, fleet, repair, tmp_path):
        path = write_loss_snapshot(analyze_losses(bills, fleet, repair), tmp_path)
        table = pq.read_table(path)
        old = table.replace_schema_metadata({"record": "loss_analysis", "schema_version": "0"})
        pq.write_table(old, path)

        with pytest.raises(PersistenceError, match="version"):
            read_loss_snapshot(path)

    def test_foreign_parquet_rejected(self, tmp_path):
        path = tmp_path / "other.parquet"
        pd.DataFrame({"a": [1, 2]}).to_parquet(path)
        with pytest.raises(PersistenceError):
            read_loss_snapshot(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PersistenceError):
            read_loss_snapshot(tmp_path / "missing.parquet")
