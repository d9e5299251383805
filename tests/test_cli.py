"""End-to-end run through the command-line entry point."""

import json

import pytest
from click.testing import CliRunner

from rentsim.billing.bill_record import load_bills
from rentsim.runner.cli import main
from rentsim.storage.loss_snapshot import read_loss_snapshot

VEHICLES = """\
id,manufacturer,model,purchase_date,price,autonomy,max_speed,description,type
A1,Tesla,Model 3,15.03.2021.,40000,,,sedan,automobil
B1,Cube,E-City,,2000,40,,,bicikl
T1,Xiaomi,Pro 2,,600,,25,,trotinet
"""

RENTALS = """\
date,user,vehicle,sx,sy,gx,gy,duration,fault,promo
01.01.2024 10:00,U1,A1,1,2,3,4,60,ne,da
01.01.2024 10:00,U2,B1,5,5,6,6,30,ne,ne
01.01.2024 10:05,U1,T1,6,6,8,9,40,da,ne
02.01.2024 08:00,U2,A1,10,10,12,12,120,ne,ne
"""


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "vehicles.csv").write_text(VEHICLES)
    (tmp_path / "rentals.csv").write_text(RENTALS)
    (tmp_path / "pricing.properties").write_text(
        "CAR_UNIT_PRICE=1\nBIKE_UNIT_PRICE=0.5\nSCOOTER_UNIT_PRICE=0.25\n"
        "DISTANCE_WIDE=1.5\nDISTANCE_NARROW=1\nDISCOUNT=10\nDISCOUNT_PROM=5\n"
    )
    (tmp_path / "repair.properties").write_text(
        "CAR_REPAIR_COEFFICIENT=0.07\nBICYCLE_REPAIR_COEFFICIENT=0.04\n"
        "SCOOTER_REPAIR_COEFFICIENT=0.02\nMAINTENANCE_COEFFICIENT=0.2\n"
        "EXPENSE_COEFFICIENT=0.1\nTAX_COEFFICIENT=0.1\n"
    )
    (tmp_path / "config.properties").write_text(
        "VEHICLES_FILE_PATH=vehicles.csv\nRENTALS_FILE_PATH=rentals.csv\n"
        "PRICING_PROPERTIES_FILE_PATH=pricing.properties\n"
        "REPAIR_PROPERTIES_FILE_PATH=repair.properties\n"
        "BILLS_DIRECTORY=out/bills\nLOSS_ANALYSIS_DIRECTORY=out/loss\n"
    )
    return tmp_path


def _run(workspace, *extra):
    args = ["--config", str(workspace / "config.properties"),
            "--throttle", "0", "--time-scale", "0", "--seed", "1", *extra]
    return CliRunner().invoke(main, args)


class TestCli:
    def test_full_run(self, workspace):
        result = _run(workspace)
        assert result.exit_code == 0, result.output

        bills = load_bills(workspace / "out" / "bills")
        assert [b.bill_id for b in bills] == [1, 2, 3, 4]
        assert any(b.fault and b.total_price == 0.0 for b in bills)

        report = json.loads((workspace / "out" / "loss" / "reports.json").read_text())
        assert set(report["daily"]) == {"01.01.2024", "02.01.2024"}
        assert report["summary"]["total_income"] == pytest.approx(sum(b.total_price for b in bills))
        assert report["states"]["faulted"] == 1

        losses = read_loss_snapshot(workspace / "out" / "loss" / "loss_analysis.parquet")
        assert losses["scooter"].vehicle_id == "T1"
        assert losses["car"].vehicle_id is None

    def test_bill_ids_continue_across_runs(self, workspace):
        assert _run(workspace).exit_code == 0
        assert _run(workspace).exit_code == 0
        bills = load_bills(workspace / "out" / "bills")
        assert [b.bill_id for b in bills] == list(range(1, 9))

    def test_missing_pricing_is_fatal(self, workspace):
        (workspace / "pricing.properties").unlink()
        result = _run(workspace)
        assert result.exit_code == 2
        assert not (workspace / "out").exists()

    def test_missing_feed_is_fatal(self, workspace):
        (workspace / "vehicles.csv").unlink()
        result = _run(workspace)
        assert result.exit_code == 2
        assert not (workspace / "out").exists()

    def test_empty_rental_feed_runs(self, workspace):
        (workspace / "rentals.csv").write_text("")
        result = _run(workspace)
        assert result.exit_code == 0, result.output
        assert load_bills(workspace / "out" / "bills") == []
