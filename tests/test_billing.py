"""Tests for area classification, pricing and bill persistence."""

import threading
from datetime import datetime

import pytest

from rentsim.billing.bill_record import (
    Bill,
    format_bill,
    load_bills,
    parse_bill_text,
    read_bill,
    write_bill,
)
from rentsim.billing.engine import BillingEngine, classify_area
from rentsim.errors import MalformedRecordError, UnknownVehicleTypeError
from rentsim.fleet.vehicle import Vehicle


class TestClassifyArea:
    @pytest.mark.parametrize("start, goal", [
        ((5, 5), (14, 14)),
        ((14, 5), (5, 14)),
        ((10, 10), (10, 10)),
    ])
    def test_narrow(self, make_rental, start, goal):
        assert classify_area(make_rental(start=start, goal=goal)) == "narrow"

    @pytest.mark.parametrize("start, goal", [
        ((4, 5), (10, 10)),
        ((5, 4), (10, 10)),
        ((5, 5), (15, 10)),
        ((5, 5), (10, 15)),
        ((0, 0), (19, 19)),
    ])
    def test_wide(self, make_rental, start, goal):
        assert classify_area(make_rental(start=start, goal=goal)) == "wide"


class TestBillingEngine:
    def test_narrow_total(self, pricing, car, make_rental):
        engine = BillingEngine(pricing)
        bill = engine.compute_bill(make_rental(duration_s=100), car)

        assert bill.area == "narrow"
        assert bill.base_price == pytest.approx(100.0)
        assert bill.distance_factor == 1.0
        assert bill.total_price == pytest.approx(100.0)

    def test_wide_discount_and_promo_do_not_compound(self, pricing, scooter, make_rental):
        engine = BillingEngine(pricing)
        rental = make_rental(vehicle_id="T1", start=(0, 0), goal=(3, 3), duration_s=80,
                             discount=True, promo=True)
        bill = engine.compute_bill(rental, scooter)

        primary = 0.25 * 80 * 1.5
        assert bill.area == "wide"
        assert bill.discount_factor == pytest.approx(0.10)
        assert bill.promo_factor == pytest.approx(0.05)
        assert bill.total_price == pytest.approx(primary - 0.10 * primary - 0.05 * primary)
        assert bill.discount_amount == pytest.approx(0.10 * primary)
        assert bill.promo_amount == pytest.approx(0.05 * primary)

    def test_faulted_rental_is_free(self, pricing, car, make_rental):
        engine = BillingEngine(pricing)
        rental = make_rental(start=(0, 0), goal=(19, 19), duration_s=5000,
                             fault=True, promo=True)
        bill = engine.compute_bill(rental, car)

        assert bill.fault
        assert bill.base_price == 0.0
        assert bill.total_price == 0.0

    def test_unknown_vehicle(self, pricing, make_rental):
        with pytest.raises(UnknownVehicleTypeError):
            BillingEngine(pricing).compute_bill(make_rental(), None)

    def test_unpriced_vehicle_type(self, pricing, make_rental):
        hoverboard = Vehicle("H1", "hoverboard", "Acme", "X", 100.0)
        with pytest.raises(UnknownVehicleTypeError):
            BillingEngine(pricing).compute_bill(make_rental(vehicle_id="H1"), hoverboard)

    def test_ids_start_after_start_id(self, pricing, car, make_rental):
        engine = BillingEngine(pricing, start_id=41)
        assert engine.compute_bill(make_rental(), car).bill_id == 42
        assert engine.compute_bill(make_rental(), car).bill_id == 43

    def test_ids_unique_across_threads(self, pricing, car, make_rental):
        engine = BillingEngine(pricing)
        ids = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                bill_id = engine.compute_bill(make_rental(), car).bill_id
                with lock:
                    ids.append(bill_id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(ids) == list(range(1, 201))

    def test_writes_bill_file(self, pricing, car, make_rental, tmp_path):
        engine = BillingEngine(pricing, bills_dir=tmp_path)
        bill = engine.compute_bill(make_rental(), car)
        assert (tmp_path / "1_rentbill.txt").exists()
        assert read_bill(tmp_path / "1_rentbill.txt") == bill


@pytest.fixture
def bill():
    return Bill(
        bill_id=7,
        area="wide",
        vehicle_id="A1",
        timestamp=datetime(2024, 1, 2, 9, 30),
        fault=False,
        base_price=123.45,
        distance_factor=1.5,
        discount_factor=0.1,
        promo_factor=0.0,
        total_price=166.6575,
    )


class TestBillRecord:
    def test_format(self, bill):
        text = format_bill(bill)
        assert "bill: 7" in text
        assert "for: wide area" in text
        assert "date and time: 02.01.2024 09:30" in text
        assert "fault: no" in text

    def test_round_trip(self, bill):
        assert parse_bill_text(format_bill(bill)) == bill

    def test_round_trip_awkward_floats(self, bill):
        awkward = Bill(**{**bill.__dict__, "total_price": 0.1 + 0.2, "base_price": 1 / 3})
        assert parse_bill_text(format_bill(awkward)) == awkward

    def test_missing_key(self, bill):
        text = "\n".join(
            line for line in format_bill(bill).splitlines()
            if not line.startswith("total price")
        )
        with pytest.raises(MalformedRecordError, match="total price"):
            parse_bill_text(text)

    def test_bad_value(self, bill):
        text = format_bill(bill).replace("base price: 123.45", "base price: lots")
        with pytest.raises(MalformedRecordError):
            parse_bill_text(text)

    def test_load_bills_sorted_and_skips_bad(self, bill, tmp_path):
        for bill_id in (3, 1, 2):
            write_bill(Bill(**{**bill.__dict__, "bill_id": bill_id}), tmp_path)
        (tmp_path / "9_rentbill.txt").write_text("garbage\n")

        bills = load_bills(tmp_path)
        assert [b.bill_id for b in bills] == [1, 2, 3]

    def test_load_bills_missing_dir(self, tmp_path):
        assert load_bills(tmp_path / "nope") == []
