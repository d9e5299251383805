"""Command-line interface for the rental simulation."""

import json
import logging
import sys
from pathlib import Path

import click

from rentsim.billing.bill_record import load_bills
from rentsim.billing.engine import BillingEngine
from rentsim.config.constants import THROTTLE_DELAY_SECONDS
from rentsim.config.properties import load_app_config, load_pricing, load_repair
from rentsim.errors import ConfigurationError, PersistenceError, SimulationTimeoutError
from rentsim.faults.fault_model import FaultModel
from rentsim.fleet.vehicle_parser import load_vehicles
from rentsim.rentals.registry import RentalRegistry
from rentsim.rentals.rental_parser import load_rentals
from rentsim.reporting.loss_analysis import analyze_losses
from rentsim.reporting.reports import daily_report, summary_report
from rentsim.simulation.movement import VehicleMovementSimulator
from rentsim.simulation.scheduler import SimulationScheduler
from rentsim.storage.loss_snapshot import write_loss_snapshot

REPORT_FILE = "reports.json"


@click.command()
@click.option("--config", "config_path", default="config.properties",
              type=click.Path(dir_okay=False), help="Application properties file.")
@click.option("--seed", default=None, type=int, help="Fault model RNG seed.")
@click.option("--throttle", default=THROTTLE_DELAY_SECONDS, help="Pause between time-groups (s).")
@click.option("--time-scale", default=1.0, help="Multiplier on per-cell wait times (0 = no waits).")
@click.option("--workers", default=8, help="Number of worker threads.")
@click.option("--group-timeout", default=None, type=float, help="Barrier timeout per time-group (s).")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def main(config_path, seed, throttle, time_scale, workers, group_timeout, verbose):
    """Replay a rental log over the city grid and bill every rental."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    fault_model = FaultModel(seed=seed)
    try:
        config = load_app_config(Path(config_path))
        pricing = load_pricing(config.pricing_file)
        repair = load_repair(config.repair_file)

        # Load feeds
        logger.info(f"Loading vehicles from {config.vehicles_file}...")
        vehicles = load_vehicles(config.vehicles_file)
        registry = RentalRegistry(vehicles, fault_model)
        logger.info(f"Loading rentals from {config.rentals_file}...")
        load_rentals(config.rentals_file, registry)
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        sys.exit(2)

    # Continue bill numbering after whatever is already on disk
    existing = load_bills(config.bills_dir) if config.bills_dir.is_dir() else []
    start_id = existing[-1].bill_id if existing else 0

    scheduler = SimulationScheduler(
        registry=registry,
        billing=BillingEngine(pricing, bills_dir=config.bills_dir, start_id=start_id),
        movement=VehicleMovementSimulator(fault_model, time_scale=time_scale),
        n_workers=workers,
        throttle_seconds=throttle,
        group_timeout=group_timeout,
    )
    try:
        result = scheduler.run()
    except SimulationTimeoutError as exc:
        logger.error(f"{exc}; {len(exc.partial.bills)} bills were written before the timeout")
        sys.exit(1)

    # Reports
    daily = daily_report(result.bills, vehicles, repair)
    summary = summary_report(result.bills, vehicles, repair)
    report = {
        "daily": {
            f"{day:%d.%m.%Y}": {k: float(v) for k, v in row.items()}
            for day, row in daily.iterrows()
        },
        "summary": summary.to_dict(),
        "states": result.count_by_state(),
    }

    try:
        config.loss_analysis_dir.mkdir(parents=True, exist_ok=True)
        report_path = config.loss_analysis_dir / REPORT_FILE
        report_path.write_text(json.dumps(report, indent=2) + "\n")
        logger.info(f"Reports written to {report_path}")

        losses = analyze_losses(result.bills, vehicles, repair)
        write_loss_snapshot(losses, config.loss_analysis_dir)
    except (OSError, PersistenceError) as exc:
        logger.error(f"Cannot write results: {exc}")
        sys.exit(1)

    for vehicle_id, faults in fault_model.faults_by_vehicle().items():
        logger.info(f"Vehicle {vehicle_id}: " + ", ".join(f.description for f in faults))

    logger.info("Done.")


if __name__ == "__main__":
    main()
