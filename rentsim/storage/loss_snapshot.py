"""Write and read the loss-analysis Parquet snapshot."""

import logging
from pathlib import Path
from typing import Dict

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from rentsim.config.constants import LOSS_SNAPSHOT_FILE, LOSS_SNAPSHOT_SCHEMA_VERSION
from rentsim.errors import PersistenceError
from rentsim.reporting.loss_analysis import LossRecord
from rentsim.storage.schema_definition import LOSS_SCHEMA, SNAPSHOT_RECORD_TAG

logger = logging.getLogger(__name__)


def write_loss_snapshot(records: Dict[str, LossRecord], output_dir: Path) -> Path:
    """Write one row per vehicle type to ``<output_dir>/loss_analysis.parquet``.

    Args:
        records: Output of :func:`rentsim.reporting.loss_analysis.analyze_losses`.
        output_dir: Snapshot directory, created if needed.

    Returns:
        Path to the written Parquet file.

    Raises:
        PersistenceError: the snapshot could not be written.
    """
    rows = [
        {
            "vehicle_type": record.vehicle_type,
            "vehicle_id": record.vehicle_id,
            "manufacturer": record.manufacturer,
            "model": record.model,
            "purchase_price": record.purchase_price,
            "loss": float(record.loss),
        }
        for _, record in sorted(records.items())
    ]
    df = pd.DataFrame(rows, columns=LOSS_SCHEMA.names)

    output_path = Path(output_dir) / LOSS_SNAPSHOT_FILE
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        table = pa.Table.from_pandas(df, schema=LOSS_SCHEMA, preserve_index=False)
        pq.write_table(table, output_path, compression="snappy")
    except (OSError, pa.ArrowException) as exc:
        raise PersistenceError(f"Cannot write loss snapshot {output_path}: {exc}") from exc

    logger.info(f"Loss analysis written to {output_path}")
    return output_path


def read_loss_snapshot(path: Path) -> Dict[str, LossRecord]:
    """Read a snapshot back, checking its columns, record tag and version.

    Raises:
        PersistenceError: the file is missing, unreadable or of another schema.
    """
    path = Path(path)
    try:
        table = pq.read_table(path)
    except (OSError, pa.ArrowException) as exc:
        raise PersistenceError(f"Cannot read loss snapshot {path}: {exc}") from exc

    metadata = table.schema.metadata or {}
    record_tag = metadata.get(b"record", b"").decode()
    version = metadata.get(b"schema_version", b"").decode()
    if record_tag != SNAPSHOT_RECORD_TAG:
        raise PersistenceError(f"{path} is not a loss snapshot (record={record_tag!r})")
    if version != LOSS_SNAPSHOT_SCHEMA_VERSION:
        raise PersistenceError(
            f"{path}: unsupported snapshot version {version!r} "
            f"(expected {LOSS_SNAPSHOT_SCHEMA_VERSION})"
        )

    expected = [(f.name, f.type) for f in LOSS_SCHEMA]
    actual = [(f.name, f.type) for f in table.schema]
    if actual != expected:
        raise PersistenceError(f"{path}: column layout does not match the loss schema")

    records: Dict[str, LossRecord] = {}
    for row in table.to_pylist():
        records[row["vehicle_type"]] = LossRecord(
            vehicle_type=row["vehicle_type"],
            loss=row["loss"],
            vehicle_id=row["vehicle_id"],
            manufacturer=row["manufacturer"],
            model=row["model"],
            purchase_price=row["purchase_price"],
        )
    return records
