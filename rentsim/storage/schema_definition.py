"""PyArrow schema for the loss-analysis snapshot."""

import pyarrow as pa

from rentsim.config.constants import LOSS_SNAPSHOT_SCHEMA_VERSION

SNAPSHOT_RECORD_TAG = "loss_analysis"


def build_loss_schema() -> pa.Schema:
    """Build the schema for ``loss_analysis.parquet``.

    One row per vehicle type. Vehicle columns are null when no faulted rental
    of that type produced a loss. The record tag and schema version travel in
    the schema metadata and are checked on read.
    """
    fields = [
        pa.field("vehicle_type", pa.string(), nullable=False),
        pa.field("vehicle_id", pa.string()),
        pa.field("manufacturer", pa.string()),
        pa.field("model", pa.string()),
        pa.field("purchase_price", pa.float64()),
        pa.field("loss", pa.float64(), nullable=False),
    ]
    metadata = {
        "record": SNAPSHOT_RECORD_TAG,
        "schema_version": LOSS_SNAPSHOT_SCHEMA_VERSION,
    }
    return pa.schema(fields, metadata=metadata)


LOSS_SCHEMA = build_loss_schema()
