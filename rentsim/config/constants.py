"""Grid geometry, battery model, pricing keys and file formats."""

# =============================================================================
# City Grid
# =============================================================================

GRID_SIZE = 20
GRID_MIN = 0
GRID_MAX = GRID_SIZE - 1

# Inner ring of the grid; any coordinate outside it makes a rental "wide"
NARROW_AREA_MIN = 5
NARROW_AREA_MAX = 14

AREA_WIDE = "wide"
AREA_NARROW = "narrow"

# =============================================================================
# Vehicle Types
# =============================================================================

VEHICLE_TYPES = ["car", "bicycle", "scooter"]

# Feed tokens -> canonical type (the feed is bilingual)
VEHICLE_TYPE_ALIASES = {
    "car": "car",
    "automobil": "car",
    "bicycle": "bicycle",
    "bicikl": "bicycle",
    "scooter": "scooter",
    "trotinet": "scooter",
}

YES_TOKENS = {"yes", "da", "true", "1"}

INITIAL_BATTERY_LEVEL = 100

# =============================================================================
# Battery Model
# =============================================================================

BATTERY_FULL = 100
BATTERY_FLOOR = 5              # Never shown fully dead on the grid
BATTERY_DRAIN_PER_ROUTE = 33   # Percentage points consumed by one full route
LOW_BATTERY_THRESHOLD = 15     # Below this the vehicle is removed mid-route

# Charging between rentals: percentage points per elapsed minute
CHARGE_RATE_PER_MINUTE = 1

# =============================================================================
# Faults
# =============================================================================

FAULT_DESCRIPTIONS = [
    "engine failure",
    "battery issue",
    "brake failure",
    "electrical fault",
    "software glitch",
    "tire puncture",
]

# =============================================================================
# Scheduler
# =============================================================================

THROTTLE_DELAY_SECONDS = 5.0   # Cooldown between dispatch waves
DISCOUNT_EVERY_N_RENTALS = 10

# =============================================================================
# Pricing / Repair property keys
# =============================================================================

UNIT_PRICE_KEYS = {
    "car": "CAR_UNIT_PRICE",
    "bicycle": "BIKE_UNIT_PRICE",
    "scooter": "SCOOTER_UNIT_PRICE",
}

REPAIR_COEFFICIENT_KEYS = {
    "car": "CAR_REPAIR_COEFFICIENT",
    "bicycle": "BICYCLE_REPAIR_COEFFICIENT",
    "scooter": "SCOOTER_REPAIR_COEFFICIENT",
}

# =============================================================================
# Date Formats & File Names
# =============================================================================

RENTAL_DATETIME_FORMAT = "%d.%m.%Y %H:%M"
PURCHASE_DATE_FORMAT = "%d.%m.%Y."

BILL_FILE_TEMPLATE = "{bill_id}_rentbill.txt"
BILL_FILE_GLOB = "*_rentbill.txt"
LOSS_SNAPSHOT_FILE = "loss_analysis.parquet"
LOSS_SNAPSHOT_SCHEMA_VERSION = "1"
