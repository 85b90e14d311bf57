"""Application constants."""

USER_AGENT = "UK-Fuel-Tracker/1.0 (fuelwatch)"
DEFAULT_FUEL_TYPES = ("E10", "E5", "B7", "SDV")
COMMANDS = (
    "ingest",
    "fetch",
    "query",
)
SORT_KEYS = ("distance", "price", "retailer")
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20

# Archive policy.
ARCHIVE_MAX_AGE_HOURS = 24
ARCHIVE_CHANGE_FRACTION = 0.05
ARCHIVE_PRICE_TOLERANCE = 1.0

# Query defaults, in the selected distance unit.
DEFAULT_POSTCODE_MAX_DISTANCE = 15.0
DEFAULT_COORDINATE_MAX_DISTANCE = 30.0

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "retailer",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "stations",
    "error_code",
    "message",
)
