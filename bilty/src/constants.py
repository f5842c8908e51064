"""
Application configuration and constants for Bilty API Server.

This module centralizes environment-based configuration, session limits,
regular expressions, business rates, timezones, and other constants.

Configuration values can be overridden via environment variables.
"""

from os import environ
from zoneinfo import ZoneInfo


# ---------------------------------------------------------------------------
# Application metadata
# ---------------------------------------------------------------------------
API_TITLE = "Bilty API Server"
API_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# PostgreSQL configuration
# ---------------------------------------------------------------------------
PSQL_DB_DRIVER = environ.get("PSQL_DB_DRIVER", "postgresql")
PSQL_DB_USERNAME = environ.get("PSQL_DB_USERNAME", "postgres")
PSQL_DB_PORT = environ.get("PSQL_DB_PORT", "5432")
PSQL_DB_PASSWORD = environ.get("PSQL_DB_PASSWORD", "password")
PSQL_DB_HOST = environ.get("PSQL_DB_HOST", "localhost")
PSQL_DB_NAME = environ.get("PSQL_DB_NAME", "postgres")

# Full SQLAlchemy URL, takes precedence over the PSQL_* values when set
DB_URL = environ.get(
    "DB_URL",
    f"{PSQL_DB_DRIVER}://{PSQL_DB_USERNAME}:{PSQL_DB_PASSWORD}@{PSQL_DB_HOST}:{PSQL_DB_PORT}/{PSQL_DB_NAME}",
)


# ---------------------------------------------------------------------------
# OpenObserve configuration
# ---------------------------------------------------------------------------
OPENOBSERVE_ENABLED = environ.get("OPENOBSERVE_ENABLED", "true").lower() == "true"
OPENOBSERVE_PROTOCOL = environ.get("OPENOBSERVE_PROTOCOL", "http")
OPENOBSERVE_HOST = environ.get("OPENOBSERVE_HOST", "localhost")
OPENOBSERVE_PORT = environ.get("OPENOBSERVE_PORT", "5080")
OPENOBSERVE_USERNAME = environ.get("OPENOBSERVE_USERNAME", "admin@bilty.com")
OPENOBSERVE_PASSWORD = environ.get("OPENOBSERVE_PASSWORD", "password")
OPENOBSERVE_ORG = environ.get("OPENOBSERVE_ORG", "bilty")
OPENOBSERVE_STREAM = environ.get("OPENOBSERVE_STREAM", "bilty-core-server")
OPENOBSERVE_TIMEOUT = 5  # Request timeout (in seconds)


# ---------------------------------------------------------------------------
# Accounts and sessions
# ---------------------------------------------------------------------------
DEFAULT_USER_PASSWORD = environ.get("DEFAULT_USER_PASSWORD", "password")
MAX_USER_TOKENS = 5  # Maximum tokens per user
MAX_TOKEN_VALIDITY = 7 * 24 * 60 * 60  # Token validity (in seconds, 7 days)


# ---------------------------------------------------------------------------
# Regex constants (input validation)
# ---------------------------------------------------------------------------
REGEX_VEHICLE_NUMBER = r"^[A-Z]{2}[0-9]{2}[A-Z]{2}[0-9]{4}$"
REGEX_VEHICLE_SEPARATORS = r"[\s\-]"
REGEX_MOBILE_NUMBER = r"^[6-9]\d{9}$"
REGEX_MOBILE_NUMBER_WITH_CODE = r"^91[6-9]\d{9}$"
REGEX_MOBILE_SEPARATORS = r"[\s\-\+]"


# ---------------------------------------------------------------------------
# Bilty constants
# ---------------------------------------------------------------------------
BILTY_NUMBER_PREFIX = "BLT"
DEFAULT_PRODUCT_NAME = "Tomato"
DEFAULT_UNIT_TYPE = "kg"
VEHICLE_PRODUCT_INFO = "Tomato Transport"

# Crates/bags per unit of each unit type
UNIT_CONVERSION_RATES = {
    "kg": 0.02,
    "bag": 1,
    "crate": 1,
    "carrate": 1,
    "tons": 20,
    "quintal": 2,
}


# ---------------------------------------------------------------------------
# Schedule constants
# ---------------------------------------------------------------------------
SCHEDULE_DAILY_RATE = 500  # Driver payment per operating day
MAX_OPERATING_DAYS = 31


# ---------------------------------------------------------------------------
# Export constants
# ---------------------------------------------------------------------------
BILLING_CSV_COLUMNS = [
    "Vehicle No",
    "Date",
    "Seller",
    "Amount",
    "Advance",
    "Net Amount",
    "Status",
]
BILLING_CSV_FILENAME = "billing-records-{date}.csv"


# ---------------------------------------------------------------------------
# Timezone constants
# ---------------------------------------------------------------------------
TMZ_PRIMARY = ZoneInfo("UTC")
TMZ_SECONDARY = ZoneInfo("Asia/Kolkata")
