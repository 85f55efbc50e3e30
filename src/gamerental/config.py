"""Runtime configuration: environment variables and store-wide constants."""

import os

DB_PATH = os.getenv("GAMERENTAL_DB_PATH", "data/gamerental.sqlite")
LOAD_SEED_DATA = os.getenv("GAMERENTAL_SEED", "1").strip().lower() in (
    "1",
    "true",
    "yes",
    "on",
)
DEBUG = bool(os.getenv("DEBUG"))
LOG_FILE = os.getenv("GAMERENTAL_LOG_FILE", "").strip() or None

# identifier prefixes
ORDER_ID_PREFIX = "gamerentalorder"
TRACKING_ID_PREFIX = "trackingid"
GAME_ID_PREFIX = "game"
GAME_ID_DIGITS = 4

# order placement
ORDER_DUE_DAYS = 30
INITIAL_TRACKING_STATUS = "Order Received"
INITIAL_TRACKING_LOCATION = "Los Angeles,CA"
INITIAL_COURIER = "USPS"

# field limits
MAX_LOGIN_LENGTH = 50
MAX_PASSWORD_LENGTH = 30
COUNTRY_CODE = "+1-"

ROLES = ("customer", "employee", "manager")
STAFF_ROLES = ("employee", "manager")

PAGE_SIZE = 5
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
