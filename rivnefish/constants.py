"""Constants and configuration values for the rivnefish.com catalog."""

# Upstream API
DEFAULT_API_URL = "https://rivnefish.com/api/v1"
PLACES_PATH = "/places"
FISH_PATH = "/fish"
REPORTS_PATH = "/reports"
# Reports are only listed page by page, newest first.
MAX_REPORT_PAGES = 20
HTTP_TIMEOUT_SECONDS = 10.0

# Place permit values
PERMIT_PAID = "paid"
PERMIT_FREE = "free"

PERMIT_LABELS = {
    PERMIT_PAID: "Платно",
    PERMIT_FREE: "Безкоштовно",
}

# Fishing hours
TIME_FULL_DAY = "full_day"
TIME_DAY_ONLY = "day_only"

HOURS_LABELS = {
    TIME_FULL_DAY: "цілодобово",
    TIME_DAY_ONLY: "вдень",
}

# Normalization defaults
NO_RATING = "--"
AREA_UNIT = "Га"
UA_PHONE_PREFIX = "380"

# Description lengths (characters)
DESC_LENGTH = 300
DESC_SHORT_LENGTH = 100
ELLIPSIS = "..."

# Display
MORE_ON_WEBSITE = "детальніше на вебсайті"
REPORTS_LABEL = "звітів"
