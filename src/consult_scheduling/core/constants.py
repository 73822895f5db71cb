"""Engine constants that are not meant to be tuned per deployment."""

# Database field lengths
MAX_STRING_LENGTH = 255
MAX_TITLE_LENGTH = 200
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# Whole-day bounds used when a day is reported as a single unavailable block
DAY_START_TIME = "00:00"
DAY_END_TIME = "23:59"
MINUTES_PER_DAY = 24 * 60

# Appointments stored without a duration are treated as this long
DEFAULT_APPOINTMENT_DURATION_MINUTES = 30

# Reasons attached to unavailable slots
NOT_AVAILABLE_ON_DAY_REASON = "Not available on this day"
EXISTING_APPOINTMENT_REASON = "Existing appointment"
DEFAULT_BREAK_TITLE = "Break"
OUTSIDE_MODIFIED_HOURS_REASON = "Outside modified hours"

# Upper bound on occurrences validated for a recurring series
MAX_RECURRING_OCCURRENCES = 52
