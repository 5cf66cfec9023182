"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

MOODLE_REST_PATH = "/webservice/rest/server.php"
MOODLE_ROWS_PER_PAGE = 10
MOODLE_RETRY_STATUSES = frozenset({520, 522, 524})
DEFAULT_MOODLE_TIMEOUT = 60
DEFAULT_MOODLE_RETRIES = 3

DEFAULT_TIMEZONE = "UTC"

# Grade thresholds used when a report row carries a grade but no status.
GRADE_PRESENT_MIN = 2.0
GRADE_LATE_MIN = 1.0
