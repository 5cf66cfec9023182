import os

from ..core.constants import DEFAULT_TIMEZONE

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "moodle"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

MOODLE_BASE_URL = os.getenv("MOODLE_BASE_URL", "http://localhost:8080")
# Web service token with access to report builder and mod_attendance functions.
MOODLE_ATTENDANCE_TOKEN = os.getenv("MOODLE_ATTENDANCE_TOKEN", "")
MOODLE_TIMEOUT = int(os.getenv("MOODLE_TIMEOUT", "60"))

# Unset: launches are accepted without a consumer key check.
LTI_CONSUMER_KEY = os.getenv("LTI_CONSUMER_KEY", "")

DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", DEFAULT_TIMEZONE)
# JSON object, e.g. {"PR": "present", "LT": "late"}
STATUS_ACRONYMS = os.getenv("STATUS_ACRONYMS", "")

SESSION_COOKIE_NAME = "moodle_lti_session"
SESSION_COOKIE_SECURE = False
SESSION_COOKIE_SAMESITE = "Lax"
SESSION_LIFETIME_HOURS = 24

LANDING_PATHS = {
    "manager": "/",
    "instructor": "/report/direct/{course_id}",
    "student": "/student-attendance/{course_id}",
    "unknown": "/",
}
