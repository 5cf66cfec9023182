import os

from ..core.constants import DEFAULT_TIMEZONE

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "moodle"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "moodle"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

MOODLE_BASE_URL = os.getenv("MOODLE_BASE_URL", "")
MOODLE_ATTENDANCE_TOKEN = os.getenv("MOODLE_ATTENDANCE_TOKEN", "")
MOODLE_TIMEOUT = int(os.getenv("MOODLE_TIMEOUT", "60"))

LTI_CONSUMER_KEY = os.getenv("LTI_CONSUMER_KEY", "")

DISPLAY_TIMEZONE = os.getenv("DISPLAY_TIMEZONE", DEFAULT_TIMEZONE)
STATUS_ACRONYMS = os.getenv("STATUS_ACRONYMS", "")

# The tool runs inside a Moodle iframe on another origin.
SESSION_COOKIE_NAME = "moodle_lti_session"
SESSION_COOKIE_SECURE = True
SESSION_COOKIE_SAMESITE = "None"
SESSION_LIFETIME_HOURS = 24

LANDING_PATHS = {
    "manager": "/",
    "instructor": "/report/direct/{course_id}",
    "student": "/student-attendance/{course_id}",
    "unknown": "/",
}
