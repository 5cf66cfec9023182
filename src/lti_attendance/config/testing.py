SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": "localhost",
    "port": 3306,
    "user": "root",
    "password": "",
    "database": "moodle_test",
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

MOODLE_BASE_URL = "https://moodle.test"
MOODLE_ATTENDANCE_TOKEN = "test-token"
MOODLE_TIMEOUT = 5

LTI_CONSUMER_KEY = "test-consumer"

DISPLAY_TIMEZONE = "UTC"
STATUS_ACRONYMS = ""

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
