import os


def get_settings_module() -> str:
    """Settings module for APP_ENV (default: development)."""

    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "lti_attendance.config.production"

    if env in {"test", "testing"}:
        return "lti_attendance.config.testing"

    return "lti_attendance.config.development"
