from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Attendance category, serialized as a single character."""

    PRESENT = "P"
    ABSENT = "A"
    LATE = "L"
    EXCUSED = "E"
    UNMARKED = "-"


class Role(str, Enum):
    """Role derived from the LTI launch, used for route permissions."""

    MANAGER = "manager"
    INSTRUCTOR = "instructor"
    STUDENT = "student"
    UNKNOWN = "unknown"


class IssueKind(str, Enum):
    """Non-fatal problems recorded while aggregating upstream data."""

    MALFORMED_HEADER = "malformed_header"
    MALFORMED_DATE = "malformed_date"
    MALFORMED_ROW = "malformed_row"
    UNKNOWN_STATUS_CODE = "unknown_status_code"
    UNKNOWN_SESSION = "unknown_session"
