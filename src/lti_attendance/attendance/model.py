from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.enums import AttendanceStatus, IssueKind


def session_key(date: str, time: str, session_name: str) -> str:
    """Identity of a physical session, independent of the row that produced it."""
    return f"{date}_{time}_{session_name}"


# ---------------------------------------------------------------------------
# Upstream rows (Moodle database read-models)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttendanceActivity:
    activity_id: int
    course_id: int
    name: str
    course_name: Optional[str] = None


@dataclass(frozen=True)
class SessionRecord:
    """One row of mdl_attendance_sessions joined with its activity name."""

    session_ref: int
    name: str
    sessdate: int
    duration: int = 0
    description: str = ""
    attendance_id: Optional[int] = None


@dataclass(frozen=True)
class StatusDefinition:
    """One row of mdl_attendance_statuses. Acronyms are institution-specific."""

    status_id: int
    attendance_id: int
    acronym: str
    description: str = ""
    grade: float = 0.0


@dataclass(frozen=True)
class Student:
    student_id: int
    username: str
    firstname: str
    lastname: str
    email: str = ""
    idnumber: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip() or f"User {self.student_id}"

    def to_dict(self) -> dict:
        return {
            "id": self.student_id,
            "username": self.username,
            "firstname": self.firstname,
            "lastname": self.lastname,
            "email": self.email,
            "idnumber": self.idnumber,
        }


@dataclass(frozen=True)
class CourseRef:
    course_id: int
    name: str

    def to_dict(self) -> dict:
        return {"courseId": self.course_id, "courseName": self.name}


@dataclass(frozen=True)
class AttendanceLogRow:
    """Read-model: one (session, student) attendance log with its status acronym."""

    student_id: int
    student_name: str
    session_ref: int
    sessdate: Optional[int]
    status_acronym: str
    session_name: str = ""

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "AttendanceLogRow":
        """Build from a loosely-typed mapping; raises ValueError when malformed."""

        student_id = row.get("studentId", row.get("student_id"))
        session_ref = row.get("sessionId", row.get("session_ref"))
        if student_id is None or session_ref is None or isinstance(student_id, bool):
            raise ValueError("log row needs studentId and sessionId")
        sessdate = row.get("sessdate")
        return cls(
            student_id=int(student_id),
            student_name=str(row.get("studentName", row.get("student_name")) or "").strip(),
            session_ref=int(session_ref),
            sessdate=int(sessdate) if sessdate not in (None, "") else None,
            status_acronym=str(row.get("statusAcronym", row.get("status_acronym")) or ""),
            session_name=str(row.get("sessionName", row.get("session_name")) or ""),
        )


# ---------------------------------------------------------------------------
# Parsed intermediate representation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StudentRef:
    key: str
    name: str
    course_name: str = ""


@dataclass(frozen=True)
class AttendanceMark:
    student_key: str
    session_id: str
    status: AttendanceStatus


@dataclass(frozen=True)
class AggregationIssue:
    kind: IssueKind
    detail: str

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "detail": self.detail}


@dataclass
class AggregationStats:
    skipped_rows: int = 0
    malformed_headers: int = 0
    malformed_dates: int = 0
    unknown_statuses: int = 0
    unknown_sessions: int = 0
    issues: list[AggregationIssue] = field(default_factory=list)

    _COUNTERS = {
        IssueKind.MALFORMED_ROW: "skipped_rows",
        IssueKind.MALFORMED_HEADER: "malformed_headers",
        IssueKind.MALFORMED_DATE: "malformed_dates",
        IssueKind.UNKNOWN_STATUS_CODE: "unknown_statuses",
        IssueKind.UNKNOWN_SESSION: "unknown_sessions",
    }

    def record(self, kind: IssueKind, detail: str) -> None:
        attr = self._COUNTERS[kind]
        setattr(self, attr, getattr(self, attr) + 1)
        self.issues.append(AggregationIssue(kind=kind, detail=detail))

    def merge(self, other: "AggregationStats") -> None:
        for issue in other.issues:
            self.record(issue.kind, issue.detail)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)

    def to_dict(self) -> dict:
        return {
            "skippedRows": self.skipped_rows,
            "malformedHeaders": self.malformed_headers,
            "malformedDates": self.malformed_dates,
            "unknownStatuses": self.unknown_statuses,
            "unknownSessions": self.unknown_sessions,
            "issues": [i.to_dict() for i in self.issues],
        }


@dataclass
class ParsedAttendance:
    """Strongly-typed input of the table builder, produced by either parser."""

    sessions: list["SessionInfo"] = field(default_factory=list)
    students: list[StudentRef] = field(default_factory=list)
    marks: list[AttendanceMark] = field(default_factory=list)
    stats: AggregationStats = field(default_factory=AggregationStats)
    reported_totals: dict[str, dict[AttendanceStatus, int]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Output aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionInfo:
    session_id: str
    date: str
    time: str
    session_name: str
    timestamp: int

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "date": self.date,
            "time": self.time,
            "sessionName": self.session_name,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SessionDate:
    date: str
    timestamp: int
    sessions: tuple[SessionInfo, ...]

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "timestamp": self.timestamp,
            "sessions": [s.to_dict() for s in self.sessions],
        }


@dataclass
class StudentAttendance:
    student_key: str
    student_name: str
    course_name: str
    sessions: dict[str, AttendanceStatus]
    total_present: int = 0
    total_absent: int = 0
    total_late: int = 0
    total_excused: int = 0
    total_sessions: int = 0
    reported_totals: Optional[dict[AttendanceStatus, int]] = None

    @property
    def total_unmarked(self) -> int:
        return sum(1 for s in self.sessions.values() if s is AttendanceStatus.UNMARKED)

    def to_dict(self) -> dict:
        out = {
            "studentKey": self.student_key,
            "studentName": self.student_name,
            "courseName": self.course_name,
            "sessions": {sid: status.value for sid, status in self.sessions.items()},
            "totalPresent": self.total_present,
            "totalAbsent": self.total_absent,
            "totalLate": self.total_late,
            "totalExcused": self.total_excused,
            "totalSessions": self.total_sessions,
        }
        if self.reported_totals:
            out["reportedTotals"] = {status.value: n for status, n in self.reported_totals.items()}
        return out


@dataclass
class AttendanceTableData:
    students: list[StudentAttendance] = field(default_factory=list)
    session_dates: list[SessionDate] = field(default_factory=list)
    stats: AggregationStats = field(default_factory=AggregationStats, compare=False)

    @classmethod
    def empty(cls) -> "AttendanceTableData":
        return cls()

    def all_sessions(self) -> list[SessionInfo]:
        return [s for d in self.session_dates for s in d.sessions]

    def to_dict(self, *, include_stats: bool = False) -> dict:
        out = {
            "students": [s.to_dict() for s in self.students],
            "sessionDates": [d.to_dict() for d in self.session_dates],
        }
        if include_stats:
            out["diagnostics"] = self.stats.to_dict()
        return out
