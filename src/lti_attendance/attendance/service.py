from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import timezone, tzinfo
from typing import Any, Optional, Sequence

from ..cohorts.model import Cohort
from ..core.enums import AttendanceStatus
from ..core.exceptions import NotFoundError
from ..moodle.client import MoodleClient
from .aggregator import build_table
from .field_mapping import FieldMapping, detect_field_mapping
from .model import AttendanceTableData, CourseRef, ParsedAttendance, StudentRef
from .parsers import parse_logs, parse_report
from .repository import AttendanceRepository
from .status_mapping import StatusMapping

logger = logging.getLogger(__name__)


def attendance_percentage(attended: int, marked: int) -> int:
    """Share of marked sessions attended, rounded half up; 0 when nothing is marked."""

    if marked <= 0:
        return 0
    return int(math.floor(attended * 100 / marked + 0.5))


@dataclass(frozen=True)
class CourseFailure:
    course_id: int
    course_name: str
    error: str

    def to_dict(self) -> dict:
        return {"courseId": self.course_id, "courseName": self.course_name, "error": self.error}


@dataclass
class CohortTable:
    cohort: Cohort
    table: AttendanceTableData
    total_members: int = 0
    courses: list[CourseRef] = field(default_factory=list)
    failed_courses: list[CourseFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        out = self.table.to_dict(include_stats=True)
        out.update(
            {
                "cohortId": self.cohort.cohort_id,
                "cohortName": self.cohort.name,
                "totalStudents": self.total_members,
                "courses": [c.to_dict() for c in self.courses],
                "failedCourses": [f.to_dict() for f in self.failed_courses],
            }
        )
        return out


@dataclass
class AttendanceCounts:
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0

    @property
    def marked(self) -> int:
        return self.present + self.absent + self.late + self.excused

    @property
    def percentage(self) -> int:
        return attendance_percentage(self.present + self.late + self.excused, self.marked)

    def add(self, status: AttendanceStatus) -> None:
        if status is AttendanceStatus.PRESENT:
            self.present += 1
        elif status is AttendanceStatus.ABSENT:
            self.absent += 1
        elif status is AttendanceStatus.LATE:
            self.late += 1
        elif status is AttendanceStatus.EXCUSED:
            self.excused += 1

    def to_dict(self) -> dict:
        return {
            "totalSessions": self.marked,
            "present": self.present,
            "absent": self.absent,
            "late": self.late,
            "excused": self.excused,
            "percentage": self.percentage,
        }


@dataclass
class CourseSummary:
    course_id: int
    course_name: str
    sessions: list[dict] = field(default_factory=list)
    counts: AttendanceCounts = field(default_factory=AttendanceCounts)

    def to_dict(self) -> dict:
        return {
            "courseId": self.course_id,
            "courseName": self.course_name,
            "sessions": self.sessions,
            "totalSessions": self.counts.marked,
            "attendanceStats": self.counts.to_dict(),
        }


@dataclass
class StudentSummary:
    student_id: int
    courses: list[CourseSummary] = field(default_factory=list)
    overall: AttendanceCounts = field(default_factory=AttendanceCounts)
    failed_courses: list[CourseFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "courses": [c.to_dict() for c in self.courses],
            "overallStats": self.overall.to_dict(),
            "failedCourses": [f.to_dict() for f in self.failed_courses],
        }


@dataclass
class DirectSessions:
    """Sessions of a course's attendance activity as Moodle Web Services return them."""

    course_id: int
    attendance_id: int
    sessions: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "courseId": self.course_id,
            "attendanceId": self.attendance_id,
            "totalSessions": len(self.sessions),
            "sessions": self.sessions,
        }


@dataclass
class ReportTable:
    table: AttendanceTableData
    field_mapping: FieldMapping
    warnings: list[str] = field(default_factory=list)
    report_name: str = ""

    def to_dict(self) -> dict:
        out = self.table.to_dict(include_stats=True)
        out.update(
            {
                "reportName": self.report_name,
                "fieldMapping": self.field_mapping.to_dict(),
                "warnings": list(self.warnings),
            }
        )
        return out


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        status_overrides: Optional[StatusMapping] = None,
        tz: tzinfo = timezone.utc,
    ):
        self._attendance = attendance
        self._overrides = status_overrides
        self._tz = tz

    def _status_mapping(self, course_id: int) -> StatusMapping:
        statuses = list(self._attendance.list_statuses(course_id))
        if not statuses:
            return self._overrides or StatusMapping.default()
        return StatusMapping.from_statuses(statuses, self._overrides)

    def _parse_course(
        self,
        course_id: int,
        *,
        course_name: str,
        student_ids: Optional[Sequence[int]],
        date_from: Optional[int],
        date_to: Optional[int],
        session_prefix: str = "",
    ) -> ParsedAttendance:
        sessions = list(self._attendance.list_sessions(course_id, date_from=date_from, date_to=date_to))
        if session_prefix:
            sessions = [replace(s, name=f"{session_prefix} - {s.name}") for s in sessions]
        statuses = self._status_mapping(course_id)
        logs = self._attendance.list_log_rows(
            course_id, date_from=date_from, date_to=date_to, student_ids=student_ids
        )
        if student_ids:
            wanted = set(student_ids)
            logs = [row for row in logs if row.student_id in wanted]
        return parse_logs(logs, statuses, sessions=sessions, course_name=course_name, tz=self._tz)

    def course_table(
        self,
        course_id: int,
        *,
        student_id: Optional[int] = None,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        sort_students: bool = False,
    ) -> AttendanceTableData:
        """Dense table for one course, read from the Moodle database."""

        activities = self._attendance.list_activities(course_id)
        if not activities:
            logger.info("Course %s has no attendance activity", course_id)
            return AttendanceTableData.empty()

        course_name = next((a.course_name for a in activities if a.course_name), None) or f"Course {course_id}"
        parsed = self._parse_course(
            course_id,
            course_name=course_name,
            student_ids=[student_id] if student_id else None,
            date_from=date_from,
            date_to=date_to,
        )

        roster = [
            s for s in self._attendance.list_students(course_id) if not student_id or s.student_id == student_id
        ]
        merged = ParsedAttendance(
            sessions=parsed.sessions,
            students=[StudentRef(str(s.student_id), s.full_name, course_name) for s in roster] + parsed.students,
            marks=parsed.marks,
            stats=parsed.stats,
        )
        table = build_table(merged, sort_students=sort_students)
        logger.debug(
            "Course %s: %d students x %d sessions", course_id, len(table.students), len(table.all_sessions())
        )
        return table

    def cohort_table(
        self,
        cohort: Cohort,
        member_ids: Sequence[int],
        *,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        sort_students: bool = True,
    ) -> CohortTable:
        """One table for a cohort across every course its members attend.

        Sessions are named "<course> - <activity>"; a course that fails to
        load is logged and listed in ``failed_courses``.
        """

        member_ids = list(member_ids)
        if not member_ids:
            return CohortTable(cohort=cohort, table=AttendanceTableData.empty())

        courses = list(self._attendance.list_courses_for_students(member_ids))
        members = self._attendance.get_students(member_ids)
        merged = ParsedAttendance(
            students=[StudentRef(str(s.student_id), s.full_name, cohort.name) for s in members]
        )
        failed: list[CourseFailure] = []

        for course in courses:
            try:
                if not self._attendance.list_activities(course.course_id):
                    continue
                parsed = self._parse_course(
                    course.course_id,
                    course_name=cohort.name,
                    student_ids=member_ids,
                    date_from=date_from,
                    date_to=date_to,
                    session_prefix=course.name,
                )
            except Exception as e:
                logger.exception("Failed to load attendance for course %s in cohort %s", course.course_id, cohort.cohort_id)
                failed.append(CourseFailure(course.course_id, course.name, str(e)))
                continue
            merged.sessions.extend(parsed.sessions)
            merged.students.extend(parsed.students)
            merged.marks.extend(parsed.marks)
            merged.stats.merge(parsed.stats)

        table = build_table(merged, sort_students=sort_students)
        logger.info(
            "Cohort %s: %d students, %d courses (%d failed)",
            cohort.cohort_id,
            len(table.students),
            len(courses),
            len(failed),
        )
        return CohortTable(
            cohort=cohort,
            table=table,
            total_members=len(member_ids),
            courses=courses,
            failed_courses=failed,
        )

    def student_summary(
        self,
        student_id: int,
        course_ids: Sequence[int],
        *,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
    ) -> StudentSummary:
        """Per-course and overall counts for one student; courses without marks are left out."""

        summary = StudentSummary(student_id=student_id)
        key = str(student_id)
        for course_id in course_ids:
            try:
                table = self.course_table(course_id, student_id=student_id, date_from=date_from, date_to=date_to)
            except Exception as e:
                logger.exception("Failed to load attendance for course %s (student %s)", course_id, student_id)
                summary.failed_courses.append(CourseFailure(course_id, f"Course {course_id}", str(e)))
                continue

            row = next((s for s in table.students if s.student_key == key), None)
            if row is None:
                continue

            course = CourseSummary(course_id=course_id, course_name=row.course_name)
            for info in table.all_sessions():
                status = row.sessions[info.session_id]
                if status is AttendanceStatus.UNMARKED:
                    continue
                course.counts.add(status)
                summary.overall.add(status)
                course.sessions.append({**info.to_dict(), "status": status.value})

            if course.counts.marked:
                summary.courses.append(course)
        return summary

    def transform_report(
        self,
        headers: Sequence[str],
        rows: Sequence[Any],
        field_mapping: Optional[FieldMapping] = None,
        *,
        default_session_name: str = "",
        sort_students: bool = False,
    ) -> ReportTable:
        """Tabular report -> table. Columns are detected from headers when no mapping is given."""

        warnings: list[str] = []
        if field_mapping is None:
            detected = detect_field_mapping(headers)
            field_mapping = detected.mapping
            warnings = detected.missing_critical + detected.warnings

        parsed = parse_report(
            headers,
            rows,
            field_mapping,
            status_mapping=self._overrides,
            default_session_name=default_session_name,
            tz=self._tz,
        )
        table = build_table(parsed, sort_students=sort_students)
        if parsed.stats.has_issues:
            logger.warning("Report parsed with issues: %s", parsed.stats.to_dict())
        return ReportTable(table=table, field_mapping=field_mapping, warnings=warnings, report_name=default_session_name)

    def report_table(
        self,
        client: MoodleClient,
        report_id: int,
        field_mapping: Optional[FieldMapping] = None,
        *,
        sort_students: bool = False,
    ) -> ReportTable:
        page = client.retrieve_complete_report(report_id)
        logger.info("Report %s (%s): %d rows", report_id, page.name, len(page.rows))
        return self.transform_report(
            page.headers,
            page.rows,
            field_mapping,
            default_session_name=page.name,
            sort_students=sort_students,
        )

    def courses_for_students(self, student_ids: Sequence[int]) -> list[CourseRef]:
        """Courses where any of the students has an attendance log."""

        return list(self._attendance.list_courses_for_students(list(student_ids)))

    def direct_sessions(self, client: MoodleClient, course_id: int) -> DirectSessions:
        attendance_id = client.find_attendance_instance(course_id)
        if attendance_id is None:
            raise NotFoundError(f"No attendance activity found in course {course_id}")
        sessions = client.get_attendance_sessions(attendance_id)
        logger.info("Course %s attendance %s: %d sessions from Moodle", course_id, attendance_id, len(sessions))
        return DirectSessions(course_id=course_id, attendance_id=attendance_id, sessions=sessions)
