from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import (
    AttendanceActivity,
    AttendanceLogRow,
    CourseRef,
    SessionRecord,
    StatusDefinition,
    Student,
)


class AttendanceRepository(Protocol):
    """Read access to the Moodle attendance plugin tables.

    Date bounds are epoch seconds, inclusive on both ends.
    """

    def list_activities(self, course_id: int) -> Sequence[AttendanceActivity]:
        raise NotImplementedError

    def list_sessions(
        self,
        course_id: int,
        *,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
    ) -> Sequence[SessionRecord]:
        raise NotImplementedError

    def list_statuses(self, course_id: int) -> Sequence[StatusDefinition]:
        """Visible, non-deleted statuses of every attendance activity in the course."""

        raise NotImplementedError

    def list_log_rows(
        self,
        course_id: int,
        *,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        student_ids: Optional[Sequence[int]] = None,
    ) -> Sequence[AttendanceLogRow]:
        raise NotImplementedError

    def list_students(self, course_id: int) -> Sequence[Student]:
        raise NotImplementedError

    def get_students(self, student_ids: Sequence[int]) -> Sequence[Student]:
        raise NotImplementedError

    def list_courses_for_students(self, student_ids: Sequence[int]) -> Sequence[CourseRef]:
        """Courses in which any of the students has at least one attendance log."""

        raise NotImplementedError
