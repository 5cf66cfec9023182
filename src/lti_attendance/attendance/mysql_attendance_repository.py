from __future__ import annotations

from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_int, as_str, db_cursor, fetchall, in_clause
from .model import (
    AttendanceActivity,
    AttendanceLogRow,
    CourseRef,
    SessionRecord,
    StatusDefinition,
    Student,
)
from .repository import AttendanceRepository

_USER_COLUMNS = "u.id, u.username, u.firstname, u.lastname, u.email, u.idnumber"


def _student(r: dict) -> Student:
    return Student(
        student_id=as_int(r["id"]),
        username=as_str(r.get("username")),
        firstname=as_str(r.get("firstname")),
        lastname=as_str(r.get("lastname")),
        email=as_str(r.get("email")),
        idnumber=as_str(r.get("idnumber")),
    )


def _date_filter(column: str, date_from: Optional[int], date_to: Optional[int]) -> tuple[str, list[Any]]:
    sql = ""
    params: list[Any] = []
    if date_from is not None:
        sql += f" AND {column} >= %s"
        params.append(int(date_from))
    if date_to is not None:
        sql += f" AND {column} <= %s"
        params.append(int(date_to))
    return sql, params


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_activities(self, course_id: int) -> Sequence[AttendanceActivity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT a.id, a.course, a.name, c.fullname AS course_name
                FROM mdl_attendance a
                LEFT JOIN mdl_course c ON c.id = a.course
                WHERE a.course=%s
                ORDER BY a.id
                """,
                (int(course_id),),
            )
            return [
                AttendanceActivity(
                    activity_id=as_int(r["id"]),
                    course_id=as_int(r["course"]),
                    name=as_str(r.get("name")) or f"Attendance {as_int(r['id'])}",
                    course_name=as_str(r.get("course_name")) or None,
                )
                for r in fetchall(cur)
            ]

    def list_sessions(
        self,
        course_id: int,
        *,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
    ) -> Sequence[SessionRecord]:
        date_sql, date_params = _date_filter("s.sessdate", date_from, date_to)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT s.id, s.attendanceid, s.sessdate, s.duration, s.description, a.name
                FROM mdl_attendance_sessions s
                JOIN mdl_attendance a ON a.id = s.attendanceid
                WHERE a.course=%s{date_sql}
                ORDER BY s.sessdate ASC, s.id ASC
                """,
                (int(course_id), *date_params),
            )
            return [
                SessionRecord(
                    session_ref=as_int(r["id"]),
                    name=as_str(r.get("name")) or f"Attendance {as_int(r['attendanceid'])}",
                    sessdate=as_int(r["sessdate"]),
                    duration=as_int(r.get("duration"), 0),
                    description=as_str(r.get("description")),
                    attendance_id=as_int(r["attendanceid"]),
                )
                for r in fetchall(cur)
            ]

    def list_statuses(self, course_id: int) -> Sequence[StatusDefinition]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT st.id, st.attendanceid, st.acronym, st.description, st.grade
                FROM mdl_attendance_statuses st
                JOIN mdl_attendance a ON a.id = st.attendanceid
                WHERE a.course=%s AND st.deleted=0 AND st.visible=1
                ORDER BY st.attendanceid, st.sortorder
                """,
                (int(course_id),),
            )
            return [
                StatusDefinition(
                    status_id=as_int(r["id"]),
                    attendance_id=as_int(r["attendanceid"]),
                    acronym=as_str(r.get("acronym")),
                    description=as_str(r.get("description")),
                    grade=float(r.get("grade") or 0),
                )
                for r in fetchall(cur)
            ]

    def list_log_rows(
        self,
        course_id: int,
        *,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        student_ids: Optional[Sequence[int]] = None,
    ) -> Sequence[AttendanceLogRow]:
        date_sql, params = _date_filter("s.sessdate", date_from, date_to)
        student_sql = ""
        if student_ids:
            placeholders, ids = in_clause([int(i) for i in student_ids])
            student_sql = f" AND l.studentid IN ({placeholders})"
            params.extend(ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT l.studentid, l.sessionid, s.sessdate, st.acronym, a.name AS session_name,
                       u.firstname, u.lastname
                FROM mdl_attendance_log l
                JOIN mdl_attendance_sessions s ON s.id = l.sessionid
                JOIN mdl_attendance a ON a.id = s.attendanceid
                LEFT JOIN mdl_attendance_statuses st ON st.id = l.statusid
                LEFT JOIN mdl_user u ON u.id = l.studentid AND u.deleted=0
                WHERE a.course=%s{date_sql}{student_sql}
                ORDER BY s.sessdate ASC, l.id ASC
                """,
                (int(course_id), *params),
            )
            return [
                AttendanceLogRow(
                    student_id=as_int(r["studentid"]),
                    student_name=f"{as_str(r.get('firstname'))} {as_str(r.get('lastname'))}".strip(),
                    session_ref=as_int(r["sessionid"]),
                    sessdate=as_int(r.get("sessdate")),
                    status_acronym=as_str(r.get("acronym")),
                    session_name=as_str(r.get("session_name")),
                )
                for r in fetchall(cur)
            ]

    def list_students(self, course_id: int) -> Sequence[Student]:
        """Active users enrolled with the student role, plus anyone with a log row."""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT DISTINCT {_USER_COLUMNS}
                FROM mdl_user u
                WHERE u.deleted=0 AND (
                    u.id IN (
                        SELECT ue.userid
                        FROM mdl_user_enrolments ue
                        JOIN mdl_enrol e ON e.id = ue.enrolid
                        JOIN mdl_context ctx ON ctx.instanceid = e.courseid AND ctx.contextlevel = 50
                        JOIN mdl_role_assignments ra ON ra.contextid = ctx.id AND ra.userid = ue.userid
                        JOIN mdl_role r ON r.id = ra.roleid
                        WHERE e.courseid=%s AND ue.status=0 AND r.archetype='student'
                    )
                    OR u.id IN (
                        SELECT l.studentid
                        FROM mdl_attendance_log l
                        JOIN mdl_attendance_sessions s ON s.id = l.sessionid
                        JOIN mdl_attendance a ON a.id = s.attendanceid
                        WHERE a.course=%s
                    )
                )
                ORDER BY u.lastname, u.firstname, u.id
                """,
                (int(course_id), int(course_id)),
            )
            return [_student(r) for r in fetchall(cur)]

    def get_students(self, student_ids: Sequence[int]) -> Sequence[Student]:
        if not student_ids:
            return []
        placeholders, ids = in_clause([int(i) for i in student_ids])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM mdl_user u
                WHERE u.deleted=0 AND u.id IN ({placeholders})
                ORDER BY u.lastname, u.firstname, u.id
                """,
                ids,
            )
            return [_student(r) for r in fetchall(cur)]

    def list_courses_for_students(self, student_ids: Sequence[int]) -> Sequence[CourseRef]:
        if not student_ids:
            return []
        placeholders, ids = in_clause([int(i) for i in student_ids])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT DISTINCT c.id, c.fullname
                FROM mdl_attendance_log l
                JOIN mdl_attendance_sessions s ON s.id = l.sessionid
                JOIN mdl_attendance a ON a.id = s.attendanceid
                JOIN mdl_course c ON c.id = a.course
                WHERE l.studentid IN ({placeholders})
                ORDER BY c.fullname, c.id
                """,
                ids,
            )
            return [
                CourseRef(course_id=as_int(r["id"]), name=as_str(r.get("fullname")) or f"Course {as_int(r['id'])}")
                for r in fetchall(cur)
            ]
