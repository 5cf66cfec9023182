from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from fakes import FakeDatabase
from lti_attendance.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from lti_attendance.cohorts.mysql_cohort_repository import MySQLCohortRepository
from lti_attendance.database.mysql_base import as_int, as_str, in_clause
from lti_attendance.semesters.mysql_semester_repository import ADMISSION_YEAR_FIELD, MySQLSemesterRepository


def test_log_rows_filter_by_dates_and_students():
    db = FakeDatabase(
        [
            {
                "studentid": 101,
                "sessionid": Decimal("9"),
                "sessdate": Decimal("1760961600"),
                "acronym": b"P",
                "session_name": "Attendance",
                "firstname": "Alice",
                "lastname": "Nguyen",
            }
        ]
    )

    rows = MySQLAttendanceRepository(db).list_log_rows(7, date_from=100, date_to=200, student_ids=[101, 102])

    sql, params = db.executed[0]
    assert "s.sessdate >= %s AND s.sessdate <= %s AND l.studentid IN (%s, %s)" in sql
    assert params == (7, 100, 200, 101, 102)
    (row,) = rows
    assert (row.student_id, row.session_ref, row.sessdate) == (101, 9, 1760961600)
    assert row.status_acronym == "P"
    assert row.student_name == "Alice Nguyen"


def test_log_rows_without_filters():
    db = FakeDatabase([])

    MySQLAttendanceRepository(db).list_log_rows(7)

    sql, params = db.executed[0]
    assert "IN (" not in sql
    assert params == (7,)


def test_sessions_fall_back_to_activity_id_for_name():
    db = FakeDatabase([{"id": 1, "attendanceid": 70, "sessdate": 1760961600, "duration": None, "description": None, "name": ""}])

    (session,) = MySQLAttendanceRepository(db).list_sessions(7)

    assert session.name == "Attendance 70"
    assert session.duration == 0
    assert session.description == ""


def test_student_lookups_skip_the_database_for_empty_ids():
    db = FakeDatabase([])
    repo = MySQLAttendanceRepository(db)

    assert repo.get_students([]) == []
    assert repo.list_courses_for_students([]) == []
    assert db.connects == 0


def test_courses_for_students():
    db = FakeDatabase([{"id": 7, "fullname": "Physics 101"}, {"id": 8, "fullname": None}])

    courses = MySQLAttendanceRepository(db).list_courses_for_students([101])

    assert [(c.course_id, c.name) for c in courses] == [(7, "Physics 101"), (8, "Course 8")]


def test_cohort_members():
    db = FakeDatabase([{"userid": 101}, {"userid": 102}])

    assert MySQLCohortRepository(db).list_member_ids(5) == [101, 102]
    assert db.executed[0][1] == (5,)


def test_missing_cohort_is_none():
    assert MySQLCohortRepository(FakeDatabase([])).get_by_id(5) is None


def test_admission_year_from_profile_field():
    db = FakeDatabase([{"data": b" 2024 "}])

    assert MySQLSemesterRepository(db).get_admission_year(101) == "2024"
    assert db.executed[0][1] == (101, ADMISSION_YEAR_FIELD)


def test_admission_years_keep_four_digit_values():
    db = FakeDatabase([{"data": "2025"}, {"data": b"2024 "}, {"data": "unknown"}, {"data": "24"}])

    assert MySQLSemesterRepository(db).list_admission_years() == ["2025", "2024"]
    assert db.executed[0][1] == (ADMISSION_YEAR_FIELD,)


def test_semester_dates_accept_datetimes_and_strings():
    db = FakeDatabase(
        [
            {
                "id": 1,
                "admissionyear": "2024",
                "semestername": "Semester 3",
                "startdate": datetime(2025, 9, 1, 0, 0),
                "enddate": "2026-01-31",
                "iscurrent": 1,
            }
        ]
    )

    semester = MySQLSemesterRepository(db).get_current_semester("2024")

    assert (semester.start_date, semester.end_date) == (date(2025, 9, 1), date(2026, 1, 31))
    assert semester.is_current is True


def test_value_helpers():
    assert as_int(b"12") == 12
    assert as_int(None, 0) == 0
    assert as_str(None) == ""
    assert in_clause([1, 2, 3]) == ("%s, %s, %s", (1, 2, 3))
    with pytest.raises(ValueError):
        in_clause([])
