from __future__ import annotations

from fakes import ALICE, BOB, CARA, epoch
from lti_attendance.attendance.field_mapping import FieldMapping
from lti_attendance.attendance.service import AttendanceService, attendance_percentage
from lti_attendance.cohorts.model import Cohort
from lti_attendance.core.enums import AttendanceStatus

COHORT = Cohort(5, "Class of 2027", "C27")


def test_course_table_is_dense_over_roster(attendance_repo):
    table = AttendanceService(attendance_repo).course_table(7)

    assert [d.date for d in table.session_dates] == ["2025-10-20", "2025-10-21"]
    assert [s.time for s in table.all_sessions()] == ["09:00", "13:00", "09:00"]
    assert [s.student_name for s in table.students] == ["Alice Nguyen", "Bob Tran", "Cara Le"]

    alice, bob, cara = table.students
    assert (alice.total_present, alice.total_late, alice.total_absent) == (1, 1, 1)
    assert bob.total_excused == 1 and bob.total_unmarked == 2
    assert cara.total_unmarked == 3
    assert {s.total_sessions for s in table.students} == {3}
    assert {s.course_name for s in table.students} == {"Physics 101"}


def test_course_table_for_one_student(attendance_repo):
    table = AttendanceService(attendance_repo).course_table(7, student_id=BOB.student_id)

    assert [s.student_key for s in table.students] == ["102"]
    assert len(table.all_sessions()) == 3
    assert attendance_repo.log_calls[-1]["student_ids"] == [BOB.student_id]


def test_course_table_honours_date_range(attendance_repo):
    table = AttendanceService(attendance_repo).course_table(7, date_from=epoch(2025, 10, 21))

    assert [s.session_id for s in table.all_sessions()] == ["2025-10-21_09:00_Attendance"]
    assert table.students[0].sessions["2025-10-21_09:00_Attendance"] is AttendanceStatus.ABSENT


def test_course_without_activity_is_empty(attendance_repo):
    table = AttendanceService(attendance_repo).course_table(404)
    assert table.to_dict() == {"students": [], "sessionDates": []}


def test_cohort_table_spans_courses_and_reports_failures(attendance_repo):
    attendance_repo.add_course(8, "Chemistry")
    attendance_repo.add_session(8, 1, epoch(2025, 10, 22, 10, 0))
    attendance_repo.add_log(8, ALICE, 1, "P")
    attendance_repo.add_course(9, "Biology")
    attendance_repo.add_session(9, 1, epoch(2025, 10, 23, 10, 0))
    attendance_repo.add_log(9, BOB, 1, "P")
    attendance_repo.failing_courses.add(9)

    result = AttendanceService(attendance_repo).cohort_table(
        COHORT, [ALICE.student_id, BOB.student_id, CARA.student_id]
    )
    table = result.table

    names = [s.session_name for s in table.all_sessions()]
    assert names == [
        "Physics 101 - Attendance",
        "Physics 101 - Attendance",
        "Physics 101 - Attendance",
        "Chemistry - Attendance",
    ]
    assert [f.course_id for f in result.failed_courses] == [9]
    assert [s.student_name for s in table.students] == ["Alice Nguyen", "Bob Tran", "Cara Le"]
    assert {s.course_name for s in table.students} == {"Class of 2027"}
    assert table.students[0].total_present == 2
    assert table.students[2].total_sessions == 4

    out = result.to_dict()
    assert out["cohortName"] == "Class of 2027"
    assert out["totalStudents"] == 3
    assert [c["courseId"] for c in out["courses"]] == [7, 8, 9]
    assert out["failedCourses"][0]["courseName"] == "Biology"


def test_empty_cohort_gives_empty_table(attendance_repo):
    result = AttendanceService(attendance_repo).cohort_table(COHORT, [])
    assert result.table.students == []
    assert result.total_members == 0


def test_student_summary_counts_marked_sessions_only(attendance_repo):
    summary = AttendanceService(attendance_repo).student_summary(ALICE.student_id, [7, 404])

    (course,) = summary.courses
    assert course.course_name == "Physics 101"
    assert course.counts.marked == 3
    assert [s["status"] for s in course.sessions] == ["P", "L", "A"]
    # present + late over marked: 2 / 3
    assert summary.overall.percentage == 67
    assert summary.to_dict()["overallStats"]["totalSessions"] == 3


def test_student_summary_skips_courses_without_marks(attendance_repo):
    summary = AttendanceService(attendance_repo).student_summary(CARA.student_id, [7])
    assert summary.courses == []
    assert summary.overall.percentage == 0


def test_student_summary_records_failed_course(attendance_repo):
    attendance_repo.failing_courses.add(7)
    summary = AttendanceService(attendance_repo).student_summary(ALICE.student_id, [7])
    assert [f.course_id for f in summary.failed_courses] == [7]


def test_attendance_percentage_rounds_half_up():
    assert attendance_percentage(1, 8) == 13
    assert attendance_percentage(2, 3) == 67
    assert attendance_percentage(1, 3) == 33
    assert attendance_percentage(0, 0) == 0


def test_transform_report_detects_columns(attendance_repo):
    headers = ["Course", "Full name", "Monday, 20 October 2025, 12:00 PM"]
    rows = [["Best Course", "Ann", "P"]]

    result = AttendanceService(attendance_repo).transform_report(headers, rows, default_session_name="Weekly")

    assert result.field_mapping.course_name_index == 0
    assert result.field_mapping.student_name_index == 1
    assert result.warnings
    assert result.table.students[0].total_present == 1
    assert result.to_dict()["reportName"] == "Weekly"


def test_transform_report_uses_given_mapping_without_warnings(attendance_repo):
    headers = ["Course", "Full name", "2025-10-20 12:00"]
    result = AttendanceService(attendance_repo).transform_report(
        headers, [["Best Course", "Ann", "A"]], FieldMapping(course_name_index=0, student_name_index=1)
    )
    assert result.warnings == []
    assert result.table.students[0].total_absent == 1
