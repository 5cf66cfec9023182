from __future__ import annotations

from fakes import ALICE, BOB, CARA, epoch
from lti_attendance.attendance.aggregator import build_table
from lti_attendance.attendance.model import AttendanceLogRow, SessionRecord, Student
from lti_attendance.attendance.parsers import parse_logs
from lti_attendance.attendance.status_mapping import StatusMapping
from lti_attendance.core.enums import AttendanceStatus

NOON = epoch(2025, 10, 20, 12, 0)
SESSION = "2025-10-20_12:00_Best Course"


def _log(student: Student, ref: int, acronym: str, sessdate: int = NOON, name: str = "Best Course"):
    return AttendanceLogRow(student.student_id, student.full_name, ref, sessdate, acronym, name)


def test_roster_student_without_logs_is_unmarked():
    parsed = parse_logs(
        [_log(ALICE, 1, "P"), _log(BOB, 1, "A")],
        StatusMapping.default(),
        sessions=[SessionRecord(1, "Best Course", NOON)],
        roster=[ALICE, BOB, CARA],
        course_name="Best Course",
    )
    table = build_table(parsed)

    assert [s.student_key for s in table.students] == ["101", "102", "103"]
    alice, bob, cara = table.students
    assert alice.total_present == 1 and bob.total_absent == 1
    assert cara.sessions == {SESSION: AttendanceStatus.UNMARKED}
    assert all(s.total_sessions == 1 for s in table.students)
    assert cara.course_name == "Best Course"


def test_students_sharing_a_name_stay_separate():
    twin_a = Student(201, "sam1", "Sam", "Lee")
    twin_b = Student(202, "sam2", "Sam", "Lee")

    table = build_table(parse_logs([_log(twin_a, 1, "P"), _log(twin_b, 1, "A")], StatusMapping.default()))

    assert [s.student_key for s in table.students] == ["201", "202"]
    assert [s.student_name for s in table.students] == ["Sam Lee", "Sam Lee"]


def test_logs_for_unlisted_sessions_are_ignored():
    parsed = parse_logs(
        [_log(ALICE, 1, "P"), _log(ALICE, 99, "A")],
        StatusMapping.default(),
        sessions=[SessionRecord(1, "Best Course", NOON)],
    )
    table = build_table(parsed)

    assert [s.session_id for s in table.all_sessions()] == [SESSION]
    assert table.students[0].total_absent == 0
    assert table.stats.unknown_sessions == 1


def test_sessions_come_from_logs_when_not_listed():
    parsed = parse_logs(
        [_log(ALICE, 1, "P"), _log(ALICE, 2, "L", sessdate=epoch(2025, 10, 21, 9, 30), name="Lab")],
        StatusMapping.default(),
    )
    table = build_table(parsed)

    assert [s.session_id for s in table.all_sessions()] == [SESSION, "2025-10-21_09:30_Lab"]
    assert table.students[0].total_late == 1


def test_duplicate_session_records_collapse():
    parsed = parse_logs(
        [_log(ALICE, 1, "P"), _log(BOB, 2, "E")],
        StatusMapping.default(),
        sessions=[SessionRecord(1, "Best Course", NOON), SessionRecord(2, "Best Course", NOON)],
    )
    table = build_table(parsed)

    assert len(table.all_sessions()) == 1
    assert table.students[0].sessions[SESSION] is AttendanceStatus.PRESENT
    assert table.students[1].sessions[SESSION] is AttendanceStatus.EXCUSED
    assert table.stats.unknown_sessions == 0


def test_acronyms_are_resolved_through_the_mapping():
    statuses = StatusMapping({"PR": "present", "TD": "late"})
    parsed = parse_logs(
        [_log(ALICE, 1, "pr"), _log(BOB, 1, "TD"), _log(CARA, 1, "XX")],
        statuses,
        sessions=[SessionRecord(1, "Best Course", NOON)],
    )
    table = build_table(parsed)

    cells = [s.sessions[SESSION] for s in table.students]
    assert cells == [AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.UNMARKED]
    assert table.stats.unknown_statuses == 1


def test_mapping_rows_are_accepted_and_bad_ones_skipped():
    rows = [
        {"studentId": 101, "studentName": "Alice Nguyen", "sessionId": 1, "sessdate": NOON, "statusAcronym": "P"},
        {"studentName": "No Id", "sessionId": 1, "statusAcronym": "P"},
        {"studentId": "abc", "sessionId": 1},
    ]

    parsed = parse_logs(rows, StatusMapping.default(), sessions=[SessionRecord(1, "Best Course", NOON)])

    assert [s.key for s in parsed.students] == ["101"]
    assert parsed.stats.skipped_rows == 2
