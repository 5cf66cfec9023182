from __future__ import annotations

from lti_attendance.attendance.export import EXCEL_MIMETYPE


def test_course_table_requires_launch(client):
    resp = client.get("/api/attendance/course?courseId=7")

    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Not authenticated"


def test_instructor_sees_whole_course(client, launch_as):
    launch_as(roles="Instructor", user_id="900", lis_person_name_full="Dr Teacher")

    body = client.get("/api/attendance/course?courseId=7").get_json()

    assert body["success"] is True
    assert body["courseId"] == 7
    assert body["dataSource"] == "database"
    assert [s["studentName"] for s in body["students"]] == ["Alice Nguyen", "Bob Tran", "Cara Le"]
    assert [d["date"] for d in body["sessionDates"]] == ["2025-10-20", "2025-10-21"]
    assert body["diagnostics"]["skippedRows"] == 0


def test_instructor_can_filter_one_student(client, launch_as):
    launch_as(roles="Instructor", user_id="900")

    body = client.post("/api/attendance/course", json={"courseId": 7, "filterStudentId": 102}).get_json()

    assert [s["studentKey"] for s in body["students"]] == ["102"]


def test_student_only_sees_own_row(client, launch_as):
    launch_as()

    body = client.get("/api/attendance/course?filterStudentId=102").get_json()

    assert body["courseId"] == 7
    (row,) = body["students"]
    assert row["studentKey"] == "101"
    assert (row["totalPresent"], row["totalLate"], row["totalAbsent"]) == (1, 1, 1)
    assert set(row["sessions"].values()) == {"P", "L", "A"}


def test_student_defaults_to_current_semester(client, launch_as, attendance_repo):
    launch_as()

    client.get("/api/attendance/course")

    call = attendance_repo.log_calls[-1]
    assert call["date_from"] is not None and call["date_to"] is not None
    assert call["date_from"] < call["date_to"]


def test_explicit_dates_override_semester(client, launch_as, attendance_repo):
    launch_as()

    client.get("/api/attendance/course?datefrom=100&dateto=200")

    call = attendance_repo.log_calls[-1]
    assert (call["date_from"], call["date_to"]) == (100, 200)


def test_bad_date_parameter_is_400(client, launch_as):
    launch_as()

    resp = client.get("/api/attendance/course?datefrom=yesterday")

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "ValidationError"


def test_csv_export(client, launch_as):
    launch_as(roles="Instructor", user_id="900")

    resp = client.get("/api/attendance/course/7/export.csv")

    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "attendance_7.csv" in resp.headers["Content-Disposition"]
    lines = resp.data.decode("utf-8-sig").splitlines()
    assert lines[0].startswith("Student Name,Course,2025-10-20 09:00 - Attendance")
    assert lines[0].endswith("Total Present,Total Absent,Total Late,Total Excused,Total Sessions")
    assert lines[1] == "Alice Nguyen,Physics 101,P,L,A,1,1,1,0,3"
    assert lines[3] == "Cara Le,Physics 101,-,-,-,0,0,0,0,3"


def test_excel_export(client, launch_as):
    launch_as(roles="Instructor", user_id="900")

    resp = client.get("/api/attendance/course/7/export.xlsx")

    assert resp.status_code == 200
    assert resp.mimetype == EXCEL_MIMETYPE
    assert resp.data[:2] == b"PK"


def test_report_uses_launch_token(client, launch_as, moodle_clients):
    launch_as(roles="Instructor", user_id="900", custom_moodle_token="user-token")

    body = client.post("/api/attendance/report/3", json={}).get_json()

    assert moodle_clients[0].token == "user-token"
    assert moodle_clients[0].requested == [3]
    assert body["reportId"] == 3
    assert body["reportName"] == "Weekly attendance"
    assert [s["studentName"] for s in body["students"]] == ["Ann Vu", "Ben Ho"]
    assert body["sessionDates"][0]["sessions"][0]["sessionName"] == "Best Course"


def test_report_is_instructor_only(client, launch_as):
    launch_as()

    resp = client.get("/api/attendance/report/3")

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Forbidden"


def test_transform_with_explicit_mapping(client, launch_as):
    launch_as(roles="Instructor", user_id="900")
    payload = {
        "headers": ["Course", "Student", "2025-10-20 12:00"],
        "rows": [["Best Course", "Ann", "P"], ["Best Course", "Ben", "A"]],
        "fieldMapping": {"courseNameIndex": 0, "studentNameIndex": 1},
        "reportName": "Pasted",
        "sort": True,
    }

    body = client.post("/api/attendance/transform", json=payload).get_json()

    assert body["success"] is True
    assert body["reportName"] == "Pasted"
    assert body["warnings"] == []
    assert body["students"][1]["sessions"] == {"2025-10-20_12:00_Best Course": "A"}


def test_transform_rejects_bad_input(client, launch_as):
    launch_as(roles="Instructor", user_id="900")

    not_a_list = client.post("/api/attendance/transform", json={"headers": "x", "rows": []})
    bad_mapping = client.post(
        "/api/attendance/transform",
        json={"headers": ["a"], "rows": [], "fieldMapping": {"statusIndex": 4}},
    )

    assert not_a_list.status_code == 400
    assert bad_mapping.status_code == 400
    assert bad_mapping.get_json()["error"] == "FieldMappingError"


def test_cohort_table(client, launch_as):
    launch_as(roles="Instructor", user_id="900")

    body = client.get("/api/attendance/cohort/5").get_json()

    assert body["cohortName"] == "Class of 2027"
    assert body["totalStudents"] == 3
    assert body["failedCourses"] == []
    assert {s["courseName"] for s in body["students"]} == {"Class of 2027"}


def test_unknown_cohort_is_404(client, launch_as):
    launch_as(roles="Instructor", user_id="900")

    resp = client.get("/api/attendance/cohort/99")

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "NotFoundError"


def test_student_course_summary(client, launch_as):
    launch_as()

    body = client.post("/api/attendance/student/courses", json={"courseIds": [7]}).get_json()

    assert body["studentId"] == 101
    assert body["overallStats"]["percentage"] == 67
    assert body["courses"][0]["courseName"] == "Physics 101"


def test_student_cannot_read_someone_else(client, launch_as):
    launch_as()

    resp = client.post("/api/attendance/student/courses", json={"studentId": 102, "courseIds": [7]})

    assert resp.status_code == 403


def test_student_summary_needs_course_ids(client, launch_as):
    launch_as()

    resp = client.post("/api/attendance/student/courses", json={"courseIds": []})

    assert resp.status_code == 400


def test_transform_tolerates_infinite_numbers(client, launch_as):
    launch_as(roles="Instructor", user_id="900")
    payload = {
        "headers": ["Course", "Student", "2025-10-20 12:00", "Status P - Total count"],
        "rows": [["Best Course", "Ann", "P", float("inf")], ["Best Course", "Ben", float("inf"), "2"]],
        "fieldMapping": {"courseNameIndex": 0, "studentNameIndex": 1, "totalPresentIndex": 3},
    }

    resp = client.post("/api/attendance/transform", json=payload)

    assert resp.status_code == 200
    ann, ben = resp.get_json()["students"]
    assert ann["totalPresent"] == 1 and "reportedTotals" not in ann
    assert ben["sessions"] == {"2025-10-20_12:00_Best Course": "-"}
    assert ben["reportedTotals"] == {"P": 2}


def test_direct_sessions_come_from_moodle(client, launch_as, moodle_clients):
    launch_as(roles="Instructor", user_id="900", custom_moodle_token="user-token")

    body = client.get("/api/attendance/direct/7").get_json()

    assert moodle_clients[0].token == "user-token"
    assert (body["courseId"], body["attendanceId"], body["totalSessions"]) == (7, 44, 1)
    assert body["sessions"][0]["duration"] == 3600


def test_direct_sessions_without_activity_is_404(client, launch_as):
    launch_as(roles="Instructor", user_id="900")

    resp = client.get("/api/attendance/direct/8")

    assert resp.status_code == 404
    assert "No attendance activity" in resp.get_json()["details"]


def test_student_lists_courses_with_attendance(client, launch_as):
    launch_as()

    body = client.get("/api/attendance/student/courses").get_json()

    assert body == {"success": True, "studentId": 101, "courses": [{"courseId": 7, "courseName": "Physics 101"}]}


def test_student_course_list_is_own_only(client, launch_as):
    launch_as()
    assert client.get("/api/attendance/student/courses?studentId=102").status_code == 403

    launch_as(roles="Instructor", user_id="900")
    body = client.get("/api/attendance/student/courses?studentId=103").get_json()
    assert (body["studentId"], body["courses"]) == (103, [])
