from __future__ import annotations

from datetime import date

from fakes import ALICE, BOB
from lti_attendance.semesters.model import Semester
from lti_attendance.semesters.service import SemesterService


def test_current_range_follows_admission_year(semester_repo):
    semester_repo.semesters.append(Semester(2, "2024", "Semester 2", date(2025, 2, 1), date(2025, 6, 30)))

    current = SemesterService(semester_repo).current_range(ALICE.student_id)

    assert current.name == "Semester 3"
    assert (current.start, current.end) == (date(2025, 9, 1), date(2026, 1, 31))
    assert len(SemesterService(semester_repo).list_for_user(ALICE.student_id)) == 2


def test_no_admission_year_means_no_range(semester_repo):
    service = SemesterService(semester_repo)

    assert service.current_range(BOB.student_id) is None
    assert service.list_for_user(BOB.student_id) == []


def test_no_current_semester_means_no_range(semester_repo):
    semester_repo.admission_years[BOB.student_id] = "2025"

    assert SemesterService(semester_repo).current_range(BOB.student_id) is None


def test_current_semester_route(client, launch_as):
    launch_as()

    body = client.get("/api/semesters/current").get_json()

    assert body["current"] == {"startDate": "2025-09-01", "endDate": "2026-01-31", "semesterName": "Semester 3"}
    assert [s["semesterName"] for s in body["semesters"]] == ["Semester 3"]


def test_current_semester_route_without_admission_year(client, launch_as):
    launch_as(user_id="102")

    body = client.get("/api/semesters/current").get_json()

    assert body == {"success": True, "current": None, "semesters": []}


def test_admission_years_are_distinct_newest_first(semester_repo):
    semester_repo.admission_years.update({BOB.student_id: "2025", 103: "2024"})

    assert SemesterService(semester_repo).admission_years() == ["2025", "2024"]


def test_admission_year_route_returns_own_year(client, launch_as):
    launch_as()

    body = client.get("/api/semesters/admission-year?userId=102").get_json()

    assert body == {"success": True, "userId": 101, "admissionYear": "2024"}


def test_instructor_can_look_up_a_students_admission_year(client, launch_as, semester_repo):
    semester_repo.admission_years[BOB.student_id] = "2025"
    launch_as(roles="Instructor", user_id="900")

    body = client.get("/api/semesters/admission-year?userId=102").get_json()

    assert (body["userId"], body["admissionYear"]) == (102, "2025")


def test_admission_years_route_is_instructor_only(client, launch_as):
    launch_as()
    assert client.get("/api/semesters/admission-years").status_code == 403

    launch_as(roles="Instructor", user_id="900")
    body = client.get("/api/semesters/admission-years").get_json()

    assert body == {"success": True, "years": ["2024"], "count": 1}
