from __future__ import annotations

from datetime import date

import pytest

from fakes import ALICE, BOB, CARA, FakeAttendanceRepo, FakeCohortRepo, FakeMoodleClient, FakeSemesterRepo, epoch, launch_form
from lti_attendance.attendance.model import CourseRef
from lti_attendance.attendance.service import AttendanceService
from lti_attendance.cohorts.model import Cohort
from lti_attendance.cohorts.service import CohortService
from lti_attendance.container import Container
from lti_attendance.lti.service import LtiLaunchService
from lti_attendance.moodle.model import MoodleReport, ReportPage
from lti_attendance.semesters.model import Semester
from lti_attendance.semesters.service import SemesterService


@pytest.fixture
def attendance_repo():
    """Course 7 with three sessions on two days; Cara has no log rows."""

    repo = FakeAttendanceRepo()
    repo.add_course(7, "Physics 101")
    for s in (ALICE, BOB, CARA):
        repo.add_student(7, s)
    repo.add_session(7, 1, epoch(2025, 10, 20, 9, 0))
    repo.add_session(7, 2, epoch(2025, 10, 20, 13, 0))
    repo.add_session(7, 3, epoch(2025, 10, 21, 9, 0))
    repo.add_log(7, ALICE, 1, "P")
    repo.add_log(7, ALICE, 2, "L")
    repo.add_log(7, ALICE, 3, "A")
    repo.add_log(7, BOB, 1, "E")
    return repo


@pytest.fixture
def cohort_repo():
    repo = FakeCohortRepo()
    repo.cohorts[5] = Cohort(5, "Class of 2027", "C27")
    repo.members[5] = [ALICE.student_id, BOB.student_id, CARA.student_id]
    return repo


@pytest.fixture
def semester_repo():
    repo = FakeSemesterRepo()
    repo.admission_years[ALICE.student_id] = "2024"
    repo.semesters.append(Semester(1, "2024", "Semester 3", date(2025, 9, 1), date(2026, 1, 31), True))
    return repo


@pytest.fixture
def moodle_clients():
    return []


@pytest.fixture
def moodle_report():
    return ReportPage(
        headers=["Course", "Full name", "Monday, 20 October 2025, 12:00 PM"],
        rows=[{"columns": ["Best Course", "Ann Vu", "P"]}, {"columns": ["Best Course", "Ben Ho", "A"]}],
        total_row_count=2,
        name="Weekly attendance",
    )


@pytest.fixture
def container(attendance_repo, cohort_repo, semester_repo, moodle_clients, moodle_report):
    def factory(token):
        client = FakeMoodleClient(
            token,
            page=moodle_report,
            reports=[MoodleReport(3, "Weekly attendance")],
            activities={7: 44},
            sessions={44: [{"id": 1, "sessdate": epoch(2025, 10, 20, 9, 0), "duration": 3600}]},
            courses=[CourseRef(7, "Physics 101")],
        )
        moodle_clients.append(client)
        return client

    return Container(
        attendance_repo=attendance_repo,
        cohorts_repo=cohort_repo,
        semesters_repo=semester_repo,
        attendance_service=AttendanceService(attendance_repo),
        cohort_service=CohortService(cohort_repo),
        semester_service=SemesterService(semester_repo),
        lti_service=LtiLaunchService(consumer_key="test-consumer"),
        moodle_client_factory=factory,
    )


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    from lti_attendance.main import create_app

    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def launch_as(client):
    """Launch the tool and return the redirect response."""

    def _launch(**overrides):
        return client.post("/lti/launch", data=launch_form(**overrides))

    return _launch
