from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.status_mapping import StatusMapping
from .cohorts.mysql_cohort_repository import MySQLCohortRepository
from .cohorts.repository import CohortRepository
from .cohorts.service import CohortService
from .common.datetime_utils import resolve_timezone
from .database.connection import DBConfig, DatabaseConnection
from .lti.service import LtiLaunchService
from .moodle.client import MoodleClient
from .semesters.mysql_semester_repository import MySQLSemesterRepository
from .semesters.repository import SemesterRepository
from .semesters.service import SemesterService

MoodleClientFactory = Callable[[str], MoodleClient]


@dataclass(frozen=True)
class Container:
    attendance_repo: AttendanceRepository
    cohorts_repo: CohortRepository
    semesters_repo: SemesterRepository

    attendance_service: AttendanceService
    cohort_service: CohortService
    semester_service: SemesterService
    lti_service: LtiLaunchService

    # Builds a client for the caller's token (server token when empty); one per request.
    moodle_client_factory: MoodleClientFactory
    conn: Optional[DatabaseConnection] = None


def build_container(
    *,
    db_config: dict,
    moodle_base_url: str,
    moodle_token: str = "",
    moodle_timeout: float = 60,
    lti_consumer_key: Optional[str] = None,
    landing_paths: Optional[dict] = None,
    status_acronyms=None,
    display_timezone: Optional[str] = None,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    attendance_repo = MySQLAttendanceRepository(conn)
    cohorts_repo = MySQLCohortRepository(conn)
    semesters_repo = MySQLSemesterRepository(conn)

    attendance_service = AttendanceService(
        attendance_repo,
        status_overrides=StatusMapping.from_config(status_acronyms),
        tz=resolve_timezone(display_timezone),
    )
    cohort_service = CohortService(cohorts_repo)
    semester_service = SemesterService(semesters_repo)
    lti_service = LtiLaunchService(
        consumer_key=lti_consumer_key,
        landing_paths=landing_paths,
    )

    def moodle_client_factory(token: str) -> MoodleClient:
        return MoodleClient(moodle_base_url, token or moodle_token, timeout=moodle_timeout)

    return Container(
        attendance_repo=attendance_repo,
        cohorts_repo=cohorts_repo,
        semesters_repo=semesters_repo,
        attendance_service=attendance_service,
        cohort_service=cohort_service,
        semester_service=semester_service,
        lti_service=lti_service,
        moodle_client_factory=moodle_client_factory,
        conn=conn,
    )
