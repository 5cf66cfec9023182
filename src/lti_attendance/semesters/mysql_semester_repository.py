from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..common.datetime_utils import parse_iso_date
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_int, as_str, db_cursor, fetchall, fetchone
from .model import Semester
from .repository import SemesterRepository

ADMISSION_YEAR_FIELD = "adm_year"


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_iso_date(str(value)[:10])


def _semester(r: dict) -> Semester:
    return Semester(
        semester_id=as_int(r["id"]),
        admission_year=as_str(r.get("admissionyear")),
        name=as_str(r.get("semestername")),
        start_date=_as_date(r["startdate"]),
        end_date=_as_date(r["enddate"]),
        is_current=bool(r.get("iscurrent")),
    )


class MySQLSemesterRepository(SemesterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_admission_year(self, user_id: int) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT d.data
                FROM mdl_user_info_data d
                JOIN mdl_user_info_field f ON d.fieldid = f.id
                WHERE d.userid=%s AND f.shortname=%s
                LIMIT 1
                """,
                (int(user_id), ADMISSION_YEAR_FIELD),
            )
            r = fetchone(cur)
            value = as_str(r["data"]).strip() if r else ""
            return value or None

    def get_current_semester(self, admission_year: str) -> Optional[Semester]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, admissionyear, semestername, startdate, enddate, iscurrent
                FROM mdl_semester_dates
                WHERE admissionyear=%s AND iscurrent=1
                ORDER BY startdate DESC
                LIMIT 1
                """,
                (admission_year,),
            )
            r = fetchone(cur)
            return _semester(r) if r else None

    def list_semesters(self, admission_year: str) -> Sequence[Semester]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, admissionyear, semestername, startdate, enddate, iscurrent
                FROM mdl_semester_dates
                WHERE admissionyear=%s
                ORDER BY startdate DESC
                """,
                (admission_year,),
            )
            return [_semester(r) for r in fetchall(cur)]

    def list_admission_years(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT d.data
                FROM mdl_user_info_data d
                JOIN mdl_user_info_field f ON d.fieldid = f.id
                WHERE f.shortname=%s AND d.data IS NOT NULL AND d.data <> ''
                ORDER BY d.data DESC
                """,
                (ADMISSION_YEAR_FIELD,),
            )
            years = (as_str(r["data"]).strip() for r in fetchall(cur))
            # free-text profile field; only four-digit years are meaningful
            return [y for y in years if len(y) == 4 and y.isascii() and y.isdigit()]
