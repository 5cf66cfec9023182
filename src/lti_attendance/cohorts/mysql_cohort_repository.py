from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_int, as_str, db_cursor, fetchall, fetchone
from .model import Cohort
from .repository import CohortRepository


def _cohort(r: dict) -> Cohort:
    return Cohort(
        cohort_id=as_int(r["id"]),
        name=as_str(r.get("name")),
        idnumber=as_str(r.get("idnumber")),
        description=as_str(r.get("description")),
    )


class MySQLCohortRepository(CohortRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_cohorts(self) -> Sequence[Cohort]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, name, idnumber, description
                FROM mdl_cohort
                WHERE visible=1
                ORDER BY name ASC
                """
            )
            return [_cohort(r) for r in fetchall(cur)]

    def get_by_id(self, cohort_id: int) -> Optional[Cohort]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, idnumber, description FROM mdl_cohort WHERE id=%s",
                (int(cohort_id),),
            )
            r = fetchone(cur)
            return _cohort(r) if r else None

    def list_member_ids(self, cohort_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT cm.userid
                FROM mdl_cohort_members cm
                JOIN mdl_user u ON u.id = cm.userid
                WHERE cm.cohortid=%s AND u.deleted=0
                ORDER BY cm.userid
                """,
                (int(cohort_id),),
            )
            return [as_int(r["userid"]) for r in fetchall(cur)]
