from __future__ import annotations

import logging
from typing import Optional, Sequence

from .model import Semester, SemesterRange
from .repository import SemesterRepository

logger = logging.getLogger(__name__)


class SemesterService:
    def __init__(self, semesters: SemesterRepository):
        self._semesters = semesters

    def current_range(self, user_id: int) -> Optional[SemesterRange]:
        """The user's current semester window, or None when it cannot be determined."""

        admission_year = self._semesters.get_admission_year(user_id)
        if not admission_year:
            logger.info("No admission year for user %s, no default semester range", user_id)
            return None

        semester = self._semesters.get_current_semester(admission_year)
        if semester is None:
            logger.info("No current semester for admission year %s", admission_year)
            return None
        return SemesterRange(start=semester.start_date, end=semester.end_date, name=semester.name)

    def list_for_user(self, user_id: int) -> Sequence[Semester]:
        admission_year = self._semesters.get_admission_year(user_id)
        if not admission_year:
            return []
        return list(self._semesters.list_semesters(admission_year))

    def admission_year(self, user_id: int) -> Optional[str]:
        return self._semesters.get_admission_year(user_id)

    def admission_years(self) -> list[str]:
        return list(self._semesters.list_admission_years())
