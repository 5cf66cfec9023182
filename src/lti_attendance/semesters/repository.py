from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Semester


class SemesterRepository(Protocol):
    def get_admission_year(self, user_id: int) -> Optional[str]:
        raise NotImplementedError

    def get_current_semester(self, admission_year: str) -> Optional[Semester]:
        raise NotImplementedError

    def list_semesters(self, admission_year: str) -> Sequence[Semester]:
        raise NotImplementedError

    def list_admission_years(self) -> Sequence[str]:
        raise NotImplementedError
