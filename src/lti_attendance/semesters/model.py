from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Semester:
    semester_id: int
    admission_year: str
    name: str
    start_date: date
    end_date: date
    is_current: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.semester_id,
            "admissionYear": self.admission_year,
            "semesterName": self.name,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "isCurrent": self.is_current,
        }


@dataclass(frozen=True)
class SemesterRange:
    """Default date window for a student's views."""

    start: date
    end: date
    name: str

    def to_dict(self) -> dict:
        return {"startDate": self.start.isoformat(), "endDate": self.end.isoformat(), "semesterName": self.name}
