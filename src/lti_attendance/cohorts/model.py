from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Cohort:
    cohort_id: int
    name: str
    idnumber: str = ""
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.cohort_id,
            "name": self.name,
            "idnumber": self.idnumber,
            "description": self.description,
        }
