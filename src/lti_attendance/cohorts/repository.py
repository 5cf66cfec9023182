from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Cohort


class CohortRepository(Protocol):
    def list_cohorts(self) -> Sequence[Cohort]:
        raise NotImplementedError

    def get_by_id(self, cohort_id: int) -> Optional[Cohort]:
        raise NotImplementedError

    def list_member_ids(self, cohort_id: int) -> Sequence[int]:
        raise NotImplementedError
