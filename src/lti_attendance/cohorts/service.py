from __future__ import annotations

import logging
from typing import Sequence

from ..core.exceptions import NotFoundError
from .model import Cohort
from .repository import CohortRepository

logger = logging.getLogger(__name__)


class CohortService:
    def __init__(self, cohorts: CohortRepository):
        self._cohorts = cohorts

    def list_cohorts(self) -> Sequence[Cohort]:
        return list(self._cohorts.list_cohorts())

    def get_cohort(self, cohort_id: int) -> Cohort:
        cohort = self._cohorts.get_by_id(cohort_id)
        if cohort is None:
            raise NotFoundError(f"Cohort {cohort_id} not found")
        return cohort

    def member_ids(self, cohort_id: int) -> list[int]:
        ids = list(self._cohorts.list_member_ids(cohort_id))
        logger.debug("Cohort %s has %d members", cohort_id, len(ids))
        return ids
