"""Moodle Web Services REST client.

Built per request from the caller's token; nothing here is module-level
state. Only JSON is requested (``moodlewsrestformat=json``).
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Mapping, Optional

import requests

from ..attendance.model import CourseRef
from ..core.constants import (
    DEFAULT_MOODLE_RETRIES,
    DEFAULT_MOODLE_TIMEOUT,
    MOODLE_REST_PATH,
    MOODLE_RETRY_STATUSES,
    MOODLE_ROWS_PER_PAGE,
)
from ..core.exceptions import UpstreamError
from .model import MoodleReport, ReportPage

logger = logging.getLogger(__name__)


class MoodleAPIError(UpstreamError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, errorcode: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.errorcode = errorcode


_STATUS_MESSAGES = {
    520: "Moodle server is temporarily unavailable. Please try again.",
    522: "Moodle server is temporarily unavailable. Please try again.",
    524: "Moodle server timeout. Try a smaller date range or report.",
    503: "Moodle server is down for maintenance. Please try again later.",
}


def flatten_params(params: Mapping[str, Any], prefix: str = "") -> dict[str, str]:
    """Encode nested lists/dicts the way Moodle REST expects: ``a[0][id]=1``."""

    flat: dict[str, str] = {}
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_params(value, name))
        elif isinstance(value, (list, tuple)):
            flat.update(flatten_params({i: v for i, v in enumerate(value)}, name))
        elif isinstance(value, bool):
            flat[name] = "1" if value else "0"
        elif value is not None:
            flat[name] = str(value)
    return flat


class MoodleClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = DEFAULT_MOODLE_TIMEOUT,
        retries: int = DEFAULT_MOODLE_RETRIES,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not base_url:
            raise MoodleAPIError("Moodle base URL not configured")
        if not token:
            raise MoodleAPIError("Missing Moodle web service token")
        self._url = base_url.rstrip("/") + MOODLE_REST_PATH
        self._token = token
        self._timeout = timeout
        self._retries = max(1, int(retries))
        self._session = session or requests.Session()
        self._sleep = sleep

    def _post(self, data: dict[str, str]) -> requests.Response:
        for attempt in range(self._retries):
            last = attempt == self._retries - 1
            try:
                response = self._session.post(self._url, data=data, timeout=self._timeout)
            except (requests.ConnectionError, requests.Timeout) as exc:
                if last:
                    raise MoodleAPIError(f"Could not reach Moodle: {exc}") from exc
                logger.warning("Moodle request attempt %d failed (%s), retrying", attempt + 1, exc)
                self._sleep(2**attempt)
                continue

            if response.status_code in MOODLE_RETRY_STATUSES and not last:
                logger.warning("Moodle request attempt %d got HTTP %d, retrying", attempt + 1, response.status_code)
                self._sleep(2**attempt)
                continue
            return response
        raise MoodleAPIError("Max retries reached")

    def call(self, wsfunction: str, **params: Any) -> Any:
        data = {
            "wstoken": self._token,
            "wsfunction": wsfunction,
            "moodlewsrestformat": "json",
            **flatten_params(params),
        }
        response = self._post(data)

        if response.status_code >= 400:
            message = _STATUS_MESSAGES.get(response.status_code, f"Moodle server error: {response.status_code}")
            raise MoodleAPIError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise MoodleAPIError(f"{wsfunction} returned a non-JSON response") from exc

        if isinstance(payload, dict) and payload.get("exception"):
            raise MoodleAPIError(
                str(payload.get("message") or "Moodle API error"),
                errorcode=payload.get("errorcode"),
            )
        return payload

    # -- report builder ----------------------------------------------------

    def list_reports(self) -> list[MoodleReport]:
        payload = self.call("core_reportbuilder_list_reports")
        return [MoodleReport.from_payload(r) for r in (payload or {}).get("reports") or []]

    def retrieve_report(self, report_id: int, page: int = 0) -> ReportPage:
        payload = self.call("core_reportbuilder_retrieve_report", reportid=int(report_id), page=int(page))
        return ReportPage.from_payload(payload or {})

    def retrieve_complete_report(self, report_id: int) -> ReportPage:
        """Fetch every page in order and merge the rows into one ReportPage."""

        first = self.retrieve_report(report_id, 0)
        total_pages = math.ceil(first.total_row_count / MOODLE_ROWS_PER_PAGE)
        logger.info(
            "Fetching report %s: %d rows across %d pages", report_id, first.total_row_count, total_pages
        )
        rows = list(first.rows)
        for page in range(1, total_pages):
            try:
                result = self.retrieve_report(report_id, page)
            except MoodleAPIError as exc:
                logger.warning("Report %s page %d failed (%s), retrying once", report_id, page + 1, exc)
                self._sleep(1)
                result = self.retrieve_report(report_id, page)
            rows.extend(result.rows)

        return ReportPage(
            headers=first.headers,
            rows=rows,
            total_row_count=first.total_row_count,
            name=first.name,
            source=first.source,
        )

    # -- courses and attendance ------------------------------------------------

    def get_course_contents(self, course_id: int) -> list[dict]:
        return list(self.call("core_course_get_contents", courseid=int(course_id)) or [])

    def find_attendance_instance(self, course_id: int) -> Optional[int]:
        for section in self.get_course_contents(course_id):
            for module in section.get("modules") or []:
                if module.get("modname") == "attendance":
                    return int(module["instance"])
        return None

    def get_attendance_sessions(self, attendance_id: int) -> list[dict]:
        return list(self.call("mod_attendance_get_sessions", attendanceid=int(attendance_id)) or [])

    def get_user_courses(self, user_id: int) -> list[CourseRef]:
        courses = self.call("core_enrol_get_users_courses", userid=int(user_id)) or []
        return [
            CourseRef(course_id=int(c["id"]), name=str(c.get("fullname") or c.get("shortname") or c["id"]))
            for c in courses
        ]
