from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Iterable, Mapping, Optional

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from .model import LtiSession

logger = logging.getLogger(__name__)

# Matched against the last path segment of each LTI role URN, lower-cased.
MANAGER_ROLES = frozenset({"administrator", "admin", "manager", "sysadmin"})
INSTRUCTOR_ROLES = frozenset(
    {"instructor", "teacher", "editingteacher", "contentdeveloper", "teachingassistant", "mentor"}
)
STUDENT_ROLES = frozenset({"learner", "student"})

DEFAULT_LANDING_PATHS = {
    Role.MANAGER.value: "/",
    Role.INSTRUCTOR.value: "/report/direct/{course_id}",
    Role.STUDENT.value: "/student-attendance/{course_id}",
    Role.UNKNOWN.value: "/",
}


def split_roles(raw: str) -> list[str]:
    return [r.strip() for r in (raw or "").split(",") if r.strip()]


def classify_roles(roles: Iterable[str]) -> Role:
    """Highest-privilege role wins: manager, then instructor, then student."""

    names = set()
    for role in roles:
        tail = role.replace("#", "/").replace(":", "/").rstrip("/").split("/")[-1]
        names.add(tail.lower())

    if names & MANAGER_ROLES:
        return Role.MANAGER
    if names & INSTRUCTOR_ROLES:
        return Role.INSTRUCTOR
    if names & STUDENT_ROLES:
        return Role.STUDENT
    return Role.UNKNOWN


class LtiLaunchService:
    """Turns an LTI 1.1 launch form into a session.

    Only the consumer key is compared; OAuth signatures are not verified.
    """

    def __init__(
        self,
        *,
        consumer_key: Optional[str],
        landing_paths: Optional[Mapping[str, str]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._consumer_key = consumer_key or None
        self._landing_paths = {**DEFAULT_LANDING_PATHS, **dict(landing_paths or {})}
        self._clock = clock

    def _check_consumer_key(self, form: Mapping[str, str]) -> None:
        if self._consumer_key is None:
            logger.warning("Accepting LTI launch without consumer key check")
            return
        if form.get("oauth_consumer_key") != self._consumer_key:
            logger.error("Rejected LTI launch with invalid consumer key")
            raise AuthenticationError("Invalid LTI consumer key")

    def launch(self, form: Mapping[str, str]) -> LtiSession:
        self._check_consumer_key(form)

        missing = [name for name in ("user_id", "roles", "context_id") if not (form.get(name) or "").strip()]
        if missing:
            raise ValidationError(f"Missing LTI parameters: {', '.join(missing)}")

        try:
            user_id = int(form["user_id"])
        except ValueError:
            raise ValidationError("user_id must be an integer") from None

        roles = split_roles(form["roles"])
        role = classify_roles(roles)
        user_name = (form.get("lis_person_name_full") or "").strip() or " ".join(
            p for p in ((form.get("lis_person_name_given") or "").strip(), (form.get("lis_person_name_family") or "").strip()) if p
        )
        context_id = form["context_id"].strip()

        session = LtiSession(
            user_id=user_id,
            user_name=user_name or f"User {user_id}",
            user_email=(form.get("lis_person_contact_email_primary") or "").strip() or None,
            course_id=context_id,
            course_name=(form.get("context_title") or "").strip() or f"Course {context_id}",
            roles=tuple(roles),
            role=role,
            launch_id=uuid.uuid4().hex,
            moodle_token=(form.get("custom_moodle_token") or "").strip(),
            created_at=int(self._clock()),
        )
        logger.info("LTI launch for user %s in course %s as %s", user_id, context_id, role.value)
        return session

    def landing_path(self, session: LtiSession) -> str:
        template = self._landing_paths.get(session.role.value) or "/"
        return template.format(course_id=session.course_id, user_id=session.user_id)
