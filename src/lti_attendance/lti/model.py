from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..core.enums import Role


@dataclass(frozen=True)
class LtiSession:
    """What a successful launch leaves in the user's session."""

    user_id: int
    user_name: str
    course_id: str
    course_name: str
    role: Role
    launch_id: str
    created_at: int
    roles: tuple[str, ...] = field(default_factory=tuple)
    user_email: Optional[str] = None
    moodle_token: str = ""

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT

    @property
    def can_view_all(self) -> bool:
        return self.role in (Role.MANAGER, Role.INSTRUCTOR)

    def to_dict(self, *, include_token: bool = True) -> dict:
        out = {
            "userId": self.user_id,
            "userName": self.user_name,
            "userEmail": self.user_email,
            "courseId": self.course_id,
            "courseName": self.course_name,
            "roles": list(self.roles),
            "role": self.role.value,
            "launchId": self.launch_id,
            "createdAt": self.created_at,
        }
        if include_token:
            out["moodleToken"] = self.moodle_token
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LtiSession":
        return cls(
            user_id=int(data["userId"]),
            user_name=str(data.get("userName") or ""),
            user_email=data.get("userEmail"),
            course_id=str(data.get("courseId") or ""),
            course_name=str(data.get("courseName") or ""),
            roles=tuple(data.get("roles") or ()),
            role=Role(data.get("role") or Role.UNKNOWN.value),
            launch_id=str(data.get("launchId") or ""),
            moodle_token=str(data.get("moodleToken") or ""),
            created_at=int(data.get("createdAt") or 0),
        )
