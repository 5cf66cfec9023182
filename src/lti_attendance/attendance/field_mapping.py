from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping, Optional, Sequence, Union

from ..core.exceptions import FieldMappingError

logger = logging.getLogger(__name__)

FieldRef = Union[int, str, None]

_INDEX_FIELDS = (
    "course_name_index",
    "student_name_index",
    "date_time_index",
    "status_index",
    "grade_index",
    "total_present_index",
    "total_absent_index",
    "total_late_index",
    "total_excused_index",
)

_CAMEL = {
    "courseNameIndex": "course_name_index",
    "studentNameIndex": "student_name_index",
    "dateTimeIndex": "date_time_index",
    "statusIndex": "status_index",
    "gradeIndex": "grade_index",
    "totalPresentIndex": "total_present_index",
    "totalAbsentIndex": "total_absent_index",
    "totalLateIndex": "total_late_index",
    "totalExcusedIndex": "total_excused_index",
    "useCourseName": "use_course_name",
    "swapFields": "swap_fields",
}


@dataclass(frozen=True)
class FieldMapping:
    """Which report column feeds which attribute.

    Each index is a column position, a header name, or unset (None / -1).
    """

    course_name_index: FieldRef = None
    student_name_index: FieldRef = None
    date_time_index: FieldRef = None
    status_index: FieldRef = None
    grade_index: FieldRef = None
    total_present_index: FieldRef = None
    total_absent_index: FieldRef = None
    total_late_index: FieldRef = None
    total_excused_index: FieldRef = None
    use_course_name: bool = False
    swap_fields: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FieldMapping":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CAMEL.get(key, key)
            if name not in known:
                raise FieldMappingError(f"Unknown field mapping option: {key}")
            kwargs[name] = bool(value) if name in ("use_course_name", "swap_fields") else value
        return cls(**kwargs)

    def to_dict(self) -> dict:
        reverse = {v: k for k, v in _CAMEL.items()}
        return {reverse[k]: v for k, v in asdict(self).items()}

    def resolve(self, headers: Sequence[str]) -> "ResolvedFieldMapping":
        """Bind to concrete column positions; raise for references that cannot fit."""

        positions: dict[str, Optional[int]] = {}
        for name in _INDEX_FIELDS:
            positions[name] = _resolve_ref(getattr(self, name), name, headers)

        if self.swap_fields:
            positions["course_name_index"], positions["student_name_index"] = (
                positions["student_name_index"],
                positions["course_name_index"],
            )
        return ResolvedFieldMapping(use_course_name=self.use_course_name, **positions)


@dataclass(frozen=True)
class ResolvedFieldMapping:
    course_name_index: Optional[int] = None
    student_name_index: Optional[int] = None
    date_time_index: Optional[int] = None
    status_index: Optional[int] = None
    grade_index: Optional[int] = None
    total_present_index: Optional[int] = None
    total_absent_index: Optional[int] = None
    total_late_index: Optional[int] = None
    total_excused_index: Optional[int] = None
    use_course_name: bool = False

    def mapped_positions(self) -> set[int]:
        return {getattr(self, name) for name in _INDEX_FIELDS if getattr(self, name) is not None}


def _resolve_ref(ref: FieldRef, name: str, headers: Sequence[str]) -> Optional[int]:
    if ref is None or ref == "" or ref == -1:
        return None
    if isinstance(ref, bool):
        raise FieldMappingError(f"{name} must be an index or header name")
    if isinstance(ref, str):
        digits = ref.lstrip("-")
        if digits.isascii() and digits.isdigit():
            return _resolve_ref(int(ref), name, headers)
        if ref not in headers:
            raise FieldMappingError(f"{name} refers to unknown header {ref!r}")
        return list(headers).index(ref)
    if not isinstance(ref, int) or ref < 0 or ref >= len(headers):
        raise FieldMappingError(f"{name}={ref!r} is out of range for {len(headers)} headers")
    return ref


# ---------------------------------------------------------------------------
# Header detection
# ---------------------------------------------------------------------------

HEADER_PATTERNS: dict[str, tuple[str, ...]] = {
    "course_name_index": ("course full name", "course name", "coursename", "course"),
    "student_full_name": ("full name", "fullname", "student full name", "user full name", "userfullname"),
    "student_name_index": ("student name", "studentname", "user name", "username", "name"),
    "total_present_index": ("status p - total count", "total present", "present count", "p count", "totalpresent"),
    "total_absent_index": ("status a - total count", "total absent", "absent count", "a count", "totalabsent"),
    "total_late_index": ("status l - total count", "total late", "late count", "l count", "totallate"),
    "total_excused_index": ("status e - total count", "total excused", "excused count", "e count", "totalexcused"),
    "date_time_index": ("session date", "sessiondate", "datetime", "session time", "date", "time"),
    "status_index": ("user session status", "session status", "attendance status", "sessionstatus", "status"),
    "grade_index": ("user session grade", "session grade", "sessiongrade", "gradeformatted", "grade"),
}


@dataclass
class HeaderMappingResult:
    mapping: FieldMapping
    warnings: list[str] = field(default_factory=list)
    missing_critical: list[str] = field(default_factory=list)

    def summary(self, headers: Sequence[str]) -> str:
        resolved = self.mapping.resolve(headers)

        def label(idx: Optional[int]) -> str:
            return headers[idx] if idx is not None else "Not found"

        return ", ".join(
            [
                f'Course: "{label(resolved.course_name_index)}"',
                f'Student: "{label(resolved.student_name_index)}"',
                f'Date/Time: "{label(resolved.date_time_index)}"',
                f'Status: "{label(resolved.status_index)}"',
                f'Grade: "{label(resolved.grade_index)}"',
            ]
        )


def find_header_index(headers: Sequence[str], patterns: Sequence[str], taken: set[int] = frozenset()) -> Optional[int]:
    normalized = [h.lower().strip() for h in headers]
    for pattern in patterns:
        for idx, header in enumerate(normalized):
            if idx not in taken and header == pattern:
                return idx
    for pattern in patterns:
        for idx, header in enumerate(normalized):
            if idx not in taken and pattern in header:
                return idx
    return None


def detect_field_mapping(headers: Sequence[str], *, use_course_name: bool = False, swap_fields: bool = False) -> HeaderMappingResult:
    """Map report columns by header name patterns instead of fixed positions."""

    found: dict[str, Optional[int]] = {}
    taken: set[int] = set()
    for name, patterns in HEADER_PATTERNS.items():
        idx = find_header_index(headers, patterns, taken)
        found[name] = idx
        if idx is not None and name != "student_full_name":
            taken.add(idx)

    full_name = found.pop("student_full_name")
    if full_name is not None and full_name != found["course_name_index"]:
        found["student_name_index"] = full_name

    warnings: list[str] = []
    if found["course_name_index"] is None:
        warnings.append("Course name field not found - will skip course identification")
    if found["student_name_index"] is None:
        warnings.append("Student name field not found - will skip student identification")
    if found["date_time_index"] is None:
        warnings.append("Session date/time field not found - session columns are read from headers")
    if found["status_index"] is None and found["grade_index"] is None:
        warnings.append("Neither session status nor grade field found - attendance determination may be limited")
    for name, label in (
        ("total_present_index", "present"),
        ("total_absent_index", "absent"),
        ("total_late_index", "late"),
        ("total_excused_index", "excused"),
    ):
        if found[name] is None:
            warnings.append(f"Total {label} count not found - will calculate from individual records")

    missing_critical: list[str] = []
    if all(v is None for v in found.values()):
        missing_critical.append("No recognizable fields found in the report headers. Cannot process data.")

    mapping = FieldMapping(use_course_name=use_course_name, swap_fields=swap_fields, **found)
    result = HeaderMappingResult(mapping=mapping, warnings=warnings, missing_critical=missing_critical)
    logger.debug("Header mapping: %s", result.summary(headers))
    for warning in warnings:
        logger.debug("Header mapping warning: %s", warning)
    return result

