from __future__ import annotations

import json
from typing import Iterable, Mapping, Optional, Union

from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from .model import StatusDefinition

_CATEGORY_WORDS = {
    "present": AttendanceStatus.PRESENT,
    "absent": AttendanceStatus.ABSENT,
    "late": AttendanceStatus.LATE,
    "excused": AttendanceStatus.EXCUSED,
    "unmarked": AttendanceStatus.UNMARKED,
}

_DEFAULT_CODES = {
    "P": AttendanceStatus.PRESENT,
    "A": AttendanceStatus.ABSENT,
    "L": AttendanceStatus.LATE,
    "E": AttendanceStatus.EXCUSED,
    "PRESENT": AttendanceStatus.PRESENT,
    "ABSENT": AttendanceStatus.ABSENT,
    "LATE": AttendanceStatus.LATE,
    "EXCUSED": AttendanceStatus.EXCUSED,
}


def parse_category(value: Union[str, AttendanceStatus]) -> AttendanceStatus:
    """Accept 'P', 'present', 'PRESENT' or an AttendanceStatus."""

    if isinstance(value, AttendanceStatus):
        return value
    text = str(value or "").strip()
    try:
        return AttendanceStatus(text.upper())
    except ValueError:
        pass
    category = _CATEGORY_WORDS.get(text.lower())
    if category is None:
        raise ValidationError(f"Unknown attendance category: {value!r}")
    return category


class StatusMapping:
    """Runtime lookup table: status acronym -> attendance category.

    Acronyms are configured per institution in Moodle, so the table is data,
    not code. Lookups are case-insensitive and an unrecognized acronym
    yields None; callers treat that as Unmarked.
    """

    def __init__(self, mapping: Optional[Mapping[str, Union[str, AttendanceStatus]]] = None):
        self._mapping: dict[str, AttendanceStatus] = {}
        for acronym, category in (mapping or {}).items():
            self._mapping[self._norm(acronym)] = parse_category(category)

    @staticmethod
    def _norm(acronym) -> str:
        return str(acronym).strip().upper()

    @classmethod
    def default(cls) -> "StatusMapping":
        return cls(_DEFAULT_CODES)

    @classmethod
    def from_config(cls, raw: Union[None, str, Mapping[str, str]]) -> "StatusMapping":
        """Default codes overlaid with configured overrides (dict or JSON object)."""

        if isinstance(raw, str):
            raw = json.loads(raw) if raw.strip() else {}
        if raw is not None and not isinstance(raw, Mapping):
            raise ValidationError("STATUS_ACRONYMS must be a JSON object")
        return cls({**_DEFAULT_CODES, **dict(raw or {})})

    @classmethod
    def from_statuses(
        cls,
        statuses: Iterable[StatusDefinition],
        overrides: Optional["StatusMapping"] = None,
    ) -> "StatusMapping":
        """Build the table from the course's status definitions.

        Each acronym is categorized by the default codes, then by a category
        word in its description ("Present", "Late arrival", ...). Overrides
        win over both.
        """

        mapping: dict[str, AttendanceStatus] = {}
        for status in statuses:
            acronym = cls._norm(status.acronym)
            if not acronym:
                continue
            category = _DEFAULT_CODES.get(acronym) or _category_from_description(status.description)
            if category is not None:
                mapping.setdefault(acronym, category)
        if overrides is not None:
            mapping.update(overrides._mapping)
        return cls(mapping)

    def lookup(self, acronym) -> Optional[AttendanceStatus]:
        if acronym is None:
            return None
        return self._mapping.get(self._norm(acronym))

    def __contains__(self, acronym) -> bool:
        return self.lookup(acronym) is not None

    def __len__(self) -> int:
        return len(self._mapping)

    def as_dict(self) -> dict[str, str]:
        return {acronym: category.value for acronym, category in sorted(self._mapping.items())}


def _category_from_description(description: str) -> Optional[AttendanceStatus]:
    words = (description or "").lower().split()
    for word in words:
        category = _CATEGORY_WORDS.get(word.strip(".,;:()"))
        if category is not None and category is not AttendanceStatus.UNMARKED:
            return category
    return None
