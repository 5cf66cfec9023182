"""Parse upstream attendance data into the typed intermediate representation.

Two inputs are supported:

- ``parse_report``: a tabular report (headers + rows), as returned by the
  Moodle report builder. Session columns are discovered from date-time
  headers ("wide" reports), or read per row from a mapped date-time column
  ("long" reports).
- ``parse_logs``: raw per-(session, student) log rows from the attendance
  database, with a status acronym table supplied at call time.

Both produce a ``ParsedAttendance`` consumed by ``aggregator.build_table``.
Bad rows, headers and codes are recorded in ``AggregationStats`` and never
abort the parse.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ..common.datetime_utils import (
    from_epoch,
    looks_like_datetime,
    parse_session_datetime,
    split_date_time,
    to_epoch,
)
from ..core.constants import GRADE_LATE_MIN, GRADE_PRESENT_MIN
from ..core.enums import AttendanceStatus, IssueKind
from .field_mapping import FieldMapping, ResolvedFieldMapping
from .model import (
    AttendanceLogRow,
    AttendanceMark,
    ParsedAttendance,
    SessionInfo,
    SessionRecord,
    Student,
    StudentRef,
    session_key,
)
from .status_mapping import StatusMapping

logger = logging.getLogger(__name__)

ReportRow = Union[Mapping[str, Any], Sequence[Any]]


class _Collector:
    """Accumulates sessions/students in first-seen order without duplicates."""

    def __init__(self) -> None:
        self.parsed = ParsedAttendance()
        self._session_ids: set[str] = set()
        self._student_keys: set[str] = set()
        self._warned_codes: set[str] = set()

    def add_session(self, info: SessionInfo) -> None:
        if info.session_id not in self._session_ids:
            self._session_ids.add(info.session_id)
            self.parsed.sessions.append(info)

    def add_student(self, ref: StudentRef) -> None:
        if ref.key not in self._student_keys:
            self._student_keys.add(ref.key)
            self.parsed.students.append(ref)

    def mark(self, student_key: str, session_id: str, status: AttendanceStatus) -> None:
        self.parsed.marks.append(AttendanceMark(student_key=student_key, session_id=session_id, status=status))

    def issue(self, kind: IssueKind, detail: str) -> None:
        self.parsed.stats.record(kind, detail)
        logger.debug("%s: %s", kind.value, detail)

    def resolve_status(self, value: Any, statuses: StatusMapping, where: str) -> AttendanceStatus:
        if value is None or not str(value).strip():
            return AttendanceStatus.UNMARKED
        status = statuses.lookup(value)
        if status is not None:
            return status
        code = str(value).strip()
        self.parsed.stats.record(IssueKind.UNKNOWN_STATUS_CODE, f"{code!r} at {where}")
        if code not in self._warned_codes:
            self._warned_codes.add(code)
            logger.warning("Unknown attendance status code %r, treated as unmarked", code)
        return AttendanceStatus.UNMARKED


def _session_info(moment: datetime, name: str) -> SessionInfo:
    date_s, time_s = split_date_time(moment)
    return SessionInfo(
        session_id=session_key(date_s, time_s, name),
        date=date_s,
        time=time_s,
        session_name=name,
        timestamp=to_epoch(moment),
    )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def status_from_grade(grade: float) -> AttendanceStatus:
    if grade >= GRADE_PRESENT_MIN:
        return AttendanceStatus.PRESENT
    if grade >= GRADE_LATE_MIN:
        return AttendanceStatus.LATE
    return AttendanceStatus.ABSENT


def _row_cells(row: Any, headers: Sequence[str]) -> Optional[list]:
    if isinstance(row, Mapping):
        columns = row.get("columns")
        if isinstance(columns, (list, tuple)):
            return list(columns)
        return [row.get(h) for h in headers]
    if isinstance(row, (list, tuple)):
        return list(row)
    return None


def _cell(cells: list, idx: Optional[int]) -> Any:
    if idx is None or idx >= len(cells):
        return None
    return cells[idx]


def _session_columns(
    headers: Sequence[str], mapping: ResolvedFieldMapping, collector: _Collector, tz: tzinfo
) -> list[tuple[int, datetime]]:
    mapped = mapping.mapped_positions()
    columns: list[tuple[int, datetime]] = []
    for idx, header in enumerate(headers):
        if idx in mapped:
            continue
        moment = parse_session_datetime(header, tz)
        if moment is not None:
            columns.append((idx, moment))
        elif looks_like_datetime(header):
            collector.issue(IssueKind.MALFORMED_HEADER, f"column {idx}: {header!r}")
            logger.warning("Skipping session column with unparsable date %r", header)
    return columns


def _reported_totals(cells: list, mapping: ResolvedFieldMapping) -> dict[AttendanceStatus, int]:
    totals: dict[AttendanceStatus, int] = {}
    for status, idx in (
        (AttendanceStatus.PRESENT, mapping.total_present_index),
        (AttendanceStatus.ABSENT, mapping.total_absent_index),
        (AttendanceStatus.LATE, mapping.total_late_index),
        (AttendanceStatus.EXCUSED, mapping.total_excused_index),
    ):
        value = _to_int(_cell(cells, idx))
        if value is not None:
            totals[status] = value
    return totals


def parse_report(
    headers: Sequence[str],
    rows: Iterable[ReportRow],
    field_mapping: Optional[FieldMapping] = None,
    *,
    status_mapping: Optional[StatusMapping] = None,
    default_session_name: str = "",
    tz: tzinfo = timezone.utc,
) -> ParsedAttendance:
    """Parse a tabular report into marks.

    Raises FieldMappingError when the mapping does not fit ``headers``;
    every data problem is recorded and skipped instead.
    """

    headers = [_text(h) for h in (headers or [])]
    mapping = (field_mapping or FieldMapping()).resolve(headers)
    statuses = status_mapping or StatusMapping.default()
    collector = _Collector()

    rows = list(rows or [])
    if not rows:
        return collector.parsed

    long_form = mapping.date_time_index is not None
    session_columns = [] if long_form else _session_columns(headers, mapping, collector, tz)

    for row_number, row in enumerate(rows):
        cells = _row_cells(row, headers)
        if cells is None:
            collector.issue(IssueKind.MALFORMED_ROW, f"row {row_number}: unsupported type {type(row).__name__}")
            continue

        course = _text(_cell(cells, mapping.course_name_index))
        student = _text(_cell(cells, mapping.student_name_index))
        identity, other = (course, student) if mapping.use_course_name else (student, course)
        if not identity:
            collector.issue(IssueKind.MALFORMED_ROW, f"row {row_number}: no row identity")
            continue

        ref = StudentRef(key=identity, name=identity, course_name=other)
        collector.add_student(ref)
        session_name = course or default_session_name

        if long_form:
            raw_moment = _cell(cells, mapping.date_time_index)
            moment = parse_session_datetime(raw_moment, tz)
            if moment is None:
                collector.issue(IssueKind.MALFORMED_DATE, f"row {row_number}: {raw_moment!r}")
            else:
                info = _session_info(moment, session_name)
                collector.add_session(info)
                status = collector.resolve_status(
                    _cell(cells, mapping.status_index), statuses, f"row {row_number}"
                )
                grade = _to_float(_cell(cells, mapping.grade_index))
                if status is AttendanceStatus.UNMARKED and grade is not None:
                    status = status_from_grade(grade)
                collector.mark(ref.key, info.session_id, status)
        else:
            for idx, moment in session_columns:
                info = _session_info(moment, session_name)
                collector.add_session(info)
                status = collector.resolve_status(cells[idx] if idx < len(cells) else None, statuses, f"row {row_number}, column {idx}")
                collector.mark(ref.key, info.session_id, status)

        totals = _reported_totals(cells, mapping)
        if totals:
            current = collector.parsed.reported_totals.setdefault(ref.key, {})
            for status, value in totals.items():
                current[status] = max(current.get(status, 0), value)

    return collector.parsed


def _roster_ref(entry: Union[Student, StudentRef], course_name: str) -> StudentRef:
    if isinstance(entry, StudentRef):
        return entry
    return StudentRef(key=str(entry.student_id), name=entry.full_name, course_name=course_name)


def parse_logs(
    rows: Iterable[Union[AttendanceLogRow, Mapping[str, Any]]],
    status_mapping: StatusMapping,
    *,
    sessions: Optional[Iterable[SessionRecord]] = None,
    roster: Optional[Iterable[Union[Student, StudentRef]]] = None,
    course_name: str = "",
    tz: tzinfo = timezone.utc,
) -> ParsedAttendance:
    """Parse database log rows into marks.

    ``sessions`` is the canonical session list; when given, log rows for
    other sessions are ignored. ``roster`` registers students that may have
    no log row at all, so they still render with unmarked sessions.
    """

    collector = _Collector()
    ref_to_key: dict[int, str] = {}

    if sessions is not None:
        for record in sessions:
            moment = from_epoch(record.sessdate, tz) if record.sessdate is not None else None
            if moment is None:
                collector.issue(IssueKind.MALFORMED_DATE, f"session {record.session_ref}: {record.sessdate!r}")
                continue
            info = _session_info(moment, record.name)
            ref_to_key[record.session_ref] = info.session_id
            collector.add_session(info)

    for entry in roster or ():
        collector.add_student(_roster_ref(entry, course_name))

    for row_number, row in enumerate(rows or ()):
        try:
            log = row if isinstance(row, AttendanceLogRow) else AttendanceLogRow.from_mapping(row)
        except (AttributeError, TypeError, ValueError) as exc:
            collector.issue(IssueKind.MALFORMED_ROW, f"row {row_number}: {exc}")
            continue

        student_key = str(log.student_id)
        collector.add_student(
            StudentRef(key=student_key, name=log.student_name or f"User {log.student_id}", course_name=course_name)
        )

        session_id = ref_to_key.get(log.session_ref)
        if session_id is None:
            if sessions is not None:
                collector.issue(IssueKind.UNKNOWN_SESSION, f"row {row_number}: session {log.session_ref}")
                continue
            moment = from_epoch(log.sessdate, tz) if log.sessdate is not None else None
            if moment is None:
                collector.issue(IssueKind.MALFORMED_DATE, f"row {row_number}: {log.sessdate!r}")
                continue
            info = _session_info(moment, log.session_name)
            ref_to_key[log.session_ref] = info.session_id
            collector.add_session(info)
            session_id = info.session_id

        status = collector.resolve_status(log.status_acronym, status_mapping, f"row {row_number}")
        collector.mark(student_key, session_id, status)

    return collector.parsed
