from __future__ import annotations

import logging
from collections import OrderedDict

from ..core.enums import AttendanceStatus
from .model import (
    AttendanceTableData,
    ParsedAttendance,
    SessionDate,
    SessionInfo,
    StudentAttendance,
    StudentRef,
)

logger = logging.getLogger(__name__)

_COUNTED = (
    AttendanceStatus.PRESENT,
    AttendanceStatus.ABSENT,
    AttendanceStatus.LATE,
    AttendanceStatus.EXCUSED,
)


def _group_sessions(sessions: list[SessionInfo]) -> list[SessionDate]:
    unique: "OrderedDict[str, SessionInfo]" = OrderedDict()
    for info in sessions:
        unique.setdefault(info.session_id, info)

    by_date: dict[str, list[SessionInfo]] = {}
    for info in unique.values():
        by_date.setdefault(info.date, []).append(info)

    dates = [
        SessionDate(
            date=day,
            timestamp=min(s.timestamp for s in items),
            sessions=tuple(sorted(items, key=lambda s: (s.time, s.session_name, s.session_id))),
        )
        for day, items in by_date.items()
    ]
    dates.sort(key=lambda d: (d.timestamp, d.date))
    return dates


def _order_students(students: list[StudentRef], sort_students: bool) -> list[StudentRef]:
    unique: "OrderedDict[str, StudentRef]" = OrderedDict()
    for ref in students:
        unique.setdefault(ref.key, ref)
    ordered = list(unique.values())
    if sort_students:
        ordered.sort(key=lambda r: (r.name.casefold(), r.key))
    return ordered


def build_table(parsed: ParsedAttendance, *, sort_students: bool = False) -> AttendanceTableData:
    """Turn parsed marks into a dense, deterministic attendance table.

    Every student gets an entry for every session (Unmarked when no mark
    exists). When several marks hit the same cell the last one wins, except
    that an unmarked cell never replaces a recorded status. Totals
    are computed from the cells; reported totals are carried alongside and
    only compared.
    """

    session_dates = _group_sessions(parsed.sessions)
    ordered_ids = [s.session_id for d in session_dates for s in d.sessions]
    known_sessions = set(ordered_ids)
    refs = _order_students(parsed.students, sort_students)
    known_students = {ref.key for ref in refs}

    cells: dict[str, dict[str, AttendanceStatus]] = {ref.key: {} for ref in refs}
    for mark in parsed.marks:
        if mark.status is AttendanceStatus.UNMARKED:
            continue
        if mark.student_key in known_students and mark.session_id in known_sessions:
            cells[mark.student_key][mark.session_id] = mark.status

    students: list[StudentAttendance] = []
    for ref in refs:
        row = cells[ref.key]
        dense = {sid: row.get(sid, AttendanceStatus.UNMARKED) for sid in ordered_ids}
        counts = {status: 0 for status in _COUNTED}
        for status in dense.values():
            if status in counts:
                counts[status] += 1

        reported = parsed.reported_totals.get(ref.key)
        if reported:
            mismatched = {s.value: (reported[s], counts[s]) for s in reported if reported[s] != counts.get(s, 0)}
            if mismatched:
                logger.info("Reported totals differ for %r (reported, computed): %s", ref.key, mismatched)

        students.append(
            StudentAttendance(
                student_key=ref.key,
                student_name=ref.name,
                course_name=ref.course_name,
                sessions=dense,
                total_present=counts[AttendanceStatus.PRESENT],
                total_absent=counts[AttendanceStatus.ABSENT],
                total_late=counts[AttendanceStatus.LATE],
                total_excused=counts[AttendanceStatus.EXCUSED],
                total_sessions=len(ordered_ids),
                reported_totals=dict(reported) if reported else None,
            )
        )

    return AttendanceTableData(students=students, session_dates=session_dates, stats=parsed.stats)
