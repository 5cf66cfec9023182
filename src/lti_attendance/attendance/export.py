from __future__ import annotations

import csv
import io

import pandas as pd

from .model import AttendanceTableData

EXCEL_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_TOTAL_COLUMNS = ("Total Present", "Total Absent", "Total Late", "Total Excused", "Total Sessions")


def table_columns(table: AttendanceTableData) -> list[str]:
    columns = ["Student Name", "Course"]
    columns += [f"{s.date} {s.time} - {s.session_name}" for s in table.all_sessions()]
    columns += list(_TOTAL_COLUMNS)
    return columns


def table_rows(table: AttendanceTableData) -> list[list]:
    """One flat row per student in table order; status cells are single characters."""

    sessions = table.all_sessions()
    rows = []
    for student in table.students:
        row = [student.student_name, student.course_name]
        row += [student.sessions[s.session_id].value for s in sessions]
        row += [
            student.total_present,
            student.total_absent,
            student.total_late,
            student.total_excused,
            student.total_sessions,
        ]
        rows.append(row)
    return rows


def to_csv_bytes(table: AttendanceTableData) -> bytes:
    out = io.StringIO()
    writer = csv.writer(out)
    writer.writerow(table_columns(table))
    writer.writerows(table_rows(table))
    # BOM so Excel opens UTF-8 names correctly.
    return out.getvalue().encode("utf-8-sig")


def to_excel_bytes(table: AttendanceTableData, *, sheet_name: str = "Attendance") -> bytes:
    df = pd.DataFrame(table_rows(table), columns=table_columns(table))
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    return output.getvalue()
