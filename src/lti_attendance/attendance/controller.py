from __future__ import annotations

import io
from datetime import datetime, time, timezone
from typing import Any, Optional

from flask import Flask, jsonify, request, send_file

from ..common.validators import optional_int, parse_bool, require_int_list, require_positive_int
from ..container import Container
from ..core.exceptions import AuthorizationError, ValidationError
from ..lti.model import LtiSession
from ..lti.session_store import current_session, instructor_required, login_required
from .export import EXCEL_MIMETYPE, to_csv_bytes, to_excel_bytes
from .field_mapping import FieldMapping


def register(app: Flask, container: Container) -> None:
    def _params() -> dict[str, Any]:
        """Query string overlaid with a JSON body, so GET and POST share one parser."""

        params: dict[str, Any] = request.args.to_dict()
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            params.update(body)
        return params

    def _date_range(params: dict[str, Any], lti: LtiSession) -> tuple[Optional[int], Optional[int]]:
        date_from = optional_int(params.get("datefrom"), "datefrom")
        date_to = optional_int(params.get("dateto"), "dateto")
        if date_from is None and date_to is None and lti.is_student:
            current = container.semester_service.current_range(lti.user_id)
            if current is not None:
                date_from = int(datetime.combine(current.start, time.min, tzinfo=timezone.utc).timestamp())
                date_to = int(datetime.combine(current.end, time.max, tzinfo=timezone.utc).timestamp())
        return date_from, date_to

    def _own_student_id(lti: LtiSession, requested: Optional[int]) -> Optional[int]:
        # Students may only read their own rows.
        if lti.can_view_all:
            return requested
        return lti.user_id

    def _field_mapping(params: dict[str, Any]) -> Optional[FieldMapping]:
        raw = params.get("fieldMapping")
        if raw is None:
            return None
        if not isinstance(raw, dict):
            raise ValidationError("fieldMapping must be an object")
        return FieldMapping.from_dict(raw)

    def _course_table(course_id: int, params: dict[str, Any]):
        lti = current_session()
        date_from, date_to = _date_range(params, lti)
        return container.attendance_service.course_table(
            course_id,
            student_id=_own_student_id(lti, optional_int(params.get("filterStudentId"), "filterStudentId")),
            date_from=date_from,
            date_to=date_to,
            sort_students=parse_bool(params.get("sort")),
        )

    @app.route("/api/attendance/course", methods=["GET", "POST"], endpoint="attendance_course")
    @login_required
    def attendance_course():
        params = _params()
        course_id = require_positive_int(params.get("courseId") or current_session().course_id, "courseId")
        table = _course_table(course_id, params)
        return jsonify({"success": True, "courseId": course_id, "dataSource": "database", **table.to_dict(include_stats=True)})

    @app.route("/api/attendance/course/<int:course_id>/export.csv", methods=["GET"], endpoint="attendance_export_csv")
    @login_required
    def attendance_export_csv(course_id: int):
        table = _course_table(course_id, _params())
        return app.response_class(
            to_csv_bytes(table),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=attendance_{course_id}.csv"},
        )

    @app.route("/api/attendance/course/<int:course_id>/export.xlsx", methods=["GET"], endpoint="attendance_export_xlsx")
    @login_required
    def attendance_export_xlsx(course_id: int):
        table = _course_table(course_id, _params())
        return send_file(
            io.BytesIO(to_excel_bytes(table)),
            download_name=f"attendance_{course_id}.xlsx",
            as_attachment=True,
            mimetype=EXCEL_MIMETYPE,
        )

    @app.route("/api/attendance/report/<int:report_id>", methods=["GET", "POST"], endpoint="attendance_report")
    @instructor_required
    def attendance_report(report_id: int):
        params = _params()
        client = container.moodle_client_factory(current_session().moodle_token)
        result = container.attendance_service.report_table(
            client,
            report_id,
            _field_mapping(params),
            sort_students=parse_bool(params.get("sort")),
        )
        return jsonify({"success": True, "reportId": report_id, **result.to_dict()})

    @app.route("/api/attendance/direct/<int:course_id>", methods=["GET"], endpoint="attendance_direct")
    @instructor_required
    def attendance_direct(course_id: int):
        client = container.moodle_client_factory(current_session().moodle_token)
        result = container.attendance_service.direct_sessions(client, course_id)
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/attendance/transform", methods=["POST"], endpoint="attendance_transform")
    @instructor_required
    def attendance_transform():
        params = _params()
        headers = params.get("headers")
        rows = params.get("rows")
        if not isinstance(headers, list):
            raise ValidationError("headers must be an array")
        if not isinstance(rows, list):
            raise ValidationError("rows must be an array")
        result = container.attendance_service.transform_report(
            headers,
            rows,
            _field_mapping(params),
            default_session_name=str(params.get("reportName") or ""),
            sort_students=parse_bool(params.get("sort")),
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/attendance/cohort/<int:cohort_id>", methods=["GET", "POST"], endpoint="attendance_cohort")
    @instructor_required
    def attendance_cohort(cohort_id: int):
        params = _params()
        date_from, date_to = _date_range(params, current_session())
        cohort = container.cohort_service.get_cohort(cohort_id)
        result = container.attendance_service.cohort_table(
            cohort,
            container.cohort_service.member_ids(cohort_id),
            date_from=date_from,
            date_to=date_to,
        )
        return jsonify({"success": True, **result.to_dict()})

    @app.route("/api/attendance/student/courses", methods=["POST"], endpoint="attendance_student_courses")
    @login_required
    def attendance_student_courses():
        params = _params()
        lti = current_session()
        student_id = require_positive_int(params.get("studentId") or lti.user_id, "studentId")
        if not lti.can_view_all and student_id != lti.user_id:
            raise AuthorizationError("Students can only view their own attendance")
        course_ids = require_int_list(params.get("courseIds"), "courseIds")
        date_from, date_to = _date_range(params, lti)
        summary = container.attendance_service.student_summary(
            student_id, course_ids, date_from=date_from, date_to=date_to
        )
        return jsonify({"success": True, **summary.to_dict()})

    @app.route("/api/attendance/student/courses", methods=["GET"], endpoint="attendance_student_enrolled")
    @login_required
    def attendance_student_enrolled():
        lti = current_session()
        student_id = optional_int(request.args.get("studentId"), "studentId") or lti.user_id
        if not lti.can_view_all and student_id != lti.user_id:
            raise AuthorizationError("Students can only view their own courses")
        courses = container.attendance_service.courses_for_students([student_id])
        return jsonify({"success": True, "studentId": student_id, "courses": [c.to_dict() for c in courses]})
