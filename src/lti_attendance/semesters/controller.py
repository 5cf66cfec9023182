from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import optional_int
from ..container import Container
from ..lti.session_store import current_session, instructor_required, login_required


def register(app: Flask, container: Container) -> None:
    @app.route("/api/semesters/current", methods=["GET"], endpoint="semesters_current")
    @login_required
    def semesters_current():
        user_id = current_session().user_id
        current = container.semester_service.current_range(user_id)
        semesters = container.semester_service.list_for_user(user_id)
        return jsonify(
            {
                "success": True,
                "current": current.to_dict() if current else None,
                "semesters": [s.to_dict() for s in semesters],
            }
        )

    @app.route("/api/semesters/admission-year", methods=["GET"], endpoint="semesters_admission_year")
    @login_required
    def semesters_admission_year():
        lti = current_session()
        user_id = lti.user_id
        # Instructors may look up a student; everyone else only sees their own year.
        if lti.can_view_all:
            user_id = optional_int(request.args.get("userId"), "userId") or user_id
        return jsonify(
            {
                "success": True,
                "userId": user_id,
                "admissionYear": container.semester_service.admission_year(user_id),
            }
        )

    @app.route("/api/semesters/admission-years", methods=["GET"], endpoint="semesters_admission_years")
    @instructor_required
    def semesters_admission_years():
        years = container.semester_service.admission_years()
        return jsonify({"success": True, "years": years, "count": len(years)})
