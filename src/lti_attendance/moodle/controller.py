from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import optional_int
from ..container import Container
from ..lti.session_store import current_session, instructor_required, login_required


def register(app: Flask, container: Container) -> None:
    @app.route("/api/moodle/reports", methods=["GET"], endpoint="moodle_reports")
    @instructor_required
    def moodle_reports():
        client = container.moodle_client_factory(current_session().moodle_token)
        reports = client.list_reports()
        return jsonify({"success": True, "reports": [r.to_dict() for r in reports]})

    @app.route("/api/moodle/courses", methods=["GET"], endpoint="moodle_courses")
    @login_required
    def moodle_courses():
        lti = current_session()
        user_id = lti.user_id
        if lti.can_view_all:
            user_id = optional_int(request.args.get("userId"), "userId") or user_id
        client = container.moodle_client_factory(lti.moodle_token)
        courses = client.get_user_courses(user_id)
        return jsonify({"success": True, "userId": user_id, "courses": [c.to_dict() for c in courses]})
