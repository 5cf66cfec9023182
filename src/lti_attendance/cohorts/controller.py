from __future__ import annotations

from flask import Flask, jsonify

from ..container import Container
from ..lti.session_store import instructor_required


def register(app: Flask, container: Container) -> None:
    @app.route("/api/cohorts", methods=["GET"], endpoint="cohorts_list")
    @instructor_required
    def cohorts_list():
        cohorts = container.cohort_service.list_cohorts()
        return jsonify({"success": True, "cohorts": [c.to_dict() for c in cohorts]})

    @app.route("/api/cohorts/<int:cohort_id>", methods=["GET"], endpoint="cohorts_detail")
    @instructor_required
    def cohorts_detail(cohort_id: int):
        cohort = container.cohort_service.get_cohort(cohort_id)
        members = container.cohort_service.member_ids(cohort_id)
        return jsonify({"success": True, "cohort": {**cohort.to_dict(), "memberCount": len(members)}})

    @app.route("/api/cohorts/<int:cohort_id>/courses", methods=["GET"], endpoint="cohorts_courses")
    @instructor_required
    def cohorts_courses(cohort_id: int):
        container.cohort_service.get_cohort(cohort_id)
        members = container.cohort_service.member_ids(cohort_id)
        courses = container.attendance_service.courses_for_students(members)
        return jsonify(
            {
                "success": True,
                "cohortId": cohort_id,
                "totalCourses": len(courses),
                "courses": [c.to_dict() for c in courses],
            }
        )
