from __future__ import annotations

from flask import Flask, jsonify, redirect, request

from ..container import Container
from .session_store import clear_lti_session, current_session, login_required, save_lti_session


def register(app: Flask, container: Container) -> None:
    @app.route("/lti/launch", methods=["POST"], endpoint="lti_launch")
    def lti_launch():
        lti = container.lti_service.launch(request.form.to_dict())
        save_lti_session(lti)
        return redirect(container.lti_service.landing_path(lti), code=303)

    @app.route("/api/lti/session", methods=["GET"], endpoint="lti_session")
    @login_required
    def lti_session():
        return jsonify({"authenticated": True, "session": current_session().to_dict(include_token=False)})

    @app.route("/api/logout", methods=["POST"], endpoint="logout")
    def logout():
        clear_lti_session()
        return jsonify({"success": True})
