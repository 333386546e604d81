from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.state import session_public_state

bp = Blueprint("sessions", __name__)


@bp.get("/sessions/<code>")
def get_session(code: str):
    service = current_app.extensions["buzzer"]
    session = service.registry.get(code.strip().upper())
    if not session:
        return jsonify({"error": "session_not_found"}), 404
    return jsonify(session_public_state(session))
