from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game import coordinator

bp = Blueprint("lobbies", __name__)


@bp.get("/lobbies/<code>")
def get_lobby(code: str):
    lobby = current_app.extensions["lobby_registry"].get(code)
    if not lobby:
        return jsonify({"error": "lobby_not_found"}), 404
    return jsonify(coordinator.lobby_public_state(lobby))
