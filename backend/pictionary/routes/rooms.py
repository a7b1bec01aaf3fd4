from __future__ import annotations

from flask import Blueprint, jsonify

from ..game import service

bp = Blueprint("rooms", __name__)


@bp.get("/rooms")
def list_rooms():
    return jsonify({"rooms": [service.room_summary(r) for r in service.list_rooms()]})


@bp.get("/rooms/<code>")
def get_room(code: str):
    room = service.get_room(code)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(service.room_public_state(room))
