from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..auth import components, current_user_id, token_required


user_bp = Blueprint("store_user", __name__, url_prefix="/user")


@user_bp.get("/")
@token_required("user")
def get_profile():
    return jsonify(components()["auth"].get_user(current_user_id()))


@user_bp.put("/")
@token_required("user")
def update_profile():
    payload = request.get_json(silent=True) or {}
    return jsonify(components()["auth"].update_user(current_user_id(), payload))


blueprints = (user_bp,)
