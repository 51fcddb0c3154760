"""登入相關路由：訪客、使用者與管理者。"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..auth import components


auth_bp = Blueprint("store_auth", __name__, url_prefix="/auth")


def _id_token(payload: dict) -> str:
    return str(payload.get("idToken") or payload.get("id_token") or "").strip()


@auth_bp.post("/guest")
def create_guest():
    return jsonify(components()["auth"].create_guest()), 201


@auth_bp.post("/google")
def google_user_login():
    payload = request.get_json(silent=True) or {}
    guest_id = str(payload.get("guest_id") or "").strip() or None
    result = components()["auth"].login_user(_id_token(payload), guest_id=guest_id)
    return jsonify(result)


@auth_bp.post("/admin/google")
def google_admin_login():
    payload = request.get_json(silent=True) or {}
    return jsonify(components()["auth"].login_admin(_id_token(payload)))


blueprints = (auth_bp,)
