"""購物車路由：登入使用者與訪客共用同一套服務。"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from storecore.services.errors import ValidationError

from ..auth import components, current_user_id, token_required


user_cart_bp = Blueprint("store_user_cart", __name__, url_prefix="/user/cart")
guest_cart_bp = Blueprint("store_guest_cart", __name__, url_prefix="/guest/cart")


def _item_payload():
    payload = request.get_json(silent=True) or {}
    return payload.get("product_id"), payload.get("quantity")


def _set_item(owner_id: str, guest: bool):
    product_id, quantity = _item_payload()
    item, created = components()["cart"].set_item(owner_id, product_id, quantity, guest=guest)
    return jsonify({"item": item}), 201 if created else 200


def _guest_id() -> str:
    payload = request.get_json(silent=True) or {}
    guest_id = str(request.args.get("guest_id") or payload.get("guest_id") or "").strip()
    if not guest_id:
        raise ValidationError("guest_id is required")
    return guest_id


# ---- signed-in user ----------------------------------------------------------


@user_cart_bp.get("/")
@token_required("user")
def get_user_cart():
    return jsonify(components()["cart"].get_cart(current_user_id()))


@user_cart_bp.post("/")
@token_required("user")
def set_user_cart_item():
    return _set_item(current_user_id(), guest=False)


@user_cart_bp.delete("/<product_id>")
@token_required("user")
def delete_user_cart_item(product_id: str):
    components()["cart"].remove_item(current_user_id(), product_id)
    return jsonify({"status": "ok"})


@user_cart_bp.delete("/")
@token_required("user")
def clear_user_cart():
    removed = components()["cart"].clear_cart(current_user_id())
    return jsonify({"status": "ok", "removed": removed})


# ---- guest --------------------------------------------------------------------


@guest_cart_bp.get("")
def get_guest_cart():
    return jsonify(components()["cart"].get_cart(_guest_id(), guest=True))


@guest_cart_bp.post("")
def set_guest_cart_item():
    return _set_item(_guest_id(), guest=True)


@guest_cart_bp.delete("/<product_id>")
def delete_guest_cart_item(product_id: str):
    components()["cart"].remove_item(_guest_id(), product_id, guest=True)
    return jsonify({"status": "ok"})


@guest_cart_bp.delete("")
def clear_guest_cart():
    removed = components()["cart"].clear_cart(_guest_id(), guest=True)
    return jsonify({"status": "ok", "removed": removed})


blueprints = (user_cart_bp, guest_cart_bp)
