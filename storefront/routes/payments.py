"""金流路由：Tap（/api/payment）與 Telr（/telr）。"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..auth import components, current_user_id, token_required


tap_bp = Blueprint("store_tap", __name__, url_prefix="/api/payment")
telr_bp = Blueprint("store_telr", __name__, url_prefix="/telr")


@tap_bp.post("/init")
@token_required("user")
def init_tap_payment():
    payload = request.get_json(silent=True) or {}
    result = components()["tap"].create_charge(
        amount=payload.get("amount"),
        customer_email=payload.get("customer_email"),
        user_id=current_user_id(),
        cart_id=payload.get("cart_id"),
    )
    return jsonify(result)


@tap_bp.post("/webhook")
def tap_webhook():
    body = request.get_data(cache=False)
    result = components()["tap"].handle_webhook(body, request.headers.get("X-Tap-Signature"))
    return jsonify(result)


@tap_bp.post("/status")
@token_required("user")
def tap_status():
    payload = request.get_json(silent=True) or {}
    return jsonify(components()["tap"].charge_status(payload.get("charge_id")))


@telr_bp.post("/payment-request")
def telr_payment_request():
    if not request.is_json:
        return jsonify({"error": "invalid_content_type", "message": "Content-Type must be application/json"}), 415
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "validation_error", "message": "invalid JSON"}), 400
    payment_url, order_ref = components()["telr"].create_payment(payload)
    return jsonify({"payment_url": payment_url, "order_ref": order_ref})


@telr_bp.post("/webhook")
def telr_webhook():
    # Telr posts application/x-www-form-urlencoded
    return jsonify(components()["telr"].handle_callback(request.form))


blueprints = (tap_bp, telr_bp)
