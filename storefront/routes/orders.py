"""訂單路由與管理端即時訂單串流（SSE）。"""

from __future__ import annotations

from flask import Blueprint, Response, g, jsonify, request, stream_with_context

from storecore.services.errors import Forbidden, ValidationError

from ..auth import ADMIN_ROLES, components, current_user_id, is_admin, token_required


orders_bp = Blueprint("store_orders", __name__, url_prefix="/orders")

# seconds between keep-alive comments on an idle stream
STREAM_HEARTBEAT = 15.0


@orders_bp.post("/place")
@token_required("user", *ADMIN_ROLES)
def place_order():
    payload = request.get_json(silent=True) or {}
    if is_admin():
        # admins place orders on behalf of a user, never from their own cart
        user_id = str(payload.get("user_id") or "").strip()
        if not user_id:
            raise ValidationError("user_id is required")
    else:
        user_id = current_user_id()
    order = components()["order_service"].place_order(
        user_id=user_id,
        status=payload.get("status", "pending"),
        payment_status=payload.get("payment_status", "pending"),
        payment_method=payload.get("payment_method"),
    )
    order.pop("replayed", None)
    return jsonify({"message": "order placed successfully", "order": order}), 201


@orders_bp.get("/")
@token_required(*ADMIN_ROLES)
def list_orders():
    args = request.args
    return jsonify(
        components()["order_service"].list_orders(
            page=args.get("page", 1),
            page_size=args.get("page_size", 20),
            status=args.get("status"),
        )
    )


@orders_bp.get("/stream")
@token_required(*ADMIN_ROLES, query_param="access_token")
def order_stream():
    hub = components()["notifier"]
    sub = hub.subscribe()

    def events():
        try:
            yield ": connected\n\n"
            while not sub.closed:
                message = sub.get(timeout=STREAM_HEARTBEAT)
                if message is None:
                    yield ": keep-alive\n\n"
                    continue
                yield f"event: order\ndata: {message}\n\n"
        finally:
            hub.unsubscribe(sub)

    headers = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    return Response(stream_with_context(events()), mimetype="text/event-stream", headers=headers)


@orders_bp.get("/user/<user_id>")
@token_required("user", *ADMIN_ROLES)
def list_user_orders(user_id: str):
    if not is_admin() and user_id != current_user_id():
        raise Forbidden("cannot read another user's orders")
    return jsonify({"orders": components()["order_service"].list_user_orders(user_id)})


@orders_bp.get("/<key>")
@token_required("user", *ADMIN_ROLES)
def get_order(key: str):
    order = components()["order_service"].get_order(key)
    if not is_admin() and order["user_id"] != g.identity["user_id"]:
        raise Forbidden("cannot read another user's order")
    return jsonify(order)


@orders_bp.put("/<order_id>/status")
@token_required(*ADMIN_ROLES)
def update_status(order_id: str):
    payload = request.get_json(silent=True) or {}
    return jsonify(components()["order_service"].update_status(order_id, payload.get("status")))


@orders_bp.put("/<order_id>/payment-status")
@token_required(*ADMIN_ROLES)
def update_payment_status(order_id: str):
    payload = request.get_json(silent=True) or {}
    return jsonify(
        components()["order_service"].update_payment_status(order_id, payload.get("payment_status"))
    )


@orders_bp.delete("/<order_id>")
@token_required(*ADMIN_ROLES)
def delete_order(order_id: str):
    components()["order_service"].delete_order(order_id)
    return jsonify({"status": "ok"})


blueprints = (orders_bp,)
