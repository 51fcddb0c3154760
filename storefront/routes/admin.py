"""管理後台 API：商品、分類、使用者與管理者列表、購物車檢視。"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..auth import ADMIN_ROLES, components, token_required


admin_bp = Blueprint("store_admin", __name__, url_prefix="/admin")


def _payload() -> dict:
    # 支援 JSON 與表單兩種格式
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


@admin_bp.post("/products")
@token_required(*ADMIN_ROLES)
def create_product():
    return jsonify(components()["catalog"].create_product(_payload())), 201


@admin_bp.put("/products/<product_id>")
@token_required(*ADMIN_ROLES)
def update_product(product_id: str):
    return jsonify(components()["catalog"].update_product(product_id, _payload()))


@admin_bp.delete("/products/<product_id>")
@token_required(*ADMIN_ROLES)
def delete_product(product_id: str):
    components()["catalog"].delete_product(product_id)
    return jsonify({"status": "ok"})


@admin_bp.post("/categories")
@token_required(*ADMIN_ROLES)
def create_category():
    return jsonify(components()["catalog"].create_category(_payload())), 201


@admin_bp.put("/categories/<category_id>")
@token_required(*ADMIN_ROLES)
def update_category(category_id: str):
    return jsonify(components()["catalog"].update_category(category_id, _payload()))


@admin_bp.delete("/categories/<category_id>")
@token_required(*ADMIN_ROLES)
def delete_category(category_id: str):
    components()["catalog"].delete_category(category_id)
    return jsonify({"status": "ok"})


@admin_bp.get("/users")
@token_required(*ADMIN_ROLES)
def list_users():
    return jsonify({"users": components()["auth"].list_users()})


@admin_bp.get("/admins")
@token_required(*ADMIN_ROLES)
def list_admins():
    return jsonify({"admins": components()["auth"].list_admins()})


@admin_bp.get("/users/<user_id>/cart")
@token_required(*ADMIN_ROLES)
def view_user_cart(user_id: str):
    return jsonify(components()["cart"].get_cart(user_id))


blueprints = (admin_bp,)
