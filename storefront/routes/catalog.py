"""公開商品目錄路由。"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..auth import components


public_bp = Blueprint("store_public", __name__, url_prefix="/public")


@public_bp.get("/products")
def list_products():
    args = request.args
    result = components()["catalog"].list_products(
        search=args.get("search") or args.get("q"),
        category_id=args.get("category_id"),
        min_price=args.get("min_price"),
        max_price=args.get("max_price"),
        sort_by=args.get("sort_by", "created_at"),
        order=args.get("order", "desc"),
        page=args.get("page", 1),
        page_size=args.get("page_size", 20),
    )
    return jsonify(result)


@public_bp.get("/products/<product_id>")
def get_product(product_id: str):
    return jsonify(components()["catalog"].get_product(product_id))


@public_bp.get("/categories")
def list_categories():
    with_products = request.args.get("with_products", "true").lower() != "false"
    return jsonify({"categories": components()["catalog"].list_categories(with_products=with_products)})


@public_bp.get("/categories/<category_id>")
def get_category(category_id: str):
    return jsonify(components()["catalog"].get_category(category_id))


blueprints = (public_bp,)
