from typing import Any, Dict, Optional


def _money(value) -> float:
    return float(value or 0)


def _ts(value) -> Optional[str]:
    return value.isoformat() if value else None


def to_category_dto(row: Any, with_products: bool = False) -> Dict:
    data = {
        "id": getattr(row, "id", None),
        "name_en": getattr(row, "name_en", None),
        "name_ar": getattr(row, "name_ar", None),
        "image": getattr(row, "image", None),
    }
    if with_products:
        data["products"] = [
            to_product_dto(p, with_categories=False)
            for p in getattr(row, "products", None) or []
            if getattr(p, "deleted_at", None) is None
        ]
    return data


def to_product_dto(row: Any, with_categories: bool = True) -> Dict:
    data = {
        "id": getattr(row, "id", None),
        "name_en": getattr(row, "name_en", None),
        "name_ar": getattr(row, "name_ar", None),
        "description_en": getattr(row, "description_en", None),
        "description_ar": getattr(row, "description_ar", None),
        "sale_price": _money(getattr(row, "sale_price", 0)),
        "regular_price": _money(getattr(row, "regular_price", 0)),
        "base_cost": _money(getattr(row, "base_cost", 0)),
        "weight": float(getattr(row, "weight", 0) or 0),
        "image": getattr(row, "image", None),
        "stock": getattr(row, "stock", 0) or 0,
        "created_at": _ts(getattr(row, "created_at", None)),
    }
    if with_categories:
        data["categories"] = [to_category_dto(c) for c in getattr(row, "categories", None) or []]
    return data


def to_cart_item_dto(row: Any) -> Dict:
    return {
        "id": getattr(row, "id", None),
        "product_id": getattr(row, "product_id", None),
        "product_name_en": getattr(row, "product_name_en", None),
        "product_name_ar": getattr(row, "product_name_ar", None),
        "product_image": getattr(row, "product_image", None),
        "product_stock": getattr(row, "product_stock", 0) or 0,
        "sale_price": _money(getattr(row, "sale_price", 0)),
        "regular_price": _money(getattr(row, "regular_price", 0)),
        "weight": float(getattr(row, "weight", 0) or 0),
        "quantity": getattr(row, "quantity", 0),
        "added_at": _ts(getattr(row, "added_at", None)),
    }


def to_order_item_dto(row: Any) -> Dict:
    return {
        "product_id": getattr(row, "product_id", None),
        "product_name_en": getattr(row, "product_name_en", None),
        "product_name_ar": getattr(row, "product_name_ar", None),
        "product_image": getattr(row, "product_image", None),
        "sale_price": _money(getattr(row, "sale_price", 0)),
        "regular_price": _money(getattr(row, "regular_price", 0)),
        "weight": float(getattr(row, "weight", 0) or 0),
        "quantity": getattr(row, "quantity", 0),
    }


def to_order_dto(row: Any) -> Dict:
    return {
        "id": getattr(row, "id", None),
        "order_ref": getattr(row, "order_ref", None),
        "user_id": getattr(row, "user_id", None),
        "items": [to_order_item_dto(i) for i in getattr(row, "items", None) or []],
        "shipping_cost": _money(getattr(row, "shipping_cost", 0)),
        "total_amount": _money(getattr(row, "total_amount", 0)),
        "status": getattr(row, "status", None),
        "payment_status": getattr(row, "payment_status", None),
        "payment_method": getattr(row, "payment_method", None),
        "created_at": _ts(getattr(row, "created_at", None)),
    }


def to_user_dto(row: Any) -> Dict:
    return {
        "id": getattr(row, "id", None),
        "email": getattr(row, "email", None),
        "name": getattr(row, "name", None),
        "phone": getattr(row, "phone", None),
        "picture": getattr(row, "picture", None),
        "provider": getattr(row, "provider", None),
        "address": {
            "country": getattr(row, "country", None),
            "state": getattr(row, "state", None),
            "city": getattr(row, "city", None),
            "street": getattr(row, "street", None),
            "postal_code": getattr(row, "postal_code", None),
        },
        "created_at": _ts(getattr(row, "created_at", None)),
    }


def to_admin_dto(row: Any) -> Dict:
    return {
        "id": getattr(row, "id", None),
        "email": getattr(row, "email", None),
        "name": getattr(row, "name", None),
        "picture": getattr(row, "picture", None),
        "approved": bool(getattr(row, "approved", False)),
        "created_at": _ts(getattr(row, "created_at", None)),
    }
