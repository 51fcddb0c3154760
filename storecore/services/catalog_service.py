from typing import Dict, Iterable, List, Optional
from uuid import uuid4
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from ..models.base import utcnow
from ..models.category import Category
from ..models.product import Product, product_category
from ..utils.dto import to_category_dto, to_product_dto
from ..utils.pagination import normalize_paging
from ..utils.validators import ensure_positive_int, parse_decimal, require_text
from .errors import CategoryNotFound, DuplicateCategory, ProductNotFound, ValidationError
from .logging import log_event


SORTABLE_FIELDS = {
    "created_at": Product.created_at,
    "sale_price": Product.sale_price,
    "regular_price": Product.regular_price,
    "name_en": Product.name_en,
    "stock": Product.stock,
}

_TEXT_FIELDS = ("name_en", "name_ar", "description_en", "description_ar", "image")
_MONEY_FIELDS = ("sale_price", "regular_price", "base_cost")


class CatalogService:
    """Products, categories and their many-to-many association.

    Responsibilities:
    - List/search products with price, category and text filters
    - Product and category CRUD (products are soft deleted)
    - Clear join-table rows before a product or category goes away
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    # ---- products -------------------------------------------------------

    def list_products(
        self,
        *,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        min_price=None,
        max_price=None,
        sort_by: str = "created_at",
        order: str = "desc",
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        """Return dict: { items: [ProductDTO], page, page_size, total }"""
        p, ps = normalize_paging(page, page_size)
        low = parse_decimal(min_price, "min_price", required=False)
        high = parse_decimal(max_price, "max_price", required=False)
        sort_column = SORTABLE_FIELDS.get(sort_by or "created_at", Product.created_at)
        descending = str(order or "desc").lower() != "asc"

        with self._session_factory() as session:
            q = session.query(Product).filter(Product.deleted_at.is_(None))
            if search:
                like = f"%{search.strip()}%"
                q = q.filter(
                    or_(
                        Product.name_en.ilike(like),
                        Product.name_ar.ilike(like),
                        Product.description_en.ilike(like),
                        Product.description_ar.ilike(like),
                    )
                )
            if low is not None:
                q = q.filter(Product.sale_price >= low)
            if high is not None:
                q = q.filter(Product.sale_price <= high)
            if category_id:
                q = q.join(product_category, product_category.c.product_id == Product.id).filter(
                    product_category.c.category_id == category_id
                )
            total = q.count()
            ordering = sort_column.desc() if descending else sort_column.asc()
            rows = (
                q.options(selectinload(Product.categories))
                .order_by(ordering, Product.id)
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            items = [to_product_dto(r) for r in rows]
            return {"items": items, "page": p, "page_size": ps, "total": total}

    def get_product(self, product_id: str) -> Dict:
        with self._session_factory() as session:
            return to_product_dto(self._load_product(session, product_id))

    def create_product(self, data: Dict) -> Dict:
        name_en = require_text(data.get("name_en"), "name_en")
        sale_price = parse_decimal(data.get("sale_price"), "sale_price")
        weight = parse_decimal(data.get("weight"), "weight")
        with self._session_factory() as session:
            product = Product(
                id=str(uuid4()),
                name_en=name_en,
                sale_price=sale_price,
                weight=weight,
                stock=ensure_positive_int(data.get("stock", 0) or 0, "stock"),
                created_at=utcnow(),
            )
            self._apply_optional_fields(product, data)
            product.categories = self._resolve_categories(session, data.get("category_ids") or [])
            session.add(product)
            session.flush()
            log_event("info", "product.created", product_id=product.id)
            return to_product_dto(product)

    def update_product(self, product_id: str, data: Dict) -> Dict:
        """Partial update; ``stock`` here is the administrative overwrite."""
        with self._session_factory() as session:
            product = self._load_product(session, product_id)
            if "name_en" in data:
                product.name_en = require_text(data.get("name_en"), "name_en")
            if "sale_price" in data:
                product.sale_price = parse_decimal(data.get("sale_price"), "sale_price")
            if "weight" in data:
                product.weight = parse_decimal(data.get("weight"), "weight")
            if "stock" in data:
                product.stock = ensure_positive_int(data.get("stock"), "stock")
            self._apply_optional_fields(product, data)
            if "category_ids" in data:
                product.categories = self._resolve_categories(session, data.get("category_ids") or [])
            session.flush()
            log_event("info", "product.updated", product_id=product.id, fields=sorted(data.keys()))
            return to_product_dto(product)

    def delete_product(self, product_id: str) -> None:
        with self._session_factory() as session:
            product = self._load_product(session, product_id)
            product.categories.clear()
            product.deleted_at = utcnow()
            session.flush()
            log_event("info", "product.deleted", product_id=product_id)
        return None

    # ---- categories -----------------------------------------------------

    def list_categories(self, *, with_products: bool = False) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Category)
            if with_products:
                q = q.options(selectinload(Category.products))
            return [to_category_dto(c, with_products=with_products) for c in q.order_by(Category.name_en).all()]

    def get_category(self, category_id: str) -> Dict:
        with self._session_factory() as session:
            category = (
                session.query(Category)
                .options(selectinload(Category.products))
                .filter(Category.id == category_id)
                .first()
            )
            if not category:
                raise CategoryNotFound("category not found")
            return to_category_dto(category, with_products=True)

    def create_category(self, data: Dict) -> Dict:
        name_en = require_text(data.get("name_en"), "name_en")
        name_ar = require_text(data.get("name_ar"), "name_ar")
        with self._session_factory() as session:
            if session.query(Category.id).filter(Category.name_en == name_en).first():
                raise DuplicateCategory(f"category {name_en!r} already exists")
            category = Category(id=str(uuid4()), name_en=name_en, name_ar=name_ar, image=data.get("image"))
            session.add(category)
            self._flush_category(session, name_en)
            log_event("info", "category.created", category_id=category.id)
            return to_category_dto(category)

    def update_category(self, category_id: str, data: Dict) -> Dict:
        with self._session_factory() as session:
            category = session.query(Category).filter(Category.id == category_id).first()
            if not category:
                raise CategoryNotFound("category not found")
            if data.get("name_en"):
                category.name_en = require_text(data.get("name_en"), "name_en")
            if data.get("name_ar"):
                category.name_ar = require_text(data.get("name_ar"), "name_ar")
            if "image" in data:
                category.image = data.get("image") or None
            self._flush_category(session, category.name_en)
            return to_category_dto(category)

    def delete_category(self, category_id: str) -> None:
        with self._session_factory() as session:
            category = session.query(Category).filter(Category.id == category_id).first()
            if not category:
                raise CategoryNotFound("category not found")
            category.products.clear()
            session.flush()
            session.delete(category)
            session.flush()
            log_event("info", "category.deleted", category_id=category_id)
        return None

    # ---- helpers --------------------------------------------------------

    @staticmethod
    def _load_product(session, product_id: str) -> Product:
        product = (
            session.query(Product)
            .options(selectinload(Product.categories))
            .filter(Product.id == product_id, Product.deleted_at.is_(None))
            .first()
        )
        if not product:
            raise ProductNotFound("product not found")
        return product

    @staticmethod
    def _apply_optional_fields(product: Product, data: Dict) -> None:
        for field in _TEXT_FIELDS:
            if field in data and field != "name_en":
                value = data.get(field)
                setattr(product, field, str(value).strip() if value else None)
        for field in _MONEY_FIELDS:
            if field in data and field != "sale_price":
                setattr(product, field, parse_decimal(data.get(field), field, required=False))

    @staticmethod
    def _resolve_categories(session, category_ids: Iterable[str]) -> List[Category]:
        if isinstance(category_ids, str):
            category_ids = [c for c in category_ids.split(",")]
        wanted = {str(c).strip() for c in category_ids if str(c).strip()}
        if not wanted:
            return []
        found = session.query(Category).filter(Category.id.in_(wanted)).all()
        missing = wanted - {c.id for c in found}
        if missing:
            raise ValidationError(f"unknown category ids: {', '.join(sorted(missing))}")
        return found

    @staticmethod
    def _flush_category(session, name_en: str) -> None:
        try:
            session.flush()
        except IntegrityError as exc:
            raise DuplicateCategory(f"category {name_en!r} already exists") from exc
