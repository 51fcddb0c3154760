from decimal import Decimal
from typing import Dict, Tuple
from uuid import uuid4
from ..models.base import utcnow
from ..models.cart import Cart, CartItem
from ..models.guest_cart import GuestCart, GuestCartItem
from ..models.product import Product
from ..utils.dto import to_cart_item_dto
from ..utils.validators import ensure_quantity, require_text
from .errors import CartItemNotFound, CartNotFound, ProductNotFound


def product_snapshot(product: Product) -> Dict:
    """Cart line columns copied from the live product at add time."""
    return {
        "product_id": product.id,
        "product_name_en": product.name_en,
        "product_name_ar": product.name_ar,
        "product_image": product.image,
        "product_stock": product.stock,
        "sale_price": product.sale_price,
        "regular_price": product.regular_price,
        "weight": product.weight,
    }


def line_snapshot(item) -> Dict:
    """Snapshot columns of an existing cart line, for copying between carts."""
    return {
        "product_id": item.product_id,
        "product_name_en": item.product_name_en,
        "product_name_ar": item.product_name_ar,
        "product_image": item.product_image,
        "product_stock": item.product_stock,
        "sale_price": item.sale_price,
        "regular_price": item.regular_price,
        "weight": item.weight,
    }


def get_or_create_user_cart(session, user_id: str) -> Cart:
    cart = session.query(Cart).filter(Cart.user_id == user_id).first()
    if cart is None:
        cart = Cart(id=str(uuid4()), user_id=user_id, created_at=utcnow())
        session.add(cart)
        session.flush()
    return cart


class CartService:
    """User and guest cart operations backed by DB.

    Both cart kinds share one code path; ``guest=True`` switches the owner key
    from ``user_id`` to ``guest_id``.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @staticmethod
    def _models(guest: bool) -> Tuple[type, type, object]:
        if guest:
            return GuestCart, GuestCartItem, GuestCart.guest_id
        return Cart, CartItem, Cart.user_id

    def _find_cart(self, session, owner_id: str, guest: bool):
        cart_model, _, owner_col = self._models(guest)
        return session.query(cart_model).filter(owner_col == owner_id).first()

    def get_cart(self, owner_id: str, *, guest: bool = False) -> Dict:
        owner_id = require_text(owner_id, "guest_id" if guest else "user_id")
        with self._session_factory() as session:
            cart = self._find_cart(session, owner_id, guest)
            if cart is None:
                return {"cart_id": None, "items": [], "subtotal": 0.0, "item_count": 0}
            rows = sorted(cart.items, key=lambda it: it.added_at, reverse=True)
            subtotal = sum((Decimal(str(it.sale_price or 0)) * it.quantity for it in rows), Decimal("0"))
            return {
                "cart_id": cart.id,
                "items": [to_cart_item_dto(it) for it in rows],
                "subtotal": float(subtotal),
                "item_count": sum(it.quantity for it in rows),
            }

    def set_item(self, owner_id: str, product_id: str, quantity, *, guest: bool = False) -> Tuple[Dict, bool]:
        """Add a product line or set the quantity of the existing one.

        Returns (item DTO, created flag). The snapshot is taken only when the
        line is first created.
        """
        owner_id = require_text(owner_id, "guest_id" if guest else "user_id")
        product_id = require_text(product_id, "product_id")
        qnty = ensure_quantity(quantity)
        cart_model, item_model, _ = self._models(guest)
        with self._session_factory() as session:
            product = (
                session.query(Product)
                .filter(Product.id == product_id, Product.deleted_at.is_(None))
                .first()
            )
            if not product:
                raise ProductNotFound("product does not exist")

            cart = self._find_cart(session, owner_id, guest)
            if cart is None:
                if guest:
                    cart = GuestCart(id=str(uuid4()), guest_id=owner_id, created_at=utcnow())
                    session.add(cart)
                    session.flush()
                else:
                    cart = get_or_create_user_cart(session, owner_id)

            item = (
                session.query(item_model)
                .filter(item_model.cart_id == cart.id, item_model.product_id == product_id)
                .first()
            )
            created = item is None
            if created:
                item = item_model(
                    id=str(uuid4()),
                    cart_id=cart.id,
                    quantity=qnty,
                    added_at=utcnow(),
                    **product_snapshot(product),
                )
                session.add(item)
            else:
                item.quantity = qnty
                item.added_at = utcnow()
            session.flush()
            return to_cart_item_dto(item), created

    def remove_item(self, owner_id: str, product_id: str, *, guest: bool = False) -> None:
        _, item_model, _ = self._models(guest)
        with self._session_factory() as session:
            cart = self._find_cart(session, owner_id, guest)
            if cart is None:
                raise CartNotFound("cart not found")
            deleted = (
                session.query(item_model)
                .filter(item_model.cart_id == cart.id, item_model.product_id == product_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise CartItemNotFound("cart item not found")
        return None

    def clear_cart(self, owner_id: str, *, guest: bool = False) -> int:
        _, item_model, _ = self._models(guest)
        with self._session_factory() as session:
            cart = self._find_cart(session, owner_id, guest)
            if cart is None:
                raise CartNotFound("cart not found")
            return session.query(item_model).filter(item_model.cart_id == cart.id).delete(synchronize_session=False)
