import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from ..models.base import utcnow
from ..models.cart import Cart, CartItem
from ..models.order import Order, OrderItem, OrderStatus, PaymentStatus
from ..models.product import Product
from ..utils.dto import to_order_dto
from ..utils.pagination import normalize_paging
from .errors import (
    CartNotFound,
    EmptyCart,
    InsufficientStock,
    InvalidPaymentStatus,
    InvalidStatus,
    OrderNotFound,
    ProductNotFound,
    StoreError,
    TransactionFailure,
    ValidationError,
)
from .logging import log_event
from .shipping import ShippingTable, order_totals


def generate_order_ref() -> str:
    # e.g. 20250908130500-<uuid4>
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S") + "-" + str(uuid4())


def parse_order_status(value) -> OrderStatus:
    status = OrderStatus.parse(value)
    if status is None:
        raise InvalidStatus(value)
    return status


def parse_payment_status(value) -> PaymentStatus:
    status = PaymentStatus.parse(value)
    if status is None:
        raise InvalidPaymentStatus(value)
    return status


class OrderService:
    """Order placement and order administration backed by DB."""

    def __init__(self, session_factory, *, shipping: Optional[ShippingTable] = None, notifier=None):
        self._session_factory = session_factory
        self._shipping = shipping or ShippingTable()
        self._notifier = notifier
        self.logger = logging.getLogger(__name__)

    def place_order(
        self,
        *,
        user_id: Optional[str] = None,
        cart_id: Optional[str] = None,
        status="pending",
        payment_status="pending",
        payment_method: Optional[str] = None,
        order_ref: Optional[str] = None,
    ) -> Dict:
        """Convert a user's cart into an order in one transaction.

        The cart is addressed by ``cart_id`` or by its owner ``user_id``. Each
        product row is locked before its stock is checked and decremented;
        any failure rolls back every decrement, the order insert and the cart
        clear together. When ``order_ref`` is given and an order already
        carries it, that order is returned untouched, which makes gateway
        callbacks safe to redeliver.

        Returns the order DTO plus ``"replayed": bool``.
        """
        order_status = parse_order_status(status)
        pay_status = parse_payment_status(payment_status)
        if not user_id and not cart_id:
            raise ValidationError("user_id or cart_id is required")

        try:
            payload = self._place(user_id, cart_id, order_status, pay_status, payment_method, order_ref)
        except StoreError:
            raise
        except SQLAlchemyError as exc:
            self.logger.exception("order placement failed cart=%s user=%s", cart_id, user_id)
            raise TransactionFailure("order could not be placed") from exc

        if payload["replayed"]:
            log_event("info", "order.replayed", order_id=payload["id"], order_ref=payload["order_ref"])
            return payload
        log_event(
            "info",
            "order.created",
            order_id=payload["id"],
            order_ref=payload["order_ref"],
            user_id=payload["user_id"],
            items=len(payload["items"]),
            total_amount=payload["total_amount"],
        )
        self._notify_created(payload)
        return payload

    def _place(self, user_id, cart_id, order_status, pay_status, payment_method, order_ref) -> Dict:
        with self._session_factory() as session:
            if order_ref:
                existing = (
                    session.query(Order)
                    .options(selectinload(Order.items))
                    .filter(Order.order_ref == order_ref)
                    .first()
                )
                if existing:
                    return dict(to_order_dto(existing), replayed=True)

            q = session.query(Cart)
            if cart_id:
                q = q.filter(Cart.id == cart_id)
            if user_id:
                q = q.filter(Cart.user_id == user_id)
            cart = q.with_for_update().first()
            if cart is None:
                raise CartNotFound("cart not found")
            items: List[CartItem] = list(cart.items)
            if not items:
                raise EmptyCart("cart is empty")

            # fixed lock order so two checkouts sharing products cannot deadlock
            for item in sorted(items, key=lambda it: it.product_id):
                product = (
                    session.query(Product)
                    .filter(Product.id == item.product_id)
                    .with_for_update()
                    .first()
                )
                if product is None or product.deleted_at is not None:
                    raise ProductNotFound(f"product is no longer available: {item.product_name_en}")
                if product.stock < item.quantity:
                    raise InsufficientStock(product.id, item.product_name_en)
                updated = (
                    session.query(Product)
                    .filter(Product.id == product.id, Product.stock >= item.quantity)
                    .update({Product.stock: Product.stock - item.quantity}, synchronize_session=False)
                )
                if updated != 1:
                    raise InsufficientStock(product.id, item.product_name_en)

            totals = order_totals(((it.sale_price, it.weight, it.quantity) for it in items), self._shipping)
            order = Order(
                id=str(uuid4()),
                user_id=cart.user_id,
                order_ref=order_ref or generate_order_ref(),
                shipping_cost=totals.shipping_cost,
                total_amount=totals.total_amount,
                status=order_status.value,
                payment_status=pay_status.value,
                payment_method=payment_method,
                created_at=utcnow(),
            )
            order.items = [
                OrderItem(
                    id=str(uuid4()),
                    product_id=it.product_id,
                    product_name_en=it.product_name_en,
                    product_name_ar=it.product_name_ar,
                    product_image=it.product_image,
                    sale_price=it.sale_price,
                    regular_price=it.regular_price,
                    weight=it.weight,
                    quantity=it.quantity,
                )
                for it in items
            ]
            session.add(order)
            session.flush()

            cleared = (
                session.query(CartItem)
                .filter(CartItem.cart_id == cart.id)
                .delete(synchronize_session=False)
            )
            if cleared != len(items):
                raise TransactionFailure("cart changed during checkout, please retry")
            session.expire(cart, ["items"])
            return dict(to_order_dto(order), replayed=False)

    def _notify_created(self, payload: Dict) -> None:
        if self._notifier is None:
            return
        event = {k: v for k, v in payload.items() if k != "replayed"}
        try:
            self._notifier.publish("order.created", event)
        except Exception:
            # delivery is best effort; the order is already committed
            self.logger.exception("order.created notification failed order=%s", payload.get("id"))

    # ---- queries --------------------------------------------------------

    def list_orders(self, *, page: int = 1, page_size: int = 20, status: Optional[str] = None) -> Dict:
        p, ps = normalize_paging(page, page_size)
        with self._session_factory() as session:
            q = session.query(Order)
            if status:
                q = q.filter(Order.status == parse_order_status(status).value)
            total = q.count()
            rows = (
                q.options(selectinload(Order.items))
                .order_by(Order.created_at.desc(), Order.id)
                .offset((p - 1) * ps)
                .limit(ps)
                .all()
            )
            return {"items": [to_order_dto(o) for o in rows], "page": p, "page_size": ps, "total": total}

    def list_user_orders(self, user_id: str) -> List[Dict]:
        if not user_id:
            raise ValidationError("user_id is required")
        with self._session_factory() as session:
            rows = (
                session.query(Order)
                .options(selectinload(Order.items))
                .filter(Order.user_id == user_id)
                .order_by(Order.created_at.desc())
                .all()
            )
            return [to_order_dto(o) for o in rows]

    def get_order(self, key: str) -> Dict:
        """Look an order up by id or by order reference."""
        if not key:
            raise ValidationError("order id is required")
        with self._session_factory() as session:
            order = (
                session.query(Order)
                .options(selectinload(Order.items))
                .filter((Order.id == key) | (Order.order_ref == key))
                .first()
            )
            if not order:
                raise OrderNotFound("order not found")
            return to_order_dto(order)

    # ---- admin transitions ----------------------------------------------

    def update_status(self, order_id: str, status) -> Dict:
        new_status = parse_order_status(status)
        return self._set_field(order_id, "status", new_status.value)

    def update_payment_status(self, order_id: str, payment_status) -> Dict:
        new_status = parse_payment_status(payment_status)
        return self._set_field(order_id, "payment_status", new_status.value)

    def _set_field(self, order_id: str, field: str, value: str) -> Dict:
        # applied unconditionally: no transition graph is enforced
        with self._session_factory() as session:
            order = session.query(Order).filter(Order.id == order_id).first()
            if not order:
                raise OrderNotFound("order not found")
            previous = getattr(order, field)
            setattr(order, field, value)
            session.flush()
            log_event("info", f"order.{field}_changed", order_id=order_id, previous=previous, current=value)
            return to_order_dto(order)

    def delete_order(self, order_id: str) -> None:
        with self._session_factory() as session:
            order = session.query(Order).filter(Order.id == order_id).first()
            if not order:
                raise OrderNotFound("order not found")
            session.delete(order)
            session.flush()
            log_event("info", "order.deleted", order_id=order_id)
        return None
