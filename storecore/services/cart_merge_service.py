"""Fold a guest cart into a user's cart when the guest signs in."""

import enum
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4
from sqlalchemy.exc import SQLAlchemyError
from ..models.base import utcnow
from ..models.cart import CartItem
from ..models.guest_cart import GuestCart
from .cart_service import get_or_create_user_cart, line_snapshot
from .logging import log_event


class MergeOutcome(str, enum.Enum):
    NO_GUEST_CART = "no_guest_cart"
    MERGED = "merged"
    GUEST_CART_EMPTY = "guest_cart_empty"
    MERGE_FAILED = "merge_failed"


@dataclass
class MergeResult:
    outcome: MergeOutcome
    merged_items: int = 0
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {"outcome": self.outcome.value, "merged_items": self.merged_items, "reason": self.reason}


class CartMergeService:
    """Merge routine run at login.

    Quantities for products present in both carts are added, never
    overwritten. The guest cart is deleted in the same transaction, so a second
    call for the same guest reports ``NO_GUEST_CART``.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self.logger = logging.getLogger(__name__)

    def merge_guest_cart(self, guest_id: str, user_id: str) -> MergeResult:
        if not guest_id or not user_id:
            return MergeResult(MergeOutcome.NO_GUEST_CART)
        try:
            result = self._merge(guest_id, user_id)
        except SQLAlchemyError as exc:
            self.logger.exception("guest cart merge failed guest=%s user=%s", guest_id, user_id)
            log_event("error", "cart.merge_failed", guest_id=guest_id, user_id=user_id, error=type(exc).__name__)
            return MergeResult(MergeOutcome.MERGE_FAILED, reason="storage error while merging carts")
        if result.outcome is not MergeOutcome.NO_GUEST_CART:
            log_event(
                "info",
                "cart.merged",
                guest_id=guest_id,
                user_id=user_id,
                outcome=result.outcome.value,
                merged_items=result.merged_items,
            )
        return result

    def _merge(self, guest_id: str, user_id: str) -> MergeResult:
        with self._session_factory() as session:
            guest_cart = session.query(GuestCart).filter(GuestCart.guest_id == guest_id).first()
            if guest_cart is None:
                return MergeResult(MergeOutcome.NO_GUEST_CART)

            guest_items = list(guest_cart.items)
            if not guest_items:
                session.delete(guest_cart)
                session.flush()
                return MergeResult(MergeOutcome.GUEST_CART_EMPTY)

            user_cart = get_or_create_user_cart(session, user_id)
            existing = {
                it.product_id: it
                for it in session.query(CartItem).filter(CartItem.cart_id == user_cart.id).all()
            }
            now = utcnow()
            for g in guest_items:
                current = existing.get(g.product_id)
                if current is not None:
                    current.quantity += g.quantity
                    current.added_at = now
                    continue
                item = CartItem(
                    id=str(uuid4()),
                    cart_id=user_cart.id,
                    quantity=g.quantity,
                    added_at=now,
                    **line_snapshot(g),
                )
                session.add(item)
                existing[g.product_id] = item

            # cascade removes the guest lines before the cart row
            session.delete(guest_cart)
            session.flush()
            return MergeResult(MergeOutcome.MERGED, merged_items=len(guest_items))
