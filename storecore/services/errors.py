"""Domain errors raised by the store services.

Each error carries a machine-readable ``reason``, a human-readable message and
the HTTP status the web layer should answer with.
"""

from typing import Optional


class StoreError(Exception):
    reason = "store_error"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.reason.replace("_", " "))
        self.message = str(self)

    def to_dict(self) -> dict:
        return {"error": self.reason, "message": self.message}


class ValidationError(StoreError):
    reason = "validation_error"


class InvalidStatus(ValidationError):
    reason = "invalid_status"

    def __init__(self, value=None):
        super().__init__(f"invalid order status: {value!r}")


class InvalidPaymentStatus(ValidationError):
    reason = "invalid_payment_status"

    def __init__(self, value=None):
        super().__init__(f"invalid payment status: {value!r}")


class NotFound(StoreError):
    reason = "not_found"
    status_code = 404


class CartNotFound(NotFound):
    reason = "cart_not_found"


class CartItemNotFound(NotFound):
    reason = "cart_item_not_found"


class ProductNotFound(NotFound):
    reason = "product_not_found"


class CategoryNotFound(NotFound):
    reason = "category_not_found"


class OrderNotFound(NotFound):
    reason = "order_not_found"


class UserNotFound(NotFound):
    reason = "user_not_found"


class EmptyCart(StoreError):
    reason = "empty_cart"


class Conflict(StoreError):
    reason = "conflict"
    status_code = 409


class InsufficientStock(Conflict):
    reason = "insufficient_stock"

    def __init__(self, product_id: str, product_name: Optional[str] = None):
        self.product_id = product_id
        self.product_name = product_name
        super().__init__(f"insufficient stock for product: {product_name or product_id}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["product_id"] = self.product_id
        return data


class DuplicateCategory(Conflict):
    reason = "duplicate_category"


class TransactionFailure(StoreError):
    reason = "transaction_failure"
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "the operation could not be completed")


class AuthError(StoreError):
    reason = "unauthorized"
    status_code = 401


class IdentityError(AuthError):
    reason = "invalid_identity_token"


class InvalidToken(AuthError):
    reason = "invalid_token"


class Forbidden(StoreError):
    reason = "forbidden"
    status_code = 403


class AdminPendingApproval(Forbidden):
    reason = "admin_pending_approval"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "pending approval by super admin")


class GatewayError(StoreError):
    reason = "payment_gateway_error"
    status_code = 502


class InvalidSignature(Forbidden):
    reason = "invalid_signature"


class PaymentOrderFailure(TransactionFailure):
    """A confirmed payment whose order could not be placed; the gateway should retry."""

    reason = "payment_order_failed"

    def __init__(self, gateway: str, cause: StoreError):
        self.gateway = gateway
        self.cause_reason = cause.reason
        super().__init__(f"{gateway} payment received but order placement failed: {cause.message}")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["cause"] = self.cause_reason
        return data
