import hashlib
import hmac
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

import requests

from ..config import AppConfig
from ..utils.validators import parse_decimal
from .errors import GatewayError, InvalidSignature, PaymentOrderFailure, StoreError, ValidationError
from .logging import log_event


# order matters: tran_check is SHA1 over "secret:" + these values joined by ":"
CALLBACK_SIGNATURE_FIELDS = (
    "tran_store",
    "tran_type",
    "tran_class",
    "tran_test",
    "tran_ref",
    "tran_prevref",
    "tran_firstref",
    "tran_order",
    "tran_currency",
    "tran_amount",
    "tran_cartid",
    "tran_desc",
    "tran_status",
    "tran_authcode",
    "tran_authmessage",
)

REQUIRED_PAYMENT_FIELDS = ("cartid", "amount", "currency", "description", "name", "email", "phone")


def callback_signature(secret: str, form: Mapping[str, Any]) -> str:
    parts = [secret] + [str(form.get(f) or "").strip() for f in CALLBACK_SIGNATURE_FIELDS]
    return hashlib.sha1(":".join(parts).encode("utf-8")).hexdigest()


class TelrGateway:
    """Telr hosted payment page: order creation and the authorisation callback."""

    def __init__(self, config: AppConfig, order_service=None, http=None) -> None:
        self.store_id = config.telr_store_id
        self.auth_key = config.telr_auth_key
        self.api_url = config.telr_api_url
        self.test_mode = config.telr_test_mode
        self.webhook_secret = config.telr_webhook_secret
        self.return_urls = {
            "authorised": config.telr_success_url,
            "declined": config.telr_failure_url,
            "cancelled": config.telr_cancel_url,
        }
        self.timeout = config.payment_timeout_seconds
        self._orders = order_service
        self._http = http or requests
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def normalize_request(data: Mapping[str, Any]) -> Dict[str, str]:
        """Accept the documented keys plus the common alternates clients send."""

        def pick(*keys: str) -> str:
            for key in keys:
                value = data.get(key)
                if value not in (None, ""):
                    return str(value).strip()
            return ""

        fields = {
            "cartid": pick("cartid", "cart_id", "cartId"),
            "amount": pick("amount"),
            "currency": pick("currency"),
            "description": pick("description"),
            "name": pick("name"),
            "email": pick("email"),
            "phone": pick("phone"),
            "line1": pick("address_line1", "addressLine1", "line1"),
            "line2": pick("address_line2", "addressLine2", "line2"),
            "city": pick("city"),
            "region": pick("region"),
            "country": pick("country"),
            "postcode": pick("postcode", "postal_code"),
        }
        missing = [k for k in REQUIRED_PAYMENT_FIELDS if not fields[k]]
        if missing:
            raise ValidationError(f"missing fields: {', '.join(missing)}")
        if "@" not in fields["email"]:
            raise ValidationError("invalid email")
        parse_decimal(fields["amount"], "amount")
        return fields

    def create_payment(self, data: Mapping[str, Any]) -> Tuple[str, str]:
        """Create a Telr order; returns (payment_url, telr order ref)."""
        if not (self.store_id and self.auth_key and self.api_url):
            raise GatewayError("Telr configuration missing")
        f = self.normalize_request(data)
        payload = {
            "method": "create",
            "store": self.store_id,
            "authkey": self.auth_key,
            "order": {
                "cartid": f["cartid"],
                "test": 1 if self.test_mode else 0,
                "amount": f["amount"],
                "currency": f["currency"],
                "description": f["description"],
            },
            "customer": {
                "name": f["name"],
                "email": f["email"],
                "phone": f["phone"],
                "address": {
                    "line1": f["line1"],
                    "line2": f["line2"],
                    "city": f["city"],
                    "region": f["region"],
                    "country": f["country"],
                    "postcode": f["postcode"],
                },
            },
            "return": self.return_urls,
        }
        try:
            resp = self._http.post(
                self.api_url,
                json=payload,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            self.logger.error("Telr request failed: %s", exc)
            raise GatewayError("failed to reach Telr") from exc
        if resp.status_code != 200:
            self.logger.error("Telr API error %s: %s", resp.status_code, resp.text[:500])
            raise GatewayError(f"Telr API error ({resp.status_code})")
        try:
            body = resp.json()
        except ValueError as exc:
            raise GatewayError("failed to parse Telr response") from exc
        if body.get("error"):
            raise GatewayError(f"Telr error: {(body['error'] or {}).get('message', 'unknown')}")
        order = body.get("order") or {}
        if not order.get("url"):
            raise GatewayError("Telr returned empty payment URL")
        log_event("info", "payment.telr.created", cart_id=f["cartid"], telr_ref=order.get("ref"))
        return order["url"], order.get("ref")

    def verify_callback(self, form: Mapping[str, Any]) -> None:
        if self.test_mode:
            self.logger.info("sandbox/dev mode: skipping Telr callback signature check")
            return
        if not self.webhook_secret:
            raise GatewayError("Telr webhook secret is not configured")
        provided = str(form.get("tran_check") or "").strip()
        if not provided:
            raise InvalidSignature("missing tran_check signature")
        calculated = callback_signature(self.webhook_secret, form)
        if not hmac.compare_digest(calculated.encode(), provided.lower().encode("utf-8")):
            raise InvalidSignature("invalid webhook signature")

    def handle_callback(self, form: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        """Verify the callback; an authorised transaction ("A") places the order."""
        self.verify_callback(form)
        status = str(form.get("tran_status") or "")
        cart_id = str(form.get("tran_cartid") or "").strip()
        order_ref = str(form.get("tran_order") or "").strip() or None
        log_event("info", "payment.telr.callback", status=status, cart_id=cart_id, order_ref=order_ref)
        if status != "A":
            return {"message": "payment not authorized", "order_ref": None}
        if not cart_id:
            raise ValidationError("tran_cartid is required")
        try:
            order = self._orders.place_order(
                cart_id=cart_id,
                status="confirmed",
                payment_status="paid",
                payment_method="card",
                order_ref=order_ref,
            )
        except StoreError as exc:
            # answer 5xx so Telr redelivers the callback
            log_event("error", "payment.telr.order_failed", cart_id=cart_id, order_ref=order_ref, reason=exc.reason)
            raise PaymentOrderFailure("telr", exc) from exc
        return {"message": "order created successfully", "order_ref": order["order_ref"]}
