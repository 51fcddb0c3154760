"""
Tap Payments adapter
Based on https://developers.tap.company/reference/create-a-charge
Webhooks are signed with HMAC-SHA256 over the raw body (X-Tap-Signature).
"""
import hashlib
import hmac
import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import requests

from ..config import AppConfig
from ..utils.validators import parse_decimal, require_text
from .errors import GatewayError, InvalidSignature, PaymentOrderFailure, StoreError, ValidationError
from .logging import log_event


class TapGateway:
    API_BASE_URL = "https://api.tap.company/v2"

    def __init__(self, config: AppConfig, order_service=None, http=None) -> None:
        self.secret_key = config.tap_secret_key
        self.webhook_secret = config.tap_webhook_secret
        self.post_url = config.tap_post_url
        self.redirect_url = config.tap_redirect_url
        self.currency = config.currency
        self.timeout = config.payment_timeout_seconds
        self._orders = order_service
        self._http = http or requests
        self.logger = logging.getLogger(__name__)

    def _headers(self) -> Dict[str, str]:
        if not self.secret_key:
            raise GatewayError("Tap secret key is not configured")
        return {"Authorization": f"Bearer {self.secret_key}", "Content-Type": "application/json"}

    def create_charge(
        self,
        amount,
        customer_email: str,
        user_id: str,
        cart_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a charge and return ``{"redirect_url", "charge_id"}``."""
        value: Decimal = parse_decimal(amount, "amount")
        if value <= 0:
            raise ValidationError("amount must be > 0")
        email = require_text(customer_email, "customer_email")
        metadata = {"user_id": user_id}
        if cart_id:
            metadata["cart_id"] = cart_id
        payload = {
            "amount": float(value),
            "currency": self.currency,
            "threeDSecure": True,
            "save_card": False,
            "description": "Store order payment",
            "customer": {"first_name": "Tap", "last_name": "User", "email": email},
            "source": {"id": "src_all"},
            "post": {"url": self.post_url},
            "redirect": {"url": self.redirect_url},
            "metadata": metadata,
        }
        result = self._request("post", f"{self.API_BASE_URL}/charges", json=payload)
        url = (result.get("transaction") or {}).get("url")
        if not url:
            self.logger.warning("Tap charge without transaction url: %s", result)
            raise GatewayError("transaction url not found in Tap response")
        log_event("info", "payment.tap.charge_created", charge_id=result.get("id"), user_id=user_id, cart_id=cart_id)
        return {"redirect_url": url, "charge_id": result.get("id")}

    def charge_status(self, charge_id: str) -> Dict[str, Any]:
        charge_id = require_text(charge_id, "charge_id")
        result = self._request("get", f"{self.API_BASE_URL}/charges/{charge_id}")
        return {"status": result.get("status"), "data": result}

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = getattr(self._http, method)(url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            self.logger.error("Tap request failed: %s", exc)
            raise GatewayError("failed to connect to Tap") from exc
        if resp.status_code >= 400:
            self.logger.error("Tap API error %s: %s", resp.status_code, resp.text[:500])
            raise GatewayError(f"Tap API error ({resp.status_code})")
        try:
            return resp.json()
        except ValueError as exc:
            raise GatewayError("failed to parse Tap response") from exc

    def verify_signature(self, body: bytes, signature: Optional[str]) -> None:
        if not signature:
            raise InvalidSignature("missing X-Tap-Signature header")
        if not self.webhook_secret:
            raise GatewayError("Tap webhook secret is not configured")
        expected = hmac.new(self.webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected.encode(), signature.strip().lower().encode("utf-8")):
            raise InvalidSignature("invalid Tap signature")

    def handle_webhook(self, body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify and apply a Tap event; ``charge.succeeded`` places the order."""
        self.verify_signature(body, signature)
        try:
            event = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise ValidationError("invalid JSON in webhook body") from exc
        event_type = event.get("type") if isinstance(event, dict) else None
        data = event.get("data") if isinstance(event, dict) else None
        if not event_type:
            raise ValidationError("missing event type")
        if not isinstance(data, dict):
            raise ValidationError("missing data object")

        charge_id = data.get("id")
        if event_type == "charge.succeeded":
            cart_id = (data.get("metadata") or {}).get("cart_id")
            if not cart_id:
                log_event("warning", "payment.tap.succeeded_without_cart", charge_id=charge_id)
                return {"handled": False, "event": event_type}
            try:
                order = self._orders.place_order(
                    cart_id=cart_id,
                    status="confirmed",
                    payment_status="paid",
                    payment_method="card",
                    order_ref=charge_id,
                )
            except StoreError as exc:
                log_event(
                    "error", "payment.tap.order_failed", charge_id=charge_id, cart_id=cart_id, reason=exc.reason
                )
                raise PaymentOrderFailure("tap", exc) from exc
            log_event("info", "payment.tap.succeeded", charge_id=charge_id, order_id=order["id"])
            return {"handled": True, "event": event_type, "order_ref": order["order_ref"]}
        if event_type == "charge.failed":
            log_event("warning", "payment.tap.failed", charge_id=charge_id)
            return {"handled": True, "event": event_type}
        log_event("info", "payment.tap.ignored", event_type=event_type)
        return {"handled": False, "event": event_type}
