"""Storefront Flask 應用：目錄、購物車、訂單與金流回呼。"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storecore.config import AppConfig, load_env
from storecore.db.session import build_engine, build_session_factory, init_db
from storecore.services.auth_service import AuthService
from storecore.services.cart_merge_service import CartMergeService
from storecore.services.cart_service import CartService
from storecore.services.catalog_service import CatalogService
from storecore.services.errors import StoreError, TransactionFailure
from storecore.services.identity import GoogleIdentityVerifier, TokenIssuer
from storecore.services.logging import set_event_level
from storecore.services.notifications import OrderNotificationHub
from storecore.services.order_service import OrderService
from storecore.services.shipping import ShippingTable
from storecore.services.tap_service import TapGateway
from storecore.services.telr_service import TelrGateway

from .routes import admin, auth, cart, catalog, orders, payments, users


COMPONENTS_KEY = "store_components"


def build_components(config: AppConfig, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Construct every service once; ``overrides`` replaces any entry by name."""
    overrides = dict(overrides or {})
    engine = overrides.pop("engine", None) or build_engine(config.database_url)
    init_db(engine)
    session_factory = build_session_factory(engine)

    notifier = overrides.get("notifier") or OrderNotificationHub()
    shipping = ShippingTable(config.shipping_block_weight, config.shipping_block_cost)
    order_service = overrides.get("order_service") or OrderService(
        session_factory, shipping=shipping, notifier=notifier
    )
    merger = overrides.get("cart_merge") or CartMergeService(session_factory)
    verifier = overrides.get("identity_verifier") or GoogleIdentityVerifier(
        config.google_client_id, timeout=config.payment_timeout_seconds
    )
    issuer = overrides.get("token_issuer") or TokenIssuer(config.jwt_secret, config.jwt_ttl_hours)
    http = overrides.get("http")

    components = {
        "engine": engine,
        "session_factory": session_factory,
        "notifier": notifier,
        "catalog": CatalogService(session_factory),
        "cart": CartService(session_factory),
        "cart_merge": merger,
        "order_service": order_service,
        "identity_verifier": verifier,
        "token_issuer": issuer,
        "auth": AuthService(
            session_factory,
            verifier,
            issuer,
            merger,
            super_admin_email=config.super_admin_email,
            guest_ttl_hours=config.guest_ttl_hours,
        ),
        "tap": TapGateway(config, order_service, http=http),
        "telr": TelrGateway(config, order_service, http=http),
    }
    components.update(overrides)
    return components


def _register_error_handlers(app: Flask) -> None:
    logger = logging.getLogger(__name__)

    @app.errorhandler(StoreError)
    def handle_store_error(exc: StoreError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.reason, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(exc: SQLAlchemyError):
        logger.exception("storage error")
        err = TransactionFailure()
        return jsonify(err.to_dict()), err.status_code


def create_app(config: Optional[AppConfig] = None, components: Optional[Dict[str, Any]] = None) -> Flask:
    config = config or load_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))
    set_event_level(config.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["STORE_CONFIG"] = config
    app.extensions[COMPONENTS_KEY] = build_components(config, components)

    for module in (auth, users, catalog, cart, admin, orders, payments):
        for bp in module.blueprints:
            app.register_blueprint(bp)
    _register_error_handlers(app)

    @app.get("/healthz")
    def healthz():
        engine = app.extensions[COMPONENTS_KEY]["engine"]
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return jsonify({"status": "ok"})

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=8080, debug=False, threaded=True)


if __name__ == "__main__":
    main()
