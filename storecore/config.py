import os
from dataclasses import dataclass
from pathlib import Path
import json
from typing import Optional


@dataclass
class AppConfig:
    database_url: str
    secret_key: str
    jwt_secret: str
    jwt_ttl_hours: int
    guest_ttl_hours: int
    log_level: str
    currency: str
    google_client_id: str
    super_admin_email: str
    shipping_block_weight: int
    shipping_block_cost: int
    payment_timeout_seconds: int
    tap_secret_key: str
    tap_webhook_secret: str
    tap_post_url: str
    tap_redirect_url: str
    telr_store_id: int
    telr_auth_key: str
    telr_api_url: str
    telr_mode: str
    telr_webhook_secret: str
    telr_success_url: str
    telr_failure_url: str
    telr_cancel_url: str

    @property
    def telr_test_mode(self) -> bool:
        return self.telr_mode in {"sandbox", "dev"}


# Keys that may be read from data/settings.json; secrets come from the environment only
SETTINGS_FILE_KEYS = {
    "CURRENCY",
    "LOG_LEVEL",
    "SHIPPING_BLOCK_WEIGHT",
    "SHIPPING_BLOCK_COST",
    "TAP_POST_URL",
    "TAP_REDIRECT_URL",
    "TELR_MODE",
    "TELR_SUCCESS_URL",
    "TELR_FAILURE_URL",
    "TELR_CANCEL_URL",
}


def validate_currency(value: Optional[str]) -> str:
    v = (value or "SAR").strip().upper()
    if len(v) != 3:
        raise ValueError("Invalid currency code: expected ISO4217 length 3")
    return v


def _positive_int(value, field: str, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be an integer")
    if v <= 0:
        raise ValueError(f"{field} must be > 0")
    return v


def _load_settings_file(path: Optional[Path] = None) -> dict:
    path = path or Path.cwd() / "data" / "settings.json"
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return {k: v for k, v in data.items() if k in SETTINGS_FILE_KEYS}
    except (OSError, ValueError):
        pass
    return {}


def load_env(settings_path: Optional[Path] = None, environ: Optional[dict] = None) -> AppConfig:
    # 非機密設定以 data/settings.json 為主，環境變數為後備
    s = _load_settings_file(settings_path)
    env = os.environ if environ is None else environ

    def get(key: str, default: str = "") -> str:
        value = s.get(key)
        if value in (None, ""):
            value = env.get(key, default)
        return str(value).strip() if value is not None else default

    secret_key = get("SECRET_KEY", "dev_secret")
    return AppConfig(
        database_url=get("DATABASE_URL", "sqlite:///data/app.db"),
        secret_key=secret_key,
        jwt_secret=get("JWT_SECRET") or secret_key,
        jwt_ttl_hours=_positive_int(get("JWT_TTL_HOURS"), "JWT_TTL_HOURS", 72),
        guest_ttl_hours=_positive_int(get("GUEST_TTL_HOURS"), "GUEST_TTL_HOURS", 24),
        log_level=get("LOG_LEVEL", "INFO").upper(),
        currency=validate_currency(get("CURRENCY")),
        google_client_id=get("GOOGLE_CLIENT_ID"),
        super_admin_email=get("SUPER_ADMIN_EMAIL").lower(),
        shipping_block_weight=_positive_int(get("SHIPPING_BLOCK_WEIGHT"), "SHIPPING_BLOCK_WEIGHT", 30),
        shipping_block_cost=_positive_int(get("SHIPPING_BLOCK_COST"), "SHIPPING_BLOCK_COST", 30),
        payment_timeout_seconds=_positive_int(get("PAYMENT_TIMEOUT_SECONDS"), "PAYMENT_TIMEOUT_SECONDS", 15),
        tap_secret_key=get("TAP_SECRET_KEY"),
        tap_webhook_secret=get("TAP_WEBHOOK_SECRET"),
        tap_post_url=get("TAP_POST_URL", "http://localhost:8080/api/payment/webhook"),
        tap_redirect_url=get("TAP_REDIRECT_URL"),
        telr_store_id=_positive_int(get("TELR_STORE_ID"), "TELR_STORE_ID", 0),
        telr_auth_key=get("TELR_AUTH_KEY"),
        telr_api_url=get("TELR_API_URL", "https://secure.telr.com/gateway/order.json"),
        telr_mode=get("TELR_MODE", "live").lower(),
        telr_webhook_secret=get("TELR_WEBHOOK_SECRET"),
        telr_success_url=get("TELR_SUCCESS_URL"),
        telr_failure_url=get("TELR_FAILURE_URL"),
        telr_cancel_url=get("TELR_CANCEL_URL"),
    )
