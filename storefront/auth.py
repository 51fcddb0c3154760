"""Bearer token guard shared by the blueprints."""

from __future__ import annotations

from functools import wraps
from typing import Any, Dict, Optional

from flask import current_app, g, request

from storecore.services.errors import Forbidden, InvalidToken


ADMIN_ROLES = ("admin", "superadmin")


def components() -> Dict[str, Any]:
    return current_app.extensions["store_components"]


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "").strip()
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return header


def token_required(*roles: str, query_param: Optional[str] = None):
    """Decode the Authorization header into ``g.identity``; optionally restrict roles.

    ``query_param`` names a query-string fallback for clients that cannot set
    headers, such as a browser ``EventSource``.
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _bearer_token()
            if not token and query_param:
                token = request.args.get(query_param, "").strip()
            if not token:
                raise InvalidToken("authorization header required")
            claims = components()["token_issuer"].decode(token)
            if roles and claims.get("role") not in roles:
                raise Forbidden("insufficient role")
            g.identity = claims
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def current_user_id() -> str:
    return g.identity["user_id"]


def is_admin() -> bool:
    return g.identity.get("role") in ADMIN_ROLES
