"""
Identity verification and session tokens.

Google ID tokens are checked against the tokeninfo endpoint; the store then
issues its own HS256 JWT (PyJWT) carrying user_id, email and role.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
import requests

from .errors import IdentityError, InvalidToken


ROLES = ("guest", "user", "admin", "superadmin")


@dataclass
class IdentityClaims:
    subject_id: str
    email: str
    display_name: Optional[str] = None
    picture: Optional[str] = None
    audience: Optional[str] = None


class GoogleIdentityVerifier:
    """Verify Google ID tokens through the tokeninfo endpoint."""

    TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"

    def __init__(self, client_id: str, timeout: int = 15, http=None) -> None:
        self.client_id = client_id
        self.timeout = timeout
        self._http = http or requests
        self.logger = logging.getLogger(__name__)

    def verify(self, id_token: str) -> IdentityClaims:
        if not id_token:
            raise IdentityError("id token is required")
        try:
            resp = self._http.get(self.TOKENINFO_URL, params={"id_token": id_token}, timeout=self.timeout)
        except requests.RequestException as exc:
            self.logger.warning("tokeninfo request failed: %s", exc)
            raise IdentityError("identity provider unavailable") from exc
        if resp.status_code != 200:
            raise IdentityError("invalid or revoked id token")
        try:
            data = resp.json()
        except ValueError as exc:
            raise IdentityError("invalid identity provider response") from exc

        audience = data.get("aud")
        if self.client_id and audience != self.client_id:
            self.logger.warning("token audience mismatch: got %r", audience)
            raise IdentityError("invalid token audience")
        email = (data.get("email") or "").strip()
        if not email:
            raise IdentityError("email not found in token")
        subject = data.get("sub")
        if not subject:
            raise IdentityError("subject not found in token")
        return IdentityClaims(
            subject_id=str(subject),
            email=email.lower(),
            display_name=data.get("name"),
            picture=data.get("picture"),
            audience=audience,
        )


class TokenIssuer:
    """Issue and decode the store's HS256 session tokens."""

    ALGORITHM = "HS256"

    def __init__(self, secret: str, ttl_hours: int = 72) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self.ttl_hours = ttl_hours

    def issue(self, user_id: str, role: str, email: Optional[str] = None, ttl_hours: Optional[int] = None) -> str:
        if role not in ROLES:
            raise ValueError(f"unknown role: {role}")
        now = int(time.time())
        payload: Dict[str, Any] = {
            "user_id": user_id,
            "role": role,
            "iat": now,
            "exp": now + int(ttl_hours or self.ttl_hours) * 3600,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, self._secret, algorithm=self.ALGORITHM)

    def decode(self, token: str) -> Dict[str, Any]:
        if not token:
            raise InvalidToken("missing token")
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self.ALGORITHM])
        except jwt.ExpiredSignatureError as exc:
            raise InvalidToken("token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken("invalid token") from exc
        if not claims.get("user_id") or claims.get("role") not in ROLES:
            raise InvalidToken("invalid token claims")
        return claims
