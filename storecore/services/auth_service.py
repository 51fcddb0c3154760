import logging
import secrets
from datetime import timedelta
from typing import Dict, List, Optional
from uuid import uuid4

from ..models.admin import Admin
from ..models.base import utcnow
from ..models.guest_user import GuestUser
from ..models.user import User
from ..utils.dto import to_admin_dto, to_user_dto
from .cart_merge_service import CartMergeService
from .cart_service import get_or_create_user_cart
from .errors import AdminPendingApproval, UserNotFound
from .identity import TokenIssuer
from .logging import log_event


# profile fields a user may edit
EDITABLE_USER_FIELDS = ("name", "phone", "country", "state", "city", "street", "postal_code")


class AuthService:
    """
    登入流程：
    - 訪客：建立 guest id 與短效 token
    - 使用者：驗證 Google token、建立或更新帳號、合併訪客購物車
    - 管理者：超級管理者直接放行，其餘需經核准
    """

    def __init__(
        self,
        session_factory,
        verifier,
        issuer: TokenIssuer,
        merger: CartMergeService,
        *,
        super_admin_email: str = "",
        guest_ttl_hours: int = 24,
    ) -> None:
        self._session_factory = session_factory
        self._verifier = verifier
        self._issuer = issuer
        self._merger = merger
        self._super_admin_email = (super_admin_email or "").strip().lower()
        self._guest_ttl_hours = guest_ttl_hours
        self.logger = logging.getLogger(__name__)

    def create_guest(self) -> Dict:
        guest_id = "guest_" + secrets.token_hex(16)
        expires_at = utcnow() + timedelta(hours=self._guest_ttl_hours)
        with self._session_factory() as session:
            session.add(GuestUser(id=guest_id, expires_at=expires_at))
        token = self._issuer.issue(guest_id, "guest", ttl_hours=self._guest_ttl_hours)
        log_event("info", "auth.guest_created", guest_id=guest_id)
        return {"guest_id": guest_id, "token": token, "expires_at": expires_at.isoformat()}

    def login_user(self, id_token: str, guest_id: Optional[str] = None) -> Dict:
        claims = self._verifier.verify(id_token)
        with self._session_factory() as session:
            user = session.query(User).filter(User.id == claims.subject_id).first()
            created = user is None
            if created:
                user = User(
                    id=claims.subject_id,
                    email=claims.email,
                    name=claims.display_name,
                    picture=claims.picture,
                    provider="google",
                    created_at=utcnow(),
                )
                session.add(user)
                session.flush()
            else:
                user.name = claims.display_name or user.name
                user.picture = claims.picture or user.picture
            get_or_create_user_cart(session, user.id)
            profile = to_user_dto(user)

        # merge runs in its own transaction; a failure there does not block login
        merge = self._merger.merge_guest_cart(guest_id, claims.subject_id) if guest_id else None
        token = self._issuer.issue(claims.subject_id, "user", email=claims.email)
        log_event("info", "auth.user_login", user_id=claims.subject_id, created=created)
        return {
            "token": token,
            "role": "user",
            "user": profile,
            "merge": merge.to_dict() if merge else None,
        }

    def login_admin(self, id_token: str) -> Dict:
        claims = self._verifier.verify(id_token)
        if self._super_admin_email and claims.email == self._super_admin_email:
            return self._admin_session(claims, "superadmin")

        with self._session_factory() as session:
            admin = session.query(Admin).filter(Admin.email == claims.email).first()
            if admin is None:
                session.add(
                    Admin(
                        id=str(uuid4()),
                        email=claims.email,
                        name=claims.display_name,
                        picture=claims.picture,
                        approved=False,
                        created_at=utcnow(),
                    )
                )
                log_event("info", "auth.admin_registered", email=claims.email)
                approved = False
            else:
                admin.name = claims.display_name or admin.name
                admin.picture = claims.picture or admin.picture
                approved = bool(admin.approved)
        if not approved:
            raise AdminPendingApproval()
        return self._admin_session(claims, "admin")

    def _admin_session(self, claims, role: str) -> Dict:
        token = self._issuer.issue(claims.subject_id, role, email=claims.email)
        log_event("info", "auth.admin_login", email=claims.email, role=role)
        return {
            "token": token,
            "role": role,
            "email": claims.email,
            "name": claims.display_name,
            "picture": claims.picture,
        }

    # ---- admin reads ----------------------------------------------------

    def list_users(self) -> List[Dict]:
        """Public profile of every user, newest first."""
        with self._session_factory() as session:
            rows = session.query(User).order_by(User.created_at.desc(), User.id).all()
            return [to_user_dto(u) for u in rows]

    def list_admins(self) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Admin).order_by(Admin.created_at.desc(), Admin.id).all()
            return [to_admin_dto(a) for a in rows]

    # ---- profile --------------------------------------------------------

    def get_user(self, user_id: str) -> Dict:
        with self._session_factory() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                raise UserNotFound("user not found")
            return to_user_dto(user)

    def update_user(self, user_id: str, data: Dict) -> Dict:
        fields = dict(data or {})
        # nested address form is accepted as well as flat fields
        address = fields.pop("address", None)
        if isinstance(address, dict):
            fields.update(address)
        with self._session_factory() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                raise UserNotFound("user not found")
            for field in EDITABLE_USER_FIELDS:
                if field in fields:
                    value = fields.get(field)
                    setattr(user, field, str(value).strip() if value else None)
            session.flush()
            return to_user_dto(user)
