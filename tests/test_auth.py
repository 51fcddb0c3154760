from datetime import datetime

import pytest

from storecore.models import Admin, User
from storecore.services.auth_service import AuthService
from storecore.services.cart_merge_service import CartMergeService
from storecore.services.errors import AdminPendingApproval, IdentityError, InvalidToken, UserNotFound
from storecore.services.identity import GoogleIdentityVerifier, TokenIssuer

from conftest import FakeHttp, FakeResponse, FakeVerifier


@pytest.fixture
def verifier():
    v = FakeVerifier()
    v.add("tok-user", "sub-1", "ana@example.com", "Ana")
    v.add("tok-owner", "sub-owner", "owner@example.com", "Owner")
    v.add("tok-staff", "sub-staff", "staff@example.com", "Staff")
    return v


@pytest.fixture
def issuer():
    return TokenIssuer("test-secret", ttl_hours=1)


@pytest.fixture
def auth(session_factory, verifier, issuer):
    return AuthService(
        session_factory,
        verifier,
        issuer,
        CartMergeService(session_factory),
        super_admin_email="owner@example.com",
    )


def test_token_round_trip_and_tampering(issuer):
    token = issuer.issue("u1", "user", email="a@example.com")
    claims = issuer.decode(token)
    assert (claims["user_id"], claims["role"], claims["email"]) == ("u1", "user", "a@example.com")

    with pytest.raises(InvalidToken):
        TokenIssuer("other-secret").decode(token)
    with pytest.raises(InvalidToken):
        issuer.decode("not-a-token")
    with pytest.raises(ValueError):
        issuer.issue("u1", "wizard")


def test_expired_token(issuer):
    token = issuer.issue("u1", "user", ttl_hours=-1)
    with pytest.raises(InvalidToken):
        issuer.decode(token)


def test_google_verifier_checks_audience():
    ok = FakeResponse(200, {"aud": "client-123", "sub": "s1", "email": "A@Example.com", "name": "A"})
    verifier = GoogleIdentityVerifier("client-123", http=FakeHttp(ok))
    claims = verifier.verify("id-token")
    assert (claims.subject_id, claims.email) == ("s1", "a@example.com")

    wrong = FakeResponse(200, {"aud": "someone-else", "sub": "s1", "email": "a@example.com"})
    with pytest.raises(IdentityError):
        GoogleIdentityVerifier("client-123", http=FakeHttp(wrong)).verify("id-token")
    with pytest.raises(IdentityError):
        GoogleIdentityVerifier("client-123", http=FakeHttp(FakeResponse(400, {}))).verify("id-token")


def test_guest_creation(auth, issuer):
    guest = auth.create_guest()
    assert guest["guest_id"].startswith("guest_")
    assert len(guest["guest_id"]) == len("guest_") + 32
    assert issuer.decode(guest["token"])["role"] == "guest"


def test_login_user_creates_profile_and_merges(auth, issuer, cart_service, make_product):
    pid = make_product()
    cart_service.set_item("guest_x", pid, 2, guest=True)

    result = auth.login_user("tok-user", guest_id="guest_x")

    assert issuer.decode(result["token"])["user_id"] == "sub-1"
    assert result["user"]["email"] == "ana@example.com"
    assert result["merge"]["outcome"] == "merged"
    assert cart_service.get_cart("sub-1")["item_count"] == 2

    again = auth.login_user("tok-user")
    assert again["merge"] is None
    assert again["user"]["id"] == "sub-1"


def test_login_user_rejects_bad_token(auth):
    with pytest.raises(IdentityError):
        auth.login_user("forged")


def test_profile_update(auth):
    auth.login_user("tok-user")
    updated = auth.update_user("sub-1", {"phone": "+966500000000", "address": {"city": "Riyadh"}})
    assert updated["phone"] == "+966500000000"
    assert updated["address"]["city"] == "Riyadh"
    assert auth.get_user("sub-1")["address"]["city"] == "Riyadh"
    with pytest.raises(UserNotFound):
        auth.get_user("ghost")


def test_admin_login_flow(auth, issuer, session_factory):
    owner = auth.login_admin("tok-owner")
    assert issuer.decode(owner["token"])["role"] == "superadmin"

    with pytest.raises(AdminPendingApproval):
        auth.login_admin("tok-staff")
    with pytest.raises(AdminPendingApproval):
        auth.login_admin("tok-staff")

    with session_factory() as session:
        admins = session.query(Admin).filter(Admin.email == "staff@example.com").all()
        assert len(admins) == 1
        admins[0].approved = True

    staff = auth.login_admin("tok-staff")
    assert issuer.decode(staff["token"])["role"] == "admin"


def test_admin_listings(auth, verifier, session_factory):
    verifier.add("tok-late", "sub-late", "late@example.com", "Late")
    auth.login_user("tok-user")
    auth.login_user("tok-late")
    with pytest.raises(AdminPendingApproval):
        auth.login_admin("tok-staff")
    with session_factory() as session:
        session.query(User).filter(User.id == "sub-1").update({"created_at": datetime(2024, 1, 1)})
        session.query(User).filter(User.id == "sub-late").update({"created_at": datetime(2024, 6, 1)})

    users = auth.list_users()
    assert [u["id"] for u in users] == ["sub-late", "sub-1"]
    assert set(users[0]) >= {"email", "name", "address"}

    admins = auth.list_admins()
    assert [(a["email"], a["approved"]) for a in admins] == [("staff@example.com", False)]
