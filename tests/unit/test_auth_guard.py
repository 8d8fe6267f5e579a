from datetime import timedelta

import jwt
import pytest
from sqlalchemy.exc import OperationalError

from intakedesk.config import get_settings
from intakedesk.core.auth import AuthGuard, TokenService, hash_password, verify_password
from intakedesk.db.base import utcnow
from intakedesk.db.repositories import Repository
from intakedesk.errors import AuthError


def _boom(self, admin_id):
    raise OperationalError("SELECT admin_users", {}, Exception("database is locked"))


def test_password_hash_round_trip() -> None:
    hashed = hash_password("correct horse", rounds=4)
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)
    assert not verify_password("correct horse", "not-a-bcrypt-hash")


def test_login_uses_same_message_for_unknown_user_and_bad_password(db_session, super_admin) -> None:
    guard = AuthGuard(db_session)
    with pytest.raises(AuthError) as unknown:
        guard.login("nobody", "whatever")
    with pytest.raises(AuthError) as wrong:
        guard.login("root", "wrong-password")
    assert unknown.value.message == wrong.value.message == "Invalid credentials"


def test_login_issues_token_and_records_last_login(db_session, super_admin) -> None:
    token, admin = AuthGuard(db_session).login("root", "s3cret-pass")
    assert admin.last_login is not None
    claims = TokenService().decode(token)
    assert claims["sub"] == str(super_admin.id)
    assert claims["role"] == "super_admin"


def test_missing_or_malformed_header_is_denied(db_session) -> None:
    guard = AuthGuard(db_session)
    assert guard.authenticate(None).reason == "No token provided"
    assert guard.authenticate("Basic abc").reason == "No token provided"
    assert guard.authenticate("Bearer not-a-jwt").reason == "Invalid token"


def test_expired_token_is_denied(db_session, super_admin) -> None:
    settings = get_settings()
    token = jwt.encode(
        {"sub": str(super_admin.id), "exp": utcnow() - timedelta(minutes=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    decision = AuthGuard(db_session).authenticate(f"Bearer {token}")
    assert not decision.allowed
    assert decision.reason == "Token expired"


def test_token_signed_with_other_secret_is_denied(db_session, super_admin) -> None:
    token = jwt.encode(
        {"sub": str(super_admin.id), "exp": utcnow() + timedelta(hours=1)},
        "another-secret-key-with-enough-length",
        algorithm="HS256",
    )
    assert AuthGuard(db_session).authenticate(f"Bearer {token}").reason == "Invalid token"


def test_token_for_deleted_admin_is_denied(db_session) -> None:
    admin = Repository(db_session).create_admin(username="gone", email="gone@example.com", password_hash="x")
    token = TokenService().issue(admin)
    db_session.delete(admin)
    db_session.commit()
    assert AuthGuard(db_session).authenticate(f"Bearer {token}").reason == "Invalid token"


def test_valid_token_resolves_verified_context(db_session, super_admin) -> None:
    decision = AuthGuard(db_session).authenticate(f"Bearer {TokenService().issue(super_admin)}")
    assert decision.allowed
    assert decision.context.verified
    assert decision.context.owner == "root@example.com"
    assert decision.context.is_super_admin


def test_lookup_failure_fails_open_by_default(db_session, super_admin, monkeypatch, caplog) -> None:
    token = TokenService().issue(super_admin)
    monkeypatch.setattr(Repository, "get_admin", _boom)

    with caplog.at_level("WARNING", logger="intakedesk.core.auth"):
        decision = AuthGuard(db_session).authenticate(f"Bearer {token}")

    assert decision.allowed
    assert decision.context.verified is False
    assert decision.context.username == "root"
    assert "fail-open" in caplog.text


def test_lookup_failure_denies_when_fail_closed(db_session, super_admin, monkeypatch) -> None:
    settings = get_settings().model_copy(update={"auth_fail_open": False})
    token = TokenService(settings).issue(super_admin)
    monkeypatch.setattr(Repository, "get_admin", _boom)

    decision = AuthGuard(db_session, settings=settings).authenticate(f"Bearer {token}")

    assert not decision.allowed
    assert decision.reason == "Identity lookup unavailable"
