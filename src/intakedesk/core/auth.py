"""Admin login, token issue and the request-level auth guard.

The guard never raises: every request resolves to an explicit
:class:`AuthDecision` which the route layer turns into a response.

Fail-open policy: when a token verifies but the admin lookup itself fails
(database unavailable), the guard trusts the token claims if
``auth_fail_open`` is set. This favours availability of the back office over
strict verification and is logged at WARNING every time it happens. Set
``AUTH_FAIL_OPEN=false`` to deny instead.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

import bcrypt
import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intakedesk.config import Settings, get_settings
from intakedesk.db.base import utcnow
from intakedesk.db.models import AdminUser
from intakedesk.db.repositories import Repository
from intakedesk.errors import AuthError
from intakedesk.types import AdminContext, AuthDecision

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: int = 12) -> str:
    secret = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    secret = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(secret, password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def context_for(admin: AdminUser) -> AdminContext:
    return AdminContext(admin_id=admin.id, username=admin.username, role=admin.role, email=admin.email)


class TokenService:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def issue(self, admin: AdminUser) -> str:
        now = utcnow()
        claims = {
            "sub": str(admin.id),
            "username": admin.username,
            "role": admin.role,
            "email": admin.email,
            "iat": now,
            "exp": now + timedelta(hours=self.settings.jwt_expires_hours),
        }
        return jwt.encode(claims, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def decode(self, token: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            self.settings.jwt_secret,
            algorithms=[self.settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )


class AuthGuard:
    def __init__(self, session: Session, *, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.tokens = TokenService(self.settings)

    def login(self, username: str, password: str) -> tuple[str, AdminUser]:
        logger.info("Login attempt for username=%s", username)
        admin = self.repo.get_active_admin_by_username(username)
        if admin is None or not verify_password(password, admin.password_hash):
            logger.info("Login rejected for username=%s", username)
            raise AuthError("Invalid credentials")

        admin = self.repo.touch_last_login(admin)
        logger.info("Login successful for username=%s", username)
        return self.tokens.issue(admin), admin

    def authenticate(self, authorization: str | None) -> AuthDecision:
        token = self._bearer_token(authorization)
        if not token:
            return AuthDecision.deny("No token provided")

        try:
            claims = self.tokens.decode(token)
            admin_id = int(claims["sub"])
        except jwt.ExpiredSignatureError:
            return AuthDecision.deny("Token expired")
        except (jwt.InvalidTokenError, ValueError):
            return AuthDecision.deny("Invalid token")

        try:
            admin = self.repo.get_admin(admin_id)
        except SQLAlchemyError as exc:
            self.session.rollback()
            if not self.settings.auth_fail_open:
                logger.error("Admin lookup failed for admin_id=%s; denying (fail-closed): %s", admin_id, exc)
                return AuthDecision.deny("Identity lookup unavailable")
            logger.warning(
                "Admin lookup failed for admin_id=%s; trusting token claims (fail-open): %s",
                admin_id,
                exc,
            )
            return AuthDecision.allow(
                AdminContext(
                    admin_id=admin_id,
                    username=str(claims.get("username", "")),
                    role=str(claims.get("role", "admin")),
                    email=str(claims.get("email", "")),
                    verified=False,
                )
            )

        if admin is None or not admin.is_active:
            return AuthDecision.deny("Invalid token")
        return AuthDecision.allow(context_for(admin))

    @staticmethod
    def _bearer_token(authorization: str | None) -> str:
        if not authorization:
            return ""
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != "bearer":
            return ""
        return token.strip()
