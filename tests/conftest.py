from __future__ import annotations

import os
import tempfile
from email.message import EmailMessage
from pathlib import Path

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="intakedesk-tests-"))
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR / 'intakedesk-test.db'}"
os.environ["DATA_DIR"] = str(_TEST_DATA_DIR)
os.environ["JWT_SECRET"] = "test-secret-key-with-enough-length"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_HOST"] = ""
os.environ["ADMIN_EMAIL"] = "office@example.com"
os.environ["MAIL_FROM_ADDRESS"] = "noreply@example.com"
os.environ["RATE_LIMIT_REQUESTS"] = "1000"
os.environ["AUTH_FAIL_OPEN"] = "true"
os.environ["RESUME_REJECT_POLICY"] = "drop"
os.environ["BOOTSTRAP_ADMIN_USERNAME"] = ""
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from intakedesk.api.app import create_app  # noqa: E402
from intakedesk.api.deps import get_mail_transport  # noqa: E402
from intakedesk.core.auth import TokenService, hash_password  # noqa: E402
from intakedesk.db.base import Base  # noqa: E402
from intakedesk.db.models import AdminUser  # noqa: E402
from intakedesk.db.repositories import Repository  # noqa: E402
from intakedesk.db.session import SessionLocal, engine  # noqa: E402

ADMIN_PASSWORD = "s3cret-pass"


class Outbox:
    """Mail transport that keeps every delivered message in memory."""

    def __init__(self) -> None:
        self.messages: list[EmailMessage] = []
        self.fail = False

    def deliver(self, message: EmailMessage) -> None:
        if self.fail:
            raise ConnectionRefusedError("smtp unavailable")
        self.messages.append(message)

    def to(self, address: str) -> list[EmailMessage]:
        return [message for message in self.messages if message["To"] == address]


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db_session():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def outbox() -> Outbox:
    return Outbox()


@pytest.fixture
def app(outbox: Outbox):
    application = create_app()
    application.dependency_overrides[get_mail_transport] = lambda: outbox
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _create_admin(username: str, email: str, role: str) -> AdminUser:
    with SessionLocal() as session:
        return Repository(session).create_admin(
            username=username,
            email=email,
            password_hash=hash_password(ADMIN_PASSWORD, rounds=4),
            role=role,
        )


@pytest.fixture
def super_admin() -> AdminUser:
    return _create_admin("root", "root@example.com", "super_admin")


@pytest.fixture
def staff_admin() -> AdminUser:
    return _create_admin("staff", "staff@example.com", "admin")


@pytest.fixture
def auth_headers(super_admin: AdminUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {TokenService().issue(super_admin)}"}


@pytest.fixture
def staff_headers(staff_admin: AdminUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {TokenService().issue(staff_admin)}"}
