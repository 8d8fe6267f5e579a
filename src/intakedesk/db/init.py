from __future__ import annotations

import logging

from intakedesk.config import get_settings
from intakedesk.core.auth import hash_password
from intakedesk.db import models  # noqa: F401
from intakedesk.db.base import Base
from intakedesk.db.repositories import Repository
from intakedesk.db.session import SessionLocal, engine

logger = logging.getLogger(__name__)


def ensure_data_directories() -> None:
    get_settings().data_dir.mkdir(parents=True, exist_ok=True)


def bootstrap_admin() -> int:
    settings = get_settings()
    if not (settings.bootstrap_admin_username and settings.bootstrap_admin_password):
        return 0

    with SessionLocal() as session:
        repo = Repository(session)
        if repo.count_admins():
            return 0
        repo.create_admin(
            username=settings.bootstrap_admin_username,
            email=settings.bootstrap_admin_email or settings.admin_email,
            password_hash=hash_password(settings.bootstrap_admin_password, rounds=settings.bcrypt_rounds),
            role="super_admin",
        )
    logger.info("Bootstrapped super admin %s", settings.bootstrap_admin_username)
    return 1


def init_database() -> dict[str, int]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"bootstrapped_admins": bootstrap_admin()}
