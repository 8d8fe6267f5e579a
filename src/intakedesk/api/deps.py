from __future__ import annotations

import logging
from collections.abc import Generator, Sequence
from typing import TypeVar

from fastapi import BackgroundTasks, Depends, Header, UploadFile
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from intakedesk.config import Settings, get_settings
from intakedesk.core.auth import AuthGuard
from intakedesk.core.file_store import FileStore
from intakedesk.core.notifications import MailTransport, NotificationDispatcher, build_transport
from intakedesk.core.submissions import SubmissionService
from intakedesk.db.session import get_db_session
from intakedesk.errors import AuthError, ForbiddenError, ValidationError, field_errors
from intakedesk.types import MAX_ATTACHMENT_BYTES, AdminContext, Attachment

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_app_settings() -> Settings:
    return get_settings()


def get_mail_transport(settings: Settings = Depends(get_app_settings)) -> MailTransport:
    return build_transport(settings)


def get_dispatcher(
    background: BackgroundTasks,
    transport: MailTransport = Depends(get_mail_transport),
    settings: Settings = Depends(get_app_settings),
) -> NotificationDispatcher:
    return NotificationDispatcher(transport, settings=settings, background=background)


def get_submission_service(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_app_settings),
) -> SubmissionService:
    return SubmissionService(db, dispatcher, settings=settings)


def get_file_store(db: Session = Depends(get_db)) -> FileStore:
    return FileStore(db)


def get_auth_guard(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> AuthGuard:
    return AuthGuard(db, settings=settings)


def require_admin(
    authorization: str | None = Header(default=None),
    guard: AuthGuard = Depends(get_auth_guard),
) -> AdminContext:
    decision = guard.authenticate(authorization)
    if not decision.allowed or decision.context is None:
        logger.info("Rejected admin request: %s", decision.reason)
        raise AuthError(decision.reason or "Invalid token")
    return decision.context


def require_super_admin(admin: AdminContext = Depends(require_admin)) -> AdminContext:
    if not admin.is_super_admin:
        raise ForbiddenError()
    return admin


def read_uploads(uploads: Sequence[UploadFile] | None, max_bytes: int = MAX_ATTACHMENT_BYTES) -> list[Attachment]:
    """Read each part, stopping one byte past ``max_bytes``.

    An oversized part keeps its full size from the multipart parser so the
    rejection reports it exactly.
    """
    files: list[Attachment] = []
    for upload in uploads or ():
        if not upload.filename:
            continue
        data = upload.file.read(max_bytes + 1)
        declared_size = None
        if len(data) > max_bytes:
            declared_size = max(upload.size or 0, len(data))
        files.append(
            Attachment(
                filename=upload.filename,
                content_type=upload.content_type or "application/octet-stream",
                data=data,
                declared_size=declared_size,
            )
        )
    return files


def validate_form(model: type[ModelT], data: dict[str, object]) -> ModelT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(errors=field_errors(exc)) from exc
