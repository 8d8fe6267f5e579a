from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from intakedesk.config import Settings, get_settings
from intakedesk.core.notifications import NotificationDispatcher
from intakedesk.core.upload_filter import ADMIN_POLICY, RESUME_POLICY, UploadFilter
from intakedesk.db.base import as_utc, utcnow
from intakedesk.db.models import ContactMessage, JobApplication
from intakedesk.db.repositories import Repository
from intakedesk.errors import NotFoundError, UploadRejectedError, ValidationError
from intakedesk.types import (
    APPLICATION_STATUSES,
    CONTACT_STATUSES,
    MIN_REPLY_LENGTH,
    AdminContext,
    Attachment,
    ContactSubmission,
    JobApplicationSubmission,
    Page,
    SubmissionResult,
    clamp_page,
)

logger = logging.getLogger(__name__)


def _check_status(status: str, allowed: Sequence[str]) -> str:
    if status not in allowed:
        raise ValidationError.for_field("status", f"status must be one of {', '.join(allowed)}")
    return status


def _next_reply_time(previous: datetime | None) -> datetime:
    now = utcnow()
    previous = as_utc(previous)
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _start_of_previous_month(now: datetime) -> datetime:
    first_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return (first_of_month - timedelta(days=1)).replace(day=1)


def _daily_counts(timestamps: Sequence[datetime]) -> list[dict[str, Any]]:
    counts = Counter(stamp.date().isoformat() for stamp in timestamps)
    return [{"date": day, "count": counts[day]} for day in sorted(counts)]


class SubmissionService:
    def __init__(
        self,
        session: Session,
        dispatcher: NotificationDispatcher,
        *,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.repo = Repository(session)
        self.dispatcher = dispatcher
        self.attachment_filter = UploadFilter(ADMIN_POLICY)
        self.resume_filter = UploadFilter(RESUME_POLICY)

    # public intake

    def submit_contact(self, payload: ContactSubmission) -> ContactMessage:
        contact = self.repo.create_contact(payload.model_dump())
        logger.info("Contact message id=%s saved from %s", contact.id, contact.email)
        self.dispatcher.notify_contact_submitted(contact)
        return contact

    def submit_job_application(
        self,
        payload: JobApplicationSubmission,
        resume: Attachment | None = None,
    ) -> SubmissionResult[JobApplication]:
        warnings: list[str] = []
        if resume is not None:
            rejection = self.resume_filter.check(resume)
            if rejection is not None:
                if self.settings.resume_reject_policy == "reject":
                    raise UploadRejectedError([rejection])
                logger.warning("Dropping resume for %s: %s", payload.email, rejection.message)
                warnings.append(f"Resume was not attached: {rejection.message}")
                resume = None

        application = self.repo.create_application(payload.model_dump(), resume=resume)
        logger.info("Job application id=%s saved for position=%s", application.id, application.position)
        self.dispatcher.notify_application_submitted(application)
        return SubmissionResult(record=application, warnings=warnings)

    # contacts

    def get_contact(self, contact_id: int) -> ContactMessage:
        contact = self.repo.get_contact(contact_id)
        if contact is None:
            raise NotFoundError("Contact not found")
        return contact

    def list_contacts(
        self,
        status: str | None = None,
        page: int | None = 1,
        page_size: int | None = 10,
    ) -> Page[ContactMessage]:
        if status:
            _check_status(status, CONTACT_STATUSES)
        page, limit = clamp_page(page, page_size)
        rows, total = self.repo.list_contacts(status=status, offset=(page - 1) * limit, limit=limit)
        return Page(items=rows, page=page, limit=limit, total=total)

    def update_contact_status(self, contact_id: int, status: str) -> ContactMessage:
        _check_status(status, CONTACT_STATUSES)
        contact = self.get_contact(contact_id)
        return self.repo.update_fields(contact, {"status": status})

    def reply_to_contact(
        self,
        contact_id: int,
        message: str,
        attachments: Sequence[Attachment],
        admin: AdminContext,
    ) -> ContactMessage:
        message = self._check_reply(message, attachments)
        contact = self.get_contact(contact_id)
        self.repo.append_reply(
            contact,
            message=message,
            sent_by=admin.owner,
            attachments=attachments,
            sent_at=utcnow(),
            changes={"status": "replied", "last_replied_at": _next_reply_time(contact.last_replied_at)},
        )
        logger.info("Reply added to contact id=%s by %s (%d attachment(s))", contact.id, admin.username, len(attachments))
        self.dispatcher.send_contact_reply(contact, message, attachments)
        return contact

    def delete_contact(self, contact_id: int) -> None:
        if not self.repo.delete_contacts([contact_id]):
            raise NotFoundError("Contact not found")
        logger.info("Deleted contact id=%s", contact_id)

    def delete_contacts(self, contact_ids: Sequence[int]) -> int:
        deleted = self.repo.delete_contacts(list(dict.fromkeys(contact_ids)))
        logger.info("Bulk deleted %d of %d requested contact(s)", deleted, len(contact_ids))
        return deleted

    # job applications

    def get_application(self, application_id: int) -> JobApplication:
        application = self.repo.get_application(application_id)
        if application is None:
            raise NotFoundError("Application not found")
        return application

    def list_applications(
        self,
        status: str | None = None,
        position: str | None = None,
        page: int | None = 1,
        page_size: int | None = 10,
    ) -> Page[JobApplication]:
        if status:
            _check_status(status, APPLICATION_STATUSES)
        page, limit = clamp_page(page, page_size)
        rows, total = self.repo.list_applications(
            status=status,
            position=position,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return Page(items=rows, page=page, limit=limit, total=total)

    def update_application_status(
        self,
        application_id: int,
        status: str,
        notes: str | None = None,
    ) -> JobApplication:
        _check_status(status, APPLICATION_STATUSES)
        application = self.get_application(application_id)
        changes: dict[str, Any] = {"status": status}
        if notes is not None:
            changes["notes"] = notes
        return self.repo.update_fields(application, changes)

    def reply_to_application(
        self,
        application_id: int,
        message: str,
        attachments: Sequence[Attachment],
        admin: AdminContext,
        status: str | None = None,
    ) -> JobApplication:
        if status:
            _check_status(status, APPLICATION_STATUSES)
        message = self._check_reply(message, attachments)
        application = self.get_application(application_id)

        changes: dict[str, Any] = {"last_replied_at": _next_reply_time(application.last_replied_at)}
        if status:
            changes["status"] = status
        self.repo.append_reply(
            application,
            message=message,
            sent_by=admin.owner,
            attachments=attachments,
            sent_at=utcnow(),
            changes=changes,
        )
        logger.info(
            "Reply added to application id=%s by %s (%d attachment(s))",
            application.id,
            admin.username,
            len(attachments),
        )
        self.dispatcher.send_application_update(application, message, status or application.status, attachments)
        return application

    def delete_application(self, application_id: int) -> None:
        if not self.repo.delete_applications([application_id]):
            raise NotFoundError("Application not found")
        logger.info("Deleted application id=%s with its resume", application_id)

    def delete_applications(self, application_ids: Sequence[int]) -> int:
        deleted = self.repo.delete_applications(list(dict.fromkeys(application_ids)))
        logger.info("Bulk deleted %d of %d requested application(s)", deleted, len(application_ids))
        return deleted

    # resumes in the file-management view

    def list_resumes(self, page: int | None = 1, page_size: int | None = 10) -> Page[JobApplication]:
        page, limit = clamp_page(page, page_size)
        rows, total = self.repo.list_resumes(offset=(page - 1) * limit, limit=limit)
        return Page(items=rows, page=page, limit=limit, total=total)

    def get_resume(self, application_id: int) -> JobApplication:
        application = self.repo.get_application(application_id, with_resume=True)
        if application is None or application.resume_data is None:
            raise NotFoundError("Resume not found")
        return application

    # dashboard

    def dashboard_stats(self) -> dict[str, Any]:
        since = _start_of_previous_month(utcnow())
        recent_contacts, _ = self.repo.list_contacts(limit=5)
        recent_applications, _ = self.repo.list_applications(limit=5)
        return {
            "stats": {
                "total_contacts": self.repo.count_contacts(),
                "new_contacts": self.repo.count_contacts("new"),
                "total_applications": self.repo.count_applications(),
                "pending_applications": self.repo.count_applications("pending"),
            },
            "recent_contacts": recent_contacts,
            "recent_applications": recent_applications,
            "charts": {
                "daily_contacts": _daily_counts(self.repo.created_at_since(ContactMessage, since)),
                "daily_applications": _daily_counts(self.repo.created_at_since(JobApplication, since)),
            },
        }

    def _check_reply(self, message: str, attachments: Sequence[Attachment]) -> str:
        message = (message or "").strip()
        if len(message) < MIN_REPLY_LENGTH:
            raise ValidationError.for_field(
                "message",
                f"Reply message must be at least {MIN_REPLY_LENGTH} characters",
            )
        checked = self.attachment_filter.check_many(attachments)
        if not checked.ok:
            raise UploadRejectedError(checked.rejected)
        return message
