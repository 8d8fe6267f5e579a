from __future__ import annotations

import logging
import smtplib
from collections.abc import Sequence
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Any, Protocol

from fastapi import BackgroundTasks
from jinja2 import Environment, FileSystemLoader, select_autoescape

from intakedesk.config import Settings, get_settings
from intakedesk.db.models import ContactMessage, JobApplication
from intakedesk.types import Attachment

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates" / "email"

JOB_STATUS_MESSAGES: dict[str, str] = {
    "shortlisted": "Congratulations! Your application has been shortlisted.",
    "rejected": "Thank you for your interest in the position.",
    "hired": "Congratulations! You have been selected for the position.",
    "reviewing": "Your application is currently under review.",
}
DEFAULT_STATUS_MESSAGE = "We have an update regarding your job application."

_environment = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render(template_name: str, **context: Any) -> str:
    return _environment.get_template(template_name).render(**context)


def status_message(status: str | None) -> str:
    return JOB_STATUS_MESSAGES.get(status or "", DEFAULT_STATUS_MESSAGE)


class MailTransport(Protocol):
    def deliver(self, message: EmailMessage) -> None: ...


class SMTPTransport:
    def __init__(self, settings: Settings):
        self.settings = settings

    def deliver(self, message: EmailMessage) -> None:
        s = self.settings
        if s.smtp_port == 465:
            with smtplib.SMTP_SSL(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_sec) as client:
                if s.smtp_user:
                    client.login(s.smtp_user, s.smtp_password)
                client.send_message(message)
            return

        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_sec) as client:
            if s.smtp_user:
                client.starttls()
                client.login(s.smtp_user, s.smtp_password)
            client.send_message(message)


class LogOnlyTransport:
    """Used when no SMTP host is configured; keeps local development quiet."""

    def deliver(self, message: EmailMessage) -> None:
        logger.info("SMTP not configured; skipping mail to=%s subject=%s", message["To"], message["Subject"])


def build_transport(settings: Settings | None = None) -> MailTransport:
    settings = settings or get_settings()
    if settings.smtp_host:
        return SMTPTransport(settings)
    return LogOnlyTransport()


class NotificationDispatcher:
    """Renders transactional mail and hands it to the transport.

    ``send`` never raises. When bound to FastAPI ``BackgroundTasks`` the actual
    delivery happens after the response has been sent, so a mail failure can
    never roll back or fail a persisted submission.
    """

    def __init__(
        self,
        transport: MailTransport,
        *,
        settings: Settings | None = None,
        background: BackgroundTasks | None = None,
    ):
        self.transport = transport
        self.settings = settings or get_settings()
        self.background = background

    def send(self, to: str, subject: str, html: str, attachments: Sequence[Attachment] = ()) -> bool:
        if not to:
            logger.warning("Skipping mail with no recipient: subject=%s", subject)
            return False

        try:
            self.transport.deliver(self._build_message(to, subject, html, attachments))
        except Exception as exc:
            logger.error("Email sending error: to=%s subject=%s: %s", to, subject, exc)
            return False
        logger.info("Email sent successfully: to=%s subject=%s", to, subject)
        return True

    def dispatch(self, to: str, subject: str, html: str, attachments: Sequence[Attachment] = ()) -> None:
        if self.background is not None:
            self.background.add_task(self.send, to, subject, html, list(attachments))
        else:
            self.send(to, subject, html, attachments)

    def notify_contact_submitted(self, contact: ContactMessage) -> None:
        company = self.settings.mail_from_name
        self.dispatch(
            self.settings.admin_email,
            f"New Contact Form Submission: {contact.subject}",
            render(
                "notification.html",
                company=company,
                heading="New Contact Form Submission",
                fields=[
                    ("Name", contact.name),
                    ("Email", contact.email),
                    ("Phone", contact.phone or "Not provided"),
                    ("Subject", contact.subject),
                ],
                body=contact.message,
            ),
        )
        self.dispatch(
            contact.email,
            f"Thank you for contacting {company}",
            render(
                "notification.html",
                company=company,
                heading="Thank you for reaching out!",
                greeting=f"Dear {contact.name},",
                paragraphs=["We have received your message and will get back to you within 24-48 hours."],
                signature=f"{company} Team",
            ),
        )

    def notify_application_submitted(self, application: JobApplication) -> None:
        company = self.settings.mail_from_name
        self.dispatch(
            self.settings.admin_email,
            f"New Job Application: {application.position}",
            render(
                "notification.html",
                company=company,
                heading="New Job Application Received",
                fields=[
                    ("Name", application.full_name),
                    ("Email", application.email),
                    ("Phone", application.phone),
                    ("Position", application.position),
                    ("Experience", application.experience),
                    ("Resume", application.resume_original_name or "Not provided"),
                ],
                body=application.cover_letter or "Not provided",
                body_label="Cover Letter",
            ),
        )
        self.dispatch(
            application.email,
            f"Application Received - {company}",
            render(
                "notification.html",
                company=company,
                heading="Thank you for your application!",
                greeting=f"Dear {application.full_name},",
                paragraphs=[
                    f"We have received your application for the position of {application.position}.",
                    "Our HR team will review your application and get back to you "
                    "if your profile matches our requirements.",
                ],
                signature=f"HR Team, {company}",
            ),
        )

    def send_contact_reply(
        self,
        contact: ContactMessage,
        message: str,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        self.dispatch(
            contact.email,
            f"Re: {contact.subject}",
            render(
                "reply.html",
                company=self.settings.mail_from_name,
                message=message,
                original=contact.message,
            ),
            attachments,
        )

    def send_application_update(
        self,
        application: JobApplication,
        message: str,
        status: str | None,
        attachments: Sequence[Attachment] = (),
    ) -> None:
        self.dispatch(
            application.email,
            f"Application Update - {application.position}",
            render(
                "job_status.html",
                company=self.settings.mail_from_name,
                full_name=application.full_name,
                status_message=status_message(status),
                message=message,
            ),
            attachments,
        )

    def _build_message(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Sequence[Attachment],
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.settings.mail_from_name, self.settings.sender_address))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(html, subtype="html")
        for item in attachments:
            maintype, _, subtype = item.content_type.partition("/")
            message.add_attachment(
                item.data,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=item.filename,
            )
        return message
