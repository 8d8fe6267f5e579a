from fastapi import BackgroundTasks

from intakedesk.core.notifications import (
    DEFAULT_STATUS_MESSAGE,
    LogOnlyTransport,
    NotificationDispatcher,
    SMTPTransport,
    build_transport,
    render,
    status_message,
)
from intakedesk.config import get_settings
from intakedesk.types import Attachment


def test_status_message_falls_back_for_unknown_status() -> None:
    assert status_message("hired").startswith("Congratulations!")
    assert status_message("pending") == DEFAULT_STATUS_MESSAGE
    assert status_message(None) == DEFAULT_STATUS_MESSAGE


def test_templates_escape_user_content() -> None:
    html = render("reply.html", company="Acme", message="<b>hi</b>", original="<script>x</script>")
    assert "&lt;b&gt;hi&lt;/b&gt;" in html
    assert "<script>" not in html


def test_send_returns_false_instead_of_raising(outbox) -> None:
    outbox.fail = True
    dispatcher = NotificationDispatcher(outbox)
    assert dispatcher.send("jane@x.io", "Subject", "<p>body</p>") is False


def test_send_without_recipient_is_skipped(outbox) -> None:
    assert NotificationDispatcher(outbox).send("", "Subject", "<p>body</p>") is False
    assert outbox.messages == []


def test_send_attaches_files(outbox) -> None:
    attachment = Attachment(filename="offer.pdf", content_type="application/pdf", data=b"%PDF-1.4")
    assert NotificationDispatcher(outbox).send("jane@x.io", "Offer", "<p>hi</p>", [attachment])

    message = outbox.messages[0]
    assert message["To"] == "jane@x.io"
    names = [part.get_filename() for part in message.iter_attachments()]
    assert names == ["offer.pdf"]


def test_dispatch_defers_to_background_tasks(outbox) -> None:
    background = BackgroundTasks()
    NotificationDispatcher(outbox, background=background).dispatch("jane@x.io", "Later", "<p>hi</p>")
    assert outbox.messages == []
    assert len(background.tasks) == 1


def test_build_transport_depends_on_smtp_host() -> None:
    settings = get_settings()
    assert isinstance(build_transport(settings), LogOnlyTransport)
    assert isinstance(build_transport(settings.model_copy(update={"smtp_host": "smtp.example.com"})), SMTPTransport)
