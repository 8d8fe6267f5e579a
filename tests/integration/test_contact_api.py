from datetime import datetime

from intakedesk.types import KIB

CONTACT = {
    "name": "Jane Doe",
    "email": "Jane@X.com",
    "subject": "Pricing question",
    "message": "Please send pricing for QR onboarding.",
}


def _submit(client, **overrides) -> int:
    resp = client.post("/api/contact/submit", json={**CONTACT, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()["contactId"]


def test_submit_contact_then_list_as_admin(client, auth_headers, outbox) -> None:
    resp = client.post("/api/contact/submit", json=CONTACT)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Your message has been sent successfully!"
    contact_id = body["contactId"]

    listing = client.get("/api/contact/all", headers=auth_headers)
    assert listing.status_code == 200
    items = listing.json()["items"]
    assert [item["id"] for item in items] == [contact_id]
    assert items[0]["status"] == "new"
    assert items[0]["email"] == "jane@x.com"
    assert listing.json()["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}

    assert len(outbox.to("office@example.com")) == 1
    assert len(outbox.to("jane@x.com")) == 1


def test_submit_contact_validation_errors_are_400(client) -> None:
    resp = client.post("/api/contact/submit", json={**CONTACT, "email": "nope", "message": "short"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert {error["field"] for error in body["errors"]} == {"email", "message"}


def test_mail_failure_does_not_fail_submission(client, auth_headers, outbox) -> None:
    outbox.fail = True
    contact_id = _submit(client)

    resp = client.get(f"/api/contact/{contact_id}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["subject"] == "Pricing question"


def test_admin_routes_require_token(client) -> None:
    _submit(client)
    resp = client.get("/api/contact/all")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "No token provided"}

    resp = client.get("/api/contact/all", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid token"


def test_status_filter_and_update(client, auth_headers) -> None:
    first = _submit(client)
    _submit(client, subject="Second one")

    resp = client.patch(f"/api/contact/{first}/status", json={"status": "read"}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "read"

    listing = client.get("/api/contact/all", params={"status": "read"}, headers=auth_headers).json()
    assert [item["id"] for item in listing["items"]] == [first]

    bad = client.patch(f"/api/contact/{first}/status", json={"status": "closed"}, headers=auth_headers)
    assert bad.status_code == 400
    assert client.get("/api/contact/all", params={"status": "closed"}, headers=auth_headers).status_code == 400


def test_reply_sets_replied_and_strictly_increasing_timestamp(client, auth_headers, outbox) -> None:
    contact_id = _submit(client)

    first = client.post(
        f"/api/contact/{contact_id}/reply",
        data={"message": "Thanks, a quote is attached."},
        files=[("attachments", ("quote.pdf", b"%PDF-1.4 quote", "application/pdf"))],
        headers=auth_headers,
    )
    assert first.status_code == 200, first.text
    second = client.post(
        f"/api/contact/{contact_id}/reply",
        data={"message": "Following up on the quote."},
        headers=auth_headers,
    )
    assert second.status_code == 200

    body = second.json()
    assert body["status"] == "replied"
    assert [reply["message"] for reply in body["replies"]] == [
        "Thanks, a quote is attached.",
        "Following up on the quote.",
    ]
    assert body["replies"][0]["attachments"][0]["originalName"] == "quote.pdf"
    assert body["replies"][0]["sentBy"] == "root@example.com"
    assert datetime.fromisoformat(body["lastRepliedAt"]) > datetime.fromisoformat(first.json()["lastRepliedAt"])

    replies = [message for message in outbox.to("jane@x.com") if message["Subject"] == "Re: Pricing question"]
    assert len(replies) == 2
    assert [part.get_filename() for part in replies[0].iter_attachments()] == ["quote.pdf"]


def test_reply_with_oversized_pdf_is_rejected_with_details(client, auth_headers, outbox) -> None:
    contact_id = _submit(client)
    outbox.messages.clear()

    resp = client.post(
        f"/api/contact/{contact_id}/reply",
        data={"message": "Please see the attached report."},
        files=[("attachments", ("report.pdf", b"x" * (250 * KIB), "application/pdf"))],
        headers=auth_headers,
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["reason"] == "size-exceeded"
    assert body["files"][0]["filename"] == "report.pdf"
    assert body["files"][0]["sizeKb"] == 250.0
    assert "PDF files must be under 200KB" in body["message"]

    contact = client.get(f"/api/contact/{contact_id}", headers=auth_headers).json()
    assert contact["status"] == "new"
    assert contact["replies"] == []
    assert outbox.messages == []


def test_reply_message_too_short(client, auth_headers) -> None:
    contact_id = _submit(client)
    resp = client.post(f"/api/contact/{contact_id}/reply", data={"message": "  ok  "}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "message"


def test_delete_single_and_multiple(client, auth_headers) -> None:
    ids = [_submit(client, subject=f"Subject {index}") for index in range(3)]

    assert client.delete(f"/api/contact/{ids[0]}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/contact/{ids[0]}", headers=auth_headers).status_code == 404
    assert client.delete(f"/api/contact/{ids[0]}", headers=auth_headers).status_code == 404

    resp = client.post("/api/contact/delete-multiple", json={"ids": ids}, headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["deletedCount"] == 2

    assert client.post("/api/contact/delete-multiple", json={"ids": []}, headers=auth_headers).status_code == 400
