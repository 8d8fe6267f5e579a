from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from intakedesk.api.deps import get_submission_service, read_uploads, require_admin
from intakedesk.api.schemas import (
    BulkDeleteRequest,
    ContactResponse,
    ContactStatusUpdate,
    ContactSubmitResponse,
    DeleteResponse,
    MessageResponse,
    PageResponse,
)
from intakedesk.core.submissions import SubmissionService
from intakedesk.types import AdminContext, ContactSubmission

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post("/submit", response_model=ContactSubmitResponse, status_code=201)
def submit_contact(
    payload: ContactSubmission,
    service: SubmissionService = Depends(get_submission_service),
) -> ContactSubmitResponse:
    contact = service.submit_contact(payload)
    return ContactSubmitResponse(message="Your message has been sent successfully!", contact_id=contact.id)


@router.get("/all", response_model=PageResponse[ContactResponse])
def list_contacts(
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> PageResponse[ContactResponse]:
    result = service.list_contacts(status=status, page=page, page_size=limit)
    return PageResponse[ContactResponse].of(result, [ContactResponse.model_validate(row) for row in result.items])


@router.post("/delete-multiple", response_model=DeleteResponse)
def delete_contacts(
    payload: BulkDeleteRequest,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> DeleteResponse:
    deleted = service.delete_contacts(payload.ids)
    return DeleteResponse(message=f"{deleted} contacts deleted successfully", deleted_count=deleted)


@router.get("/{contact_id}", response_model=ContactResponse)
def get_contact(
    contact_id: int,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> ContactResponse:
    return ContactResponse.model_validate(service.get_contact(contact_id))


@router.patch("/{contact_id}/status", response_model=ContactResponse)
def update_contact_status(
    contact_id: int,
    payload: ContactStatusUpdate,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> ContactResponse:
    return ContactResponse.model_validate(service.update_contact_status(contact_id, payload.status))


@router.post("/{contact_id}/reply", response_model=ContactResponse)
def reply_to_contact(
    contact_id: int,
    message: str = Form(""),
    attachments: list[UploadFile] | None = File(None),
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> ContactResponse:
    contact = service.reply_to_contact(contact_id, message, read_uploads(attachments), admin)
    return ContactResponse.model_validate(contact)


@router.delete("/{contact_id}", response_model=MessageResponse)
def delete_contact(
    contact_id: int,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> MessageResponse:
    service.delete_contact(contact_id)
    return MessageResponse(message="Contact deleted successfully")
