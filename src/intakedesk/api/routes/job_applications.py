from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from intakedesk.api.deps import get_submission_service, read_uploads, require_admin, validate_form
from intakedesk.api.schemas import (
    ApplicationStatusUpdate,
    ApplicationSubmitResponse,
    BulkDeleteRequest,
    DeleteResponse,
    JobApplicationResponse,
    MessageResponse,
    PageResponse,
)
from intakedesk.core.submissions import SubmissionService
from intakedesk.types import AdminContext, JobApplicationSubmission

router = APIRouter(prefix="/job-applications", tags=["job-applications"])


@router.post("/submit", response_model=ApplicationSubmitResponse, status_code=201)
def submit_application(
    full_name: str = Form("", alias="fullName"),
    email: str = Form(""),
    phone: str = Form(""),
    position: str = Form(""),
    experience: str = Form(""),
    cover_letter: str | None = Form(None, alias="coverLetter"),
    resume: UploadFile | None = File(None),
    service: SubmissionService = Depends(get_submission_service),
) -> ApplicationSubmitResponse:
    payload = validate_form(
        JobApplicationSubmission,
        {
            "fullName": full_name,
            "email": email,
            "phone": phone,
            "position": position,
            "experience": experience,
            "coverLetter": cover_letter,
        },
    )
    uploads = read_uploads([resume] if resume is not None else None)
    result = service.submit_job_application(payload, uploads[0] if uploads else None)
    return ApplicationSubmitResponse(
        message="Your application has been submitted successfully!",
        application_id=result.record.id,
        warnings=result.warnings,
    )


@router.get("/all", response_model=PageResponse[JobApplicationResponse])
def list_applications(
    status: str | None = None,
    position: str | None = None,
    page: int = 1,
    limit: int = 10,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> PageResponse[JobApplicationResponse]:
    result = service.list_applications(status=status, position=position, page=page, page_size=limit)
    return PageResponse[JobApplicationResponse].of(
        result, [JobApplicationResponse.from_record(row) for row in result.items]
    )


@router.post("/delete-multiple", response_model=DeleteResponse)
def delete_applications(
    payload: BulkDeleteRequest,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> DeleteResponse:
    deleted = service.delete_applications(payload.ids)
    return DeleteResponse(message=f"{deleted} applications deleted successfully", deleted_count=deleted)


@router.get("/{application_id}", response_model=JobApplicationResponse)
def get_application(
    application_id: int,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> JobApplicationResponse:
    return JobApplicationResponse.from_record(service.get_application(application_id))


@router.patch("/{application_id}/status", response_model=JobApplicationResponse)
def update_application_status(
    application_id: int,
    payload: ApplicationStatusUpdate,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> JobApplicationResponse:
    application = service.update_application_status(application_id, payload.status, payload.notes)
    return JobApplicationResponse.from_record(application)


@router.post("/{application_id}/reply", response_model=JobApplicationResponse)
def reply_to_application(
    application_id: int,
    message: str = Form(""),
    status: str | None = Form(None),
    attachments: list[UploadFile] | None = File(None),
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> JobApplicationResponse:
    application = service.reply_to_application(
        application_id,
        message,
        read_uploads(attachments),
        admin,
        status=status or None,
    )
    return JobApplicationResponse.from_record(application)


@router.delete("/{application_id}", response_model=MessageResponse)
def delete_application(
    application_id: int,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> MessageResponse:
    service.delete_application(application_id)
    return MessageResponse(message="Job application and resume deleted successfully")
