from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import ConfigDict, Field

from intakedesk.db.models import AdminUser, JobApplication, StoredFile
from intakedesk.types import ApplicationStatus, ContactStatus, Page, UploadRejection, WireModel

ItemT = TypeVar("ItemT")


class RecordModel(WireModel):
    model_config = ConfigDict(from_attributes=True)


class LoginRequest(WireModel):
    username: str = Field(min_length=1, max_length=120)
    password: str = Field(min_length=6, max_length=128)


class AdminResponse(RecordModel):
    id: int
    username: str
    email: str
    role: str
    is_active: bool = True
    last_login: datetime | None = None


class LoginResponse(WireModel):
    token: str
    admin: AdminResponse

    @classmethod
    def build(cls, token: str, admin: AdminUser) -> LoginResponse:
        return cls(token=token, admin=AdminResponse.model_validate(admin))


class MessageResponse(WireModel):
    success: bool = True
    message: str


class ContactStatusUpdate(WireModel):
    status: ContactStatus


class ApplicationStatusUpdate(WireModel):
    status: ApplicationStatus
    notes: str | None = None


class BulkDeleteRequest(WireModel):
    ids: list[int] = Field(min_length=1)


class DeleteResponse(WireModel):
    success: bool = True
    message: str
    deleted_count: int


class ContactSubmitResponse(WireModel):
    success: bool = True
    message: str
    contact_id: int


class ApplicationSubmitResponse(WireModel):
    success: bool = True
    message: str
    application_id: int
    warnings: list[str] = Field(default_factory=list)


class AttachmentInfo(RecordModel):
    id: int
    filename: str
    original_name: str
    content_type: str
    size_bytes: int


class ReplyResponse(RecordModel):
    id: int
    message: str
    sent_by: str
    sent_at: datetime
    attachments: list[AttachmentInfo] = Field(default_factory=list)


class ContactResponse(RecordModel):
    id: int
    name: str
    email: str
    subject: str
    message: str
    phone: str | None = None
    status: str
    replies: list[ReplyResponse] = Field(default_factory=list)
    last_replied_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ResumeInfo(WireModel):
    filename: str
    original_name: str
    content_type: str
    size_bytes: int


class JobApplicationResponse(RecordModel):
    id: int
    full_name: str
    email: str
    phone: str
    position: str
    experience: str
    cover_letter: str | None = None
    resume: ResumeInfo | None = None
    status: str
    notes: str | None = None
    replies: list[ReplyResponse] = Field(default_factory=list)
    last_replied_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, application: JobApplication) -> JobApplicationResponse:
        resume = None
        if application.has_resume:
            resume = ResumeInfo(
                filename=application.resume_filename or "",
                original_name=application.resume_original_name or application.resume_filename or "",
                content_type=application.resume_content_type or "application/pdf",
                size_bytes=application.resume_size or 0,
            )
        return cls(
            id=application.id,
            full_name=application.full_name,
            email=application.email,
            phone=application.phone,
            position=application.position,
            experience=application.experience,
            cover_letter=application.cover_letter,
            resume=resume,
            status=application.status,
            notes=application.notes,
            replies=[ReplyResponse.model_validate(reply) for reply in application.replies],
            last_replied_at=application.last_replied_at,
            created_at=application.created_at,
            updated_at=application.updated_at,
        )


class StoredFileResponse(RecordModel):
    id: int
    filename: str
    original_name: str
    content_type: str
    size_bytes: int
    uploaded_by: str
    uploaded_at: datetime
    tags: list[str] = Field(default_factory=list)
    description: str = ""


class ResumeFileResponse(WireModel):
    id: int
    filename: str
    original_name: str
    content_type: str
    size_bytes: int
    uploaded_by: str
    applicant_name: str
    position: str
    uploaded_at: datetime
    type: str = "resume"
    source: str = "job_application"

    @classmethod
    def from_record(cls, application: JobApplication) -> ResumeFileResponse:
        filename = application.resume_filename or f"{'_'.join(application.full_name.split())}_resume.pdf"
        return cls(
            id=application.id,
            filename=filename,
            original_name=application.resume_original_name or filename,
            content_type=application.resume_content_type or "application/pdf",
            size_bytes=application.resume_size or 0,
            uploaded_by=application.email,
            applicant_name=application.full_name,
            position=application.position,
            uploaded_at=application.created_at,
        )


class UploadErrorItem(WireModel):
    filename: str
    reason: str
    size_kb: float
    limit_kb: float
    message: str

    @classmethod
    def from_rejection(cls, rejection: UploadRejection) -> UploadErrorItem:
        return cls(
            filename=rejection.filename,
            reason=rejection.reason,
            size_kb=rejection.size_kb,
            limit_kb=rejection.limit_kb,
            message=rejection.message,
        )


class FileUploadResponse(WireModel):
    success: bool = True
    message: str
    file: StoredFileResponse


class MultiFileUploadResponse(WireModel):
    success: bool
    message: str
    uploaded_files: list[StoredFileResponse]
    errors: list[UploadErrorItem] = Field(default_factory=list)


class Pagination(WireModel):
    page: int
    limit: int
    total: int
    pages: int


class PageResponse(WireModel, Generic[ItemT]):
    items: list[ItemT]
    pagination: Pagination

    @classmethod
    def of(cls, page: Page, items: list[ItemT]) -> PageResponse[ItemT]:
        return cls(
            items=items,
            pagination=Pagination(page=page.page, limit=page.limit, total=page.total, pages=page.pages),
        )


def stored_file_page(page: Page[StoredFile]) -> PageResponse[StoredFileResponse]:
    return PageResponse[StoredFileResponse].of(page, [StoredFileResponse.model_validate(row) for row in page.items])


class FileTotals(WireModel):
    total_files: int
    total_size: int
    avg_size: float


class TypeTotals(WireModel):
    content_type: str
    count: int
    total_size: int


class OwnerTotals(WireModel):
    uploaded_by: str
    file_count: int
    total_size: int


class StorageStatsResponse(WireModel):
    overall: FileTotals
    by_type: list[TypeTotals]
    by_owner: list[OwnerTotals] | None = None


class DashboardCounts(WireModel):
    total_contacts: int
    new_contacts: int
    total_applications: int
    pending_applications: int


class RecentActivity(WireModel):
    contacts: list[ContactResponse]
    applications: list[JobApplicationResponse]


class DailyCount(WireModel):
    date: str
    count: int


class DashboardCharts(WireModel):
    daily_contacts: list[DailyCount]
    daily_applications: list[DailyCount]


class DashboardResponse(WireModel):
    stats: DashboardCounts
    recent_activity: RecentActivity
    charts: DashboardCharts


class HealthResponse(WireModel):
    status: str = "OK"
    message: str = "Server is running"
