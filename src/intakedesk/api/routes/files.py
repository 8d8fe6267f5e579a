from __future__ import annotations

import json
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response

from intakedesk.api.deps import get_file_store, get_submission_service, read_uploads, require_admin
from intakedesk.api.schemas import (
    BulkDeleteRequest,
    DeleteResponse,
    FileUploadResponse,
    MessageResponse,
    MultiFileUploadResponse,
    PageResponse,
    ResumeFileResponse,
    StorageStatsResponse,
    StoredFileResponse,
    UploadErrorItem,
    stored_file_page,
)
from intakedesk.core.file_store import FileStore
from intakedesk.core.submissions import SubmissionService
from intakedesk.errors import UploadRejectedError, ValidationError
from intakedesk.types import AdminContext

router = APIRouter(prefix="/files", tags=["files"])


def parse_tags(raw: str | None) -> list[str]:
    """Accept a JSON array (what the dashboard sends) or a comma separated string."""
    if not raw or not raw.strip():
        return []
    raw = raw.strip()
    if raw.startswith("["):
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError.for_field("tags", "tags must be a JSON array of strings") from exc
        if not isinstance(value, list):
            raise ValidationError.for_field("tags", "tags must be a JSON array of strings")
        return [str(item) for item in value]
    return raw.split(",")


def download_response(data: bytes, filename: str, content_type: str, size: int) -> Response:
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
    disposition = f'attachment; filename="{fallback}"'
    if fallback != filename:
        disposition += f"; filename*=UTF-8''{quote(filename)}"
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": disposition, "Content-Length": str(size)},
    )


@router.post("/upload", response_model=FileUploadResponse, status_code=201)
def upload_file(
    file: UploadFile | None = File(None),
    tags: str | None = Form(None),
    description: str = Form(""),
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> FileUploadResponse:
    uploads = read_uploads([file] if file is not None else None)
    if not uploads:
        raise ValidationError.for_field("file", "No file uploaded")
    record = store.put(uploads[0], admin.owner, tags=parse_tags(tags), description=description)
    return FileUploadResponse(message="File uploaded successfully", file=StoredFileResponse.model_validate(record))


@router.post("/upload-multiple", response_model=MultiFileUploadResponse, status_code=201)
def upload_files(
    files: list[UploadFile] | None = File(None),
    tags: str | None = Form(None),
    description: str = Form(""),
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> MultiFileUploadResponse:
    uploads = read_uploads(files)
    if not uploads:
        raise ValidationError.for_field("files", "No files uploaded")

    stored, rejected = store.put_many(uploads, admin.owner, tags=parse_tags(tags), description=description)
    if not stored:
        raise UploadRejectedError(rejected)
    return MultiFileUploadResponse(
        success=not rejected,
        message="Files uploaded successfully" if not rejected else "Some files failed to upload",
        uploaded_files=[StoredFileResponse.model_validate(row) for row in stored],
        errors=[UploadErrorItem.from_rejection(item) for item in rejected],
    )


@router.get("/my-files", response_model=PageResponse[StoredFileResponse])
def my_files(
    page: int = 1,
    limit: int = 10,
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> PageResponse[StoredFileResponse]:
    return stored_file_page(store.list_by_owner(admin.owner, page, limit))


@router.get("/search", response_model=PageResponse[StoredFileResponse])
def search_files(
    q: str = "",
    page: int = 1,
    limit: int = 10,
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> PageResponse[StoredFileResponse]:
    return stored_file_page(store.search(q, admin.owner, page, limit))


@router.get("/stats/storage", response_model=StorageStatsResponse)
def storage_stats(
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> StorageStatsResponse:
    return StorageStatsResponse.model_validate(store.storage_stats(admin.owner))


@router.get("/resumes", response_model=PageResponse[ResumeFileResponse])
def list_resumes(
    page: int = 1,
    limit: int = 10,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> PageResponse[ResumeFileResponse]:
    result = service.list_resumes(page, limit)
    return PageResponse[ResumeFileResponse].of(result, [ResumeFileResponse.from_record(row) for row in result.items])


@router.get("/resume/{application_id}")
def download_resume(
    application_id: int,
    admin: AdminContext = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> Response:
    application = service.get_resume(application_id)
    return download_response(
        application.resume_data or b"",
        application.resume_original_name or application.resume_filename or "resume.pdf",
        application.resume_content_type or "application/pdf",
        application.resume_size or 0,
    )


@router.get("/info/{file_id}", response_model=StoredFileResponse)
def file_info(
    file_id: int,
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> StoredFileResponse:
    return StoredFileResponse.model_validate(store.get_metadata(file_id))


@router.get("/download/{file_id}")
def download_file(
    file_id: int,
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> Response:
    record = store.get(file_id)
    return download_response(record.data, record.original_name, record.content_type, record.size_bytes)


@router.post("/bulk-delete", response_model=DeleteResponse)
def bulk_delete_own_files(
    payload: BulkDeleteRequest,
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> DeleteResponse:
    deleted = store.bulk_delete(payload.ids, owner=admin.owner)
    return DeleteResponse(message=f"{deleted} files deleted successfully", deleted_count=deleted)


@router.delete("/{file_id}", response_model=MessageResponse)
def delete_file(
    file_id: int,
    admin: AdminContext = Depends(require_admin),
    store: FileStore = Depends(get_file_store),
) -> MessageResponse:
    store.delete(file_id, admin.owner)
    return MessageResponse(message="File deleted successfully")
