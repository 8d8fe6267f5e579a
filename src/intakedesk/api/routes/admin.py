from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from intakedesk.api.deps import get_file_store, get_submission_service, require_super_admin
from intakedesk.api.routes.files import download_response
from intakedesk.api.schemas import (
    BulkDeleteRequest,
    ContactResponse,
    DashboardResponse,
    DeleteResponse,
    JobApplicationResponse,
    MessageResponse,
    PageResponse,
    StorageStatsResponse,
    StoredFileResponse,
    stored_file_page,
)
from intakedesk.core.file_store import FileStore
from intakedesk.core.submissions import SubmissionService
from intakedesk.types import AdminContext

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard/stats", response_model=DashboardResponse)
def dashboard_stats(
    admin: AdminContext = Depends(require_super_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> DashboardResponse:
    stats = service.dashboard_stats()
    return DashboardResponse.model_validate(
        {
            "stats": stats["stats"],
            "recent_activity": {
                "contacts": [ContactResponse.model_validate(row) for row in stats["recent_contacts"]],
                "applications": [JobApplicationResponse.from_record(row) for row in stats["recent_applications"]],
            },
            "charts": stats["charts"],
        }
    )


@router.get("/contacts", response_model=PageResponse[ContactResponse])
def list_contacts(
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
    admin: AdminContext = Depends(require_super_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> PageResponse[ContactResponse]:
    result = service.list_contacts(status=status, page=page, page_size=limit)
    return PageResponse[ContactResponse].of(result, [ContactResponse.model_validate(row) for row in result.items])


@router.get("/applications", response_model=PageResponse[JobApplicationResponse])
def list_applications(
    status: str | None = None,
    position: str | None = None,
    page: int = 1,
    limit: int = 10,
    admin: AdminContext = Depends(require_super_admin),
    service: SubmissionService = Depends(get_submission_service),
) -> PageResponse[JobApplicationResponse]:
    result = service.list_applications(status=status, position=position, page=page, page_size=limit)
    return PageResponse[JobApplicationResponse].of(
        result, [JobApplicationResponse.from_record(row) for row in result.items]
    )


@router.get("/files", response_model=PageResponse[StoredFileResponse])
def list_files(
    search: str | None = None,
    user: str | None = None,
    page: int = 1,
    limit: int = 20,
    admin: AdminContext = Depends(require_super_admin),
    store: FileStore = Depends(get_file_store),
) -> PageResponse[StoredFileResponse]:
    if search and search.strip():
        return stored_file_page(store.search(search, owner=user or None, page=page, page_size=limit))
    return stored_file_page(store.list_all(page, limit, owner=user or None))


@router.get("/files/stats", response_model=StorageStatsResponse)
def file_stats(
    admin: AdminContext = Depends(require_super_admin),
    store: FileStore = Depends(get_file_store),
) -> StorageStatsResponse:
    return StorageStatsResponse.model_validate(store.storage_stats())


@router.post("/files/bulk-delete", response_model=DeleteResponse)
def bulk_delete_files(
    payload: BulkDeleteRequest,
    admin: AdminContext = Depends(require_super_admin),
    store: FileStore = Depends(get_file_store),
) -> DeleteResponse:
    deleted = store.bulk_delete(payload.ids)
    return DeleteResponse(message=f"{deleted} files deleted successfully", deleted_count=deleted)


@router.get("/files/{file_id}/download")
def download_file(
    file_id: int,
    admin: AdminContext = Depends(require_super_admin),
    store: FileStore = Depends(get_file_store),
) -> Response:
    record = store.get(file_id)
    return download_response(record.data, record.original_name, record.content_type, record.size_bytes)


@router.delete("/files/{file_id}", response_model=MessageResponse)
def delete_file(
    file_id: int,
    admin: AdminContext = Depends(require_super_admin),
    store: FileStore = Depends(get_file_store),
) -> MessageResponse:
    record = store.admin_delete(file_id)
    return MessageResponse(message=f"File {record.original_name} deleted successfully")
