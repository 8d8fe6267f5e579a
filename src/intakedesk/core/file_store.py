from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy.orm import Session

from intakedesk.core.upload_filter import ADMIN_POLICY, UploadFilter, UploadPolicy
from intakedesk.db.models import StoredFile
from intakedesk.db.repositories import Repository
from intakedesk.errors import NotFoundError, UploadRejectedError, ValidationError
from intakedesk.types import Attachment, Page, UploadRejection, clamp_page

logger = logging.getLogger(__name__)


def normalize_tags(tags: Sequence[str] | None) -> list[str]:
    seen: list[str] = []
    for tag in tags or ():
        value = str(tag).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


class FileStore:
    """Standalone file storage for the admin file-management view.

    Listing and search never load the binary payload; only :meth:`get` does.
    """

    def __init__(self, session: Session, *, policy: UploadPolicy = ADMIN_POLICY):
        self.session = session
        self.repo = Repository(session)
        self.filter = UploadFilter(policy)

    def put(
        self,
        upload: Attachment,
        owner: str,
        *,
        tags: Sequence[str] | None = None,
        description: str = "",
    ) -> StoredFile:
        rejection = self.filter.check(upload)
        if rejection is not None:
            raise UploadRejectedError([rejection])

        record = self.repo.create_file(
            upload,
            uploaded_by=owner,
            tags=normalize_tags(tags),
            description=(description or "").strip(),
        )
        logger.info("Stored file id=%s name=%s size=%d owner=%s", record.id, record.original_name, record.size_bytes, owner)
        return record

    def put_many(
        self,
        uploads: Sequence[Attachment],
        owner: str,
        *,
        tags: Sequence[str] | None = None,
        description: str = "",
    ) -> tuple[list[StoredFile], list[UploadRejection]]:
        checked = self.filter.check_many(uploads)
        stored = [self.put(item, owner, tags=tags, description=description) for item in checked.accepted]
        return stored, checked.rejected

    def get(self, file_id: int) -> StoredFile:
        record = self.repo.get_file(file_id, with_data=True)
        if record is None:
            raise NotFoundError("File not found")
        return record

    def get_metadata(self, file_id: int) -> StoredFile:
        record = self.repo.get_file(file_id, with_data=False)
        if record is None:
            raise NotFoundError("File not found")
        return record

    def list_by_owner(self, owner: str, page: int | None = 1, page_size: int | None = 10) -> Page[StoredFile]:
        return self._page(owner=owner, page=page, page_size=page_size)

    def list_all(
        self,
        page: int | None = 1,
        page_size: int | None = 20,
        *,
        owner: str | None = None,
    ) -> Page[StoredFile]:
        return self._page(owner=owner, page=page, page_size=page_size, default_limit=20)

    def search(
        self,
        query: str,
        owner: str | None = None,
        page: int | None = 1,
        page_size: int | None = 10,
    ) -> Page[StoredFile]:
        query = (query or "").strip()
        if not query:
            raise ValidationError.for_field("q", "Search query is required")
        return self._page(owner=owner, query=query, page=page, page_size=page_size)

    def delete(self, file_id: int, owner: str) -> None:
        # A file owned by someone else is reported exactly like a missing one.
        if not self.repo.delete_owned_file(file_id, owner):
            raise NotFoundError("File not found or you do not have permission to delete it")
        logger.info("Deleted file id=%s owner=%s", file_id, owner)

    def admin_delete(self, file_id: int) -> StoredFile:
        record = self.get_metadata(file_id)
        self.repo.delete_files([file_id])
        logger.info("Admin deleted file id=%s name=%s", file_id, record.original_name)
        return record

    def bulk_delete(self, file_ids: Sequence[int], *, owner: str | None = None) -> int:
        deleted = self.repo.delete_files(list(dict.fromkeys(file_ids)), uploaded_by=owner)
        logger.info("Bulk deleted %d of %d requested file(s)", deleted, len(file_ids))
        return deleted

    def storage_stats(self, owner: str | None = None) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "overall": self.repo.file_totals(owner),
            "by_type": self.repo.file_totals_by_type(owner),
        }
        if owner is None:
            stats["by_owner"] = self.repo.file_totals_by_owner()
        return stats

    def _page(
        self,
        *,
        owner: str | None,
        page: int | None,
        page_size: int | None,
        query: str | None = None,
        default_limit: int = 10,
    ) -> Page[StoredFile]:
        page, limit = clamp_page(page, page_size, default_limit=default_limit)
        rows, total = self.repo.list_files(
            uploaded_by=owner,
            query=query,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return Page(items=rows, page=page, limit=limit, total=total)
