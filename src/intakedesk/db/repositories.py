from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from pathlib import PurePath
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session, selectinload, undefer

from intakedesk.db.base import utcnow
from intakedesk.db.models import (
    AdminUser,
    ContactMessage,
    JobApplication,
    Reply,
    ReplyAttachment,
    StoredFile,
    StoredFileTag,
)
from intakedesk.types import Attachment


def unique_storage_name(original_name: str) -> str:
    suffix = PurePath(original_name).suffix.lower()
    return f"{uuid.uuid4().hex}{suffix}"


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class Repository:
    def __init__(self, session: Session):
        self.session = session

    # admins

    def create_admin(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        role: str = "admin",
    ) -> AdminUser:
        admin = AdminUser(username=username, email=email, password_hash=password_hash, role=role)
        self.session.add(admin)
        self.session.commit()
        self.session.refresh(admin)
        return admin

    def get_admin(self, admin_id: int) -> AdminUser | None:
        return self.session.get(AdminUser, admin_id)

    def get_active_admin_by_username(self, username: str) -> AdminUser | None:
        statement = select(AdminUser).where(AdminUser.username == username, AdminUser.is_active.is_(True))
        return self.session.scalar(statement)

    def count_admins(self) -> int:
        return self.session.scalar(select(func.count()).select_from(AdminUser)) or 0

    def list_admins(self) -> list[AdminUser]:
        return list(self.session.scalars(select(AdminUser).order_by(AdminUser.id.asc())).all())

    def touch_last_login(self, admin: AdminUser) -> AdminUser:
        admin.last_login = utcnow()
        self.session.commit()
        self.session.refresh(admin)
        return admin

    # contacts

    def create_contact(self, values: dict[str, Any]) -> ContactMessage:
        contact = ContactMessage(**values)
        self.session.add(contact)
        self.session.commit()
        self.session.refresh(contact)
        return contact

    def get_contact(self, contact_id: int) -> ContactMessage | None:
        statement = (
            select(ContactMessage)
            .where(ContactMessage.id == contact_id)
            .options(selectinload(ContactMessage.replies).selectinload(Reply.attachments))
        )
        return self.session.scalar(statement)

    def list_contacts(
        self,
        *,
        status: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ContactMessage], int]:
        conditions = [ContactMessage.status == status] if status else []
        statement = (
            select(ContactMessage)
            .where(*conditions)
            .options(selectinload(ContactMessage.replies).selectinload(Reply.attachments))
            .order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
            .offset(offset)
        )
        if limit is not None:
            statement = statement.limit(limit)
        total = self.session.scalar(select(func.count()).select_from(ContactMessage).where(*conditions)) or 0
        return list(self.session.scalars(statement).all()), total

    def count_contacts(self, status: str | None = None) -> int:
        conditions = [ContactMessage.status == status] if status else []
        return self.session.scalar(select(func.count()).select_from(ContactMessage).where(*conditions)) or 0

    def delete_contacts(self, contact_ids: Sequence[int]) -> int:
        if not contact_ids:
            return 0
        rows = self.session.scalars(select(ContactMessage).where(ContactMessage.id.in_(contact_ids))).all()
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        return len(rows)

    # job applications

    def create_application(self, values: dict[str, Any], resume: Attachment | None = None) -> JobApplication:
        application = JobApplication(**values)
        if resume is not None:
            application.resume_filename = unique_storage_name(resume.filename)
            application.resume_original_name = resume.filename
            application.resume_content_type = resume.content_type
            application.resume_size = resume.size_bytes
            application.resume_data = resume.data
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get_application(self, application_id: int, *, with_resume: bool = False) -> JobApplication | None:
        options: list[Any] = [selectinload(JobApplication.replies).selectinload(Reply.attachments)]
        if with_resume:
            options.append(undefer(JobApplication.resume_data))
        statement = select(JobApplication).where(JobApplication.id == application_id).options(*options)
        return self.session.scalar(statement)

    def list_applications(
        self,
        *,
        status: str | None = None,
        position: str | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[JobApplication], int]:
        conditions = []
        if status:
            conditions.append(JobApplication.status == status)
        if position:
            conditions.append(JobApplication.position == position)
        statement = (
            select(JobApplication)
            .where(*conditions)
            .options(selectinload(JobApplication.replies).selectinload(Reply.attachments))
            .order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
            .offset(offset)
        )
        if limit is not None:
            statement = statement.limit(limit)
        total = self.session.scalar(select(func.count()).select_from(JobApplication).where(*conditions)) or 0
        return list(self.session.scalars(statement).all()), total

    def count_applications(self, status: str | None = None) -> int:
        conditions = [JobApplication.status == status] if status else []
        return self.session.scalar(select(func.count()).select_from(JobApplication).where(*conditions)) or 0

    def list_resumes(self, *, offset: int, limit: int) -> tuple[list[JobApplication], int]:
        condition = JobApplication.resume_size.is_not(None)
        statement = (
            select(JobApplication)
            .where(condition)
            .order_by(JobApplication.created_at.desc(), JobApplication.id.desc())
            .offset(offset)
            .limit(limit)
        )
        total = self.session.scalar(select(func.count()).select_from(JobApplication).where(condition)) or 0
        return list(self.session.scalars(statement).all()), total

    def delete_applications(self, application_ids: Sequence[int]) -> int:
        if not application_ids:
            return 0
        rows = self.session.scalars(select(JobApplication).where(JobApplication.id.in_(application_ids))).all()
        for row in rows:
            self.session.delete(row)
        self.session.commit()
        return len(rows)

    def created_at_since(self, model: type[ContactMessage] | type[JobApplication], since: datetime) -> list[datetime]:
        statement = select(model.created_at).where(model.created_at >= since).order_by(model.created_at.asc())
        return list(self.session.scalars(statement).all())

    # replies

    def append_reply(
        self,
        parent: ContactMessage | JobApplication,
        *,
        message: str,
        sent_by: str,
        attachments: Sequence[Attachment],
        sent_at: datetime,
        changes: dict[str, Any],
    ) -> Reply:
        reply = Reply(message=message, sent_by=sent_by, sent_at=sent_at)
        for item in attachments:
            reply.attachments.append(
                ReplyAttachment(
                    filename=unique_storage_name(item.filename),
                    original_name=item.filename,
                    content_type=item.content_type,
                    size_bytes=item.size_bytes,
                    data=item.data,
                )
            )
        parent.replies.append(reply)
        for key, value in changes.items():
            setattr(parent, key, value)
        self.session.commit()
        self.session.refresh(parent)
        return reply

    def update_fields(
        self, record: ContactMessage | JobApplication, changes: dict[str, Any]
    ) -> ContactMessage | JobApplication:
        for key, value in changes.items():
            setattr(record, key, value)
        self.session.commit()
        self.session.refresh(record)
        return record

    # stored files

    def create_file(
        self,
        upload: Attachment,
        *,
        uploaded_by: str,
        tags: Sequence[str] = (),
        description: str = "",
    ) -> StoredFile:
        record = StoredFile(
            filename=unique_storage_name(upload.filename),
            original_name=upload.filename,
            content_type=upload.content_type,
            size_bytes=upload.size_bytes,
            data=upload.data,
            uploaded_by=uploaded_by,
            tag_rows=[StoredFileTag(position=index, value=tag) for index, tag in enumerate(tags)],
            description=description,
        )
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get_file(self, file_id: int, *, with_data: bool = True) -> StoredFile | None:
        options = [undefer(StoredFile.data)] if with_data else []
        return self.session.get(StoredFile, file_id, options=options)

    def list_files(
        self,
        *,
        uploaded_by: str | None = None,
        query: str | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> tuple[list[StoredFile], int]:
        conditions = []
        if uploaded_by:
            conditions.append(StoredFile.uploaded_by == uploaded_by)
        if query:
            pattern = _like_pattern(query)
            conditions.append(
                or_(
                    StoredFile.original_name.ilike(pattern, escape="\\"),
                    StoredFile.description.ilike(pattern, escape="\\"),
                    StoredFile.tag_rows.any(StoredFileTag.value.ilike(pattern, escape="\\")),
                )
            )
        statement = (
            select(StoredFile)
            .where(*conditions)
            .order_by(StoredFile.uploaded_at.desc(), StoredFile.id.desc())
            .offset(offset)
            .limit(limit)
        )
        total = self.session.scalar(select(func.count()).select_from(StoredFile).where(*conditions)) or 0
        return list(self.session.scalars(statement).all()), total

    def delete_owned_file(self, file_id: int, uploaded_by: str) -> bool:
        result = self.session.execute(
            delete(StoredFile).where(StoredFile.id == file_id, StoredFile.uploaded_by == uploaded_by)
        )
        self.session.commit()
        return result.rowcount > 0

    def delete_files(self, file_ids: Sequence[int], *, uploaded_by: str | None = None) -> int:
        if not file_ids:
            return 0
        statement = delete(StoredFile).where(StoredFile.id.in_(file_ids))
        if uploaded_by is not None:
            statement = statement.where(StoredFile.uploaded_by == uploaded_by)
        result = self.session.execute(statement)
        self.session.commit()
        return result.rowcount

    def file_totals(self, uploaded_by: str | None = None) -> dict[str, float]:
        conditions = [StoredFile.uploaded_by == uploaded_by] if uploaded_by else []
        row = self.session.execute(
            select(
                func.count(StoredFile.id),
                func.coalesce(func.sum(StoredFile.size_bytes), 0),
                func.coalesce(func.avg(StoredFile.size_bytes), 0),
            ).where(*conditions)
        ).one()
        return {"total_files": int(row[0]), "total_size": int(row[1]), "avg_size": float(row[2])}

    def file_totals_by_type(self, uploaded_by: str | None = None) -> list[dict[str, Any]]:
        conditions = [StoredFile.uploaded_by == uploaded_by] if uploaded_by else []
        count = func.count(StoredFile.id)
        rows = self.session.execute(
            select(StoredFile.content_type, count, func.sum(StoredFile.size_bytes))
            .where(*conditions)
            .group_by(StoredFile.content_type)
            .order_by(count.desc(), StoredFile.content_type.asc())
        ).all()
        return [
            {"content_type": content_type, "count": int(total), "total_size": int(size or 0)}
            for content_type, total, size in rows
        ]

    def file_totals_by_owner(self, limit: int = 10) -> list[dict[str, Any]]:
        count = func.count(StoredFile.id)
        rows = self.session.execute(
            select(StoredFile.uploaded_by, count, func.sum(StoredFile.size_bytes))
            .group_by(StoredFile.uploaded_by)
            .order_by(count.desc(), StoredFile.uploaded_by.asc())
            .limit(limit)
        ).all()
        return [
            {"uploaded_by": owner, "file_count": int(total), "total_size": int(size or 0)}
            for owner, total, size in rows
        ]
