from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intakedesk.db.base import Base, TimestampMixin, utcnow
from intakedesk.types import MAX_ATTACHMENT_BYTES


class AdminUser(TimestampMixin, Base):
    __tablename__ = "admin_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(40), default="admin", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ContactMessage(TimestampMixin, Base):
    __tablename__ = "contact_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="new", nullable=False, index=True)
    last_replied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    replies: Mapped[list[Reply]] = relationship(
        back_populates="contact",
        cascade="all, delete-orphan",
        order_by="Reply.id",
    )


class JobApplication(TimestampMixin, Base):
    __tablename__ = "job_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(40), nullable=False)
    position: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    experience: Mapped[str] = mapped_column(String(200), nullable=False)
    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    resume_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resume_original_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    resume_content_type: Mapped[str | None] = mapped_column(String(120), nullable=True)
    resume_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    resume_data: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True, deferred=True)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_replied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    replies: Mapped[list[Reply]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="Reply.id",
    )

    __table_args__ = (
        CheckConstraint(f"resume_size IS NULL OR resume_size <= {MAX_ATTACHMENT_BYTES}", name="ck_resume_size"),
    )

    @property
    def has_resume(self) -> bool:
        return self.resume_size is not None


class Reply(Base):
    __tablename__ = "replies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    contact_id: Mapped[int | None] = mapped_column(
        ForeignKey("contact_messages.id", ondelete="CASCADE"), nullable=True, index=True
    )
    application_id: Mapped[int | None] = mapped_column(
        ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=True, index=True
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    sent_by: Mapped[str] = mapped_column(String(255), nullable=False)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    contact: Mapped[ContactMessage | None] = relationship(back_populates="replies")
    application: Mapped[JobApplication | None] = relationship(back_populates="replies")
    attachments: Mapped[list[ReplyAttachment]] = relationship(
        back_populates="reply",
        cascade="all, delete-orphan",
        order_by="ReplyAttachment.id",
    )

    __table_args__ = (
        CheckConstraint(
            "(contact_id IS NULL) <> (application_id IS NULL)",
            name="ck_reply_single_parent",
        ),
    )


class ReplyAttachment(Base):
    __tablename__ = "reply_attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reply_id: Mapped[int] = mapped_column(ForeignKey("replies.id", ondelete="CASCADE"), index=True)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(120), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False, deferred=True)

    reply: Mapped[Reply] = relationship(back_populates="attachments")

    __table_args__ = (
        CheckConstraint(f"size_bytes <= {MAX_ATTACHMENT_BYTES}", name="ck_reply_attachment_size"),
    )


class StoredFile(Base):
    __tablename__ = "stored_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    filename: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False, deferred=True)
    uploaded_by: Mapped[str] = mapped_column(String(255), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)

    tag_rows: Mapped[list[StoredFileTag]] = relationship(
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StoredFileTag.position",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_stored_files_owner_uploaded", "uploaded_by", "uploaded_at"),
        CheckConstraint(f"size_bytes <= {MAX_ATTACHMENT_BYTES}", name="ck_stored_file_size"),
    )

    @property
    def tags(self) -> list[str]:
        return [row.value for row in self.tag_rows]


class StoredFileTag(Base):
    __tablename__ = "stored_file_tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    file_id: Mapped[int] = mapped_column(ForeignKey("stored_files.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    file: Mapped[StoredFile] = relationship(back_populates="tag_rows")
