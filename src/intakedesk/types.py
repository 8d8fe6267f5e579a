from __future__ import annotations

import re
from dataclasses import dataclass, field
from math import ceil
from typing import Generic, Literal, TypeVar, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

ContactStatus = Literal["new", "read", "replied", "archived"]
ApplicationStatus = Literal["pending", "reviewing", "shortlisted", "rejected", "hired"]
RejectReason = Literal["type-not-allowed", "size-exceeded", "too-many-files"]

CONTACT_STATUSES: tuple[str, ...] = get_args(ContactStatus)
APPLICATION_STATUSES: tuple[str, ...] = get_args(ApplicationStatus)

KIB = 1024
MAX_ATTACHMENT_BYTES = 200 * KIB
MAX_FILES_PER_REQUEST = 5
MIN_REPLY_LENGTH = 10
MAX_PAGE_SIZE = 50

_PHONE_ALLOWED = re.compile(r"^\+?[0-9\s\-().]+$")

T = TypeVar("T")


def is_valid_phone(value: str) -> bool:
    if not _PHONE_ALLOWED.match(value):
        return False
    digits = sum(ch.isdigit() for ch in value)
    return 7 <= digits <= 15


@dataclass(slots=True)
class Attachment:
    """A file in transit: an upload being checked, or a mail attachment.

    ``declared_size`` is the size reported by the multipart parser when only a
    prefix of an oversized upload was read; such a file never passes the
    upload filter, so stored payloads are always complete.
    """

    filename: str
    content_type: str
    data: bytes
    declared_size: int | None = None

    @property
    def size_bytes(self) -> int:
        if self.declared_size is not None:
            return self.declared_size
        return len(self.data)

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"


class UploadRejection(BaseModel):
    reason: RejectReason
    filename: str
    content_type: str = ""
    size_bytes: int = 0
    limit_bytes: int = 0
    message: str

    @property
    def size_kb(self) -> float:
        return round(self.size_bytes / KIB, 2)

    @property
    def limit_kb(self) -> float:
        return round(self.limit_bytes / KIB, 2)

    def to_payload(self) -> dict[str, object]:
        return {
            "filename": self.filename,
            "reason": self.reason,
            "contentType": self.content_type,
            "sizeKb": self.size_kb,
            "limitKb": self.limit_kb,
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class AdminContext:
    admin_id: int
    username: str
    role: str = "admin"
    email: str = ""
    verified: bool = True

    @property
    def owner(self) -> str:
        return self.email or str(self.admin_id)

    @property
    def is_super_admin(self) -> bool:
        return self.role == "super_admin"


@dataclass(slots=True)
class AuthDecision:
    allowed: bool
    context: AdminContext | None = None
    reason: str = ""

    @classmethod
    def allow(cls, context: AdminContext) -> AuthDecision:
        return cls(allowed=True, context=context)

    @classmethod
    def deny(cls, reason: str) -> AuthDecision:
        return cls(allowed=False, reason=reason)


@dataclass(slots=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0


@dataclass(slots=True)
class SubmissionResult(Generic[T]):
    record: T
    warnings: list[str] = field(default_factory=list)


def clamp_page(page: int | None, limit: int | None, default_limit: int = 10) -> tuple[int, int]:
    page = max(int(page or 1), 1)
    limit = int(limit or default_limit)
    return page, min(max(limit, 1), MAX_PAGE_SIZE)


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ContactSubmission(WireModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=3, max_length=200)
    message: str = Field(min_length=10, max_length=5000)
    phone: str | None = Field(default=None, max_length=40)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if not value:
            return None
        if not is_valid_phone(value):
            raise ValueError("phone must be a valid phone number")
        return value


class JobApplicationSubmission(WireModel):
    full_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=40)
    position: str = Field(min_length=1, max_length=200)
    experience: str = Field(min_length=1, max_length=200)
    cover_letter: str | None = Field(default=None, max_length=10000)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        if not is_valid_phone(value):
            raise ValueError("phone must be a valid phone number")
        return value

    @field_validator("cover_letter")
    @classmethod
    def blank_cover_letter(cls, value: str | None) -> str | None:
        return value or None
