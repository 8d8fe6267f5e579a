"""Content-type, size and count checks applied to every file before it is persisted.

PDFs are always held to ``pdf_max_bytes`` even when the general ceiling of a
policy is higher: PDFs travel as email attachments, everything else only has to
fit in storage.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from intakedesk.types import KIB, MAX_ATTACHMENT_BYTES, MAX_FILES_PER_REQUEST, Attachment, UploadRejection

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain",
        "text/csv",
    }
)

RESUME_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)


def _kb(value: int) -> str:
    return f"{value / KIB:.2f}KB"


@dataclass(frozen=True, slots=True)
class UploadPolicy:
    allowed_types: frozenset[str] = ALLOWED_CONTENT_TYPES
    max_bytes: int = MAX_ATTACHMENT_BYTES
    pdf_max_bytes: int = MAX_ATTACHMENT_BYTES
    max_files: int = MAX_FILES_PER_REQUEST


ADMIN_POLICY = UploadPolicy()
RESUME_POLICY = UploadPolicy(allowed_types=RESUME_CONTENT_TYPES, max_files=1)


@dataclass(slots=True)
class FilterResult:
    accepted: list[Attachment] = field(default_factory=list)
    rejected: list[UploadRejection] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected


class UploadFilter:
    def __init__(self, policy: UploadPolicy = ADMIN_POLICY):
        self.policy = policy

    def check(self, candidate: Attachment) -> UploadRejection | None:
        policy = self.policy
        if candidate.content_type not in policy.allowed_types:
            return UploadRejection(
                reason="type-not-allowed",
                filename=candidate.filename,
                content_type=candidate.content_type,
                size_bytes=candidate.size_bytes,
                message=f"File type {candidate.content_type or 'unknown'} is not allowed ({candidate.filename})",
            )

        if candidate.is_pdf:
            limit = policy.pdf_max_bytes
            if candidate.size_bytes > limit:
                return UploadRejection(
                    reason="size-exceeded",
                    filename=candidate.filename,
                    content_type=candidate.content_type,
                    size_bytes=candidate.size_bytes,
                    limit_bytes=limit,
                    message=(
                        f"{candidate.filename} is {_kb(candidate.size_bytes)}; "
                        f"PDF files must be under {limit // KIB}KB"
                    ),
                )
            return None

        limit = policy.max_bytes
        if candidate.size_bytes > limit:
            return UploadRejection(
                reason="size-exceeded",
                filename=candidate.filename,
                content_type=candidate.content_type,
                size_bytes=candidate.size_bytes,
                limit_bytes=limit,
                message=f"{candidate.filename} is {_kb(candidate.size_bytes)}; the limit is {_kb(limit)}",
            )
        return None

    def check_many(self, candidates: Sequence[Attachment]) -> FilterResult:
        result = FilterResult()
        for index, candidate in enumerate(candidates):
            if index >= self.policy.max_files:
                result.rejected.append(
                    UploadRejection(
                        reason="too-many-files",
                        filename=candidate.filename,
                        content_type=candidate.content_type,
                        size_bytes=candidate.size_bytes,
                        message=(
                            f"{candidate.filename} exceeds the limit of "
                            f"{self.policy.max_files} files per request"
                        ),
                    )
                )
                continue

            rejection = self.check(candidate)
            if rejection is None:
                result.accepted.append(candidate)
            else:
                result.rejected.append(rejection)

        if result.rejected:
            logger.info(
                "Upload filter rejected %d of %d file(s): %s",
                len(result.rejected),
                len(candidates),
                ", ".join(f"{item.filename}={item.reason}" for item in result.rejected),
            )
        return result
