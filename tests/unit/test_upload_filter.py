from intakedesk.core.upload_filter import (
    ADMIN_POLICY,
    RESUME_POLICY,
    UploadFilter,
    UploadPolicy,
)
from intakedesk.types import KIB, Attachment


def _file(name: str, content_type: str, size: int) -> Attachment:
    return Attachment(filename=name, content_type=content_type, data=b"x" * size)


def test_accepts_allowed_file_at_exact_limit() -> None:
    upload_filter = UploadFilter(ADMIN_POLICY)
    assert upload_filter.check(_file("photo.png", "image/png", 200 * KIB)) is None
    assert upload_filter.check(_file("notes.pdf", "application/pdf", 200 * KIB)) is None


def test_oversized_pdf_reports_name_and_sizes() -> None:
    rejection = UploadFilter(ADMIN_POLICY).check(_file("report.pdf", "application/pdf", 250 * KIB))
    assert rejection is not None
    assert rejection.reason == "size-exceeded"
    assert rejection.message == "report.pdf is 250.00KB; PDF files must be under 200KB"
    assert rejection.size_kb == 250.0
    assert rejection.limit_kb == 200.0


def test_pdf_ceiling_applies_even_when_general_limit_is_higher() -> None:
    upload_filter = UploadFilter(UploadPolicy(max_bytes=10 * KIB * KIB))
    assert upload_filter.check(_file("scan.png", "image/png", 2 * KIB * KIB)) is None

    rejection = upload_filter.check(_file("scan.pdf", "application/pdf", 201 * KIB))
    assert rejection is not None
    assert rejection.reason == "size-exceeded"


def test_disallowed_type_is_rejected_before_size() -> None:
    rejection = UploadFilter(ADMIN_POLICY).check(_file("tool.exe", "application/x-msdownload", 10))
    assert rejection is not None
    assert rejection.reason == "type-not-allowed"
    assert "tool.exe" in rejection.message


def test_resume_policy_only_allows_documents() -> None:
    upload_filter = UploadFilter(RESUME_POLICY)
    assert upload_filter.check(_file("cv.pdf", "application/pdf", 1024)) is None
    assert upload_filter.check(_file("cv.png", "image/png", 1024)).reason == "type-not-allowed"


def test_check_many_reports_every_offender_and_extra_files() -> None:
    candidates = [_file(f"ok-{index}.txt", "text/plain", 10) for index in range(4)]
    candidates.insert(1, _file("big.pdf", "application/pdf", 300 * KIB))
    candidates += [_file("sixth.txt", "text/plain", 10), _file("seventh.txt", "text/plain", 10)]

    result = UploadFilter(ADMIN_POLICY).check_many(candidates)

    assert not result.ok
    assert [item.filename for item in result.accepted] == ["ok-0.txt", "ok-1.txt", "ok-2.txt", "ok-3.txt"]
    assert [(item.filename, item.reason) for item in result.rejected] == [
        ("big.pdf", "size-exceeded"),
        ("sixth.txt", "too-many-files"),
        ("seventh.txt", "too-many-files"),
    ]
