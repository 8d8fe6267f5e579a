import io

from fastapi import UploadFile
from starlette.datastructures import Headers

from intakedesk.api.deps import read_uploads
from intakedesk.core.upload_filter import ADMIN_POLICY, UploadFilter
from intakedesk.types import KIB


def _part(name: str, content_type: str, size: int) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(b"x" * size),
        size=size,
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


def test_small_part_is_read_in_full() -> None:
    [attachment] = read_uploads([_part("notes.txt", "text/plain", 64)])
    assert attachment.data == b"x" * 64
    assert attachment.size_bytes == 64
    assert attachment.declared_size is None


def test_oversized_part_is_cut_off_but_keeps_its_real_size() -> None:
    part = _part("report.pdf", "application/pdf", 5 * KIB * KIB)

    [attachment] = read_uploads([part])

    assert len(attachment.data) == 200 * KIB + 1
    assert part.file.tell() == 200 * KIB + 1
    assert attachment.size_bytes == 5 * KIB * KIB

    rejection = UploadFilter(ADMIN_POLICY).check(attachment)
    assert rejection is not None
    assert rejection.size_kb == 5120.0
    assert rejection.message == "report.pdf is 5120.00KB; PDF files must be under 200KB"


def test_parts_without_a_filename_are_skipped() -> None:
    assert read_uploads([_part("", "text/plain", 10)]) == []
    assert read_uploads(None) == []
