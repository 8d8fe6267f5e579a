import pytest
from pydantic import ValidationError

from intakedesk.types import ContactSubmission, JobApplicationSubmission, clamp_page, is_valid_phone


def test_phone_validation() -> None:
    assert is_valid_phone("+1 (555) 123-4567")
    assert is_valid_phone("5551234")
    assert not is_valid_phone("12345")
    assert not is_valid_phone("555-CALL-NOW")
    assert not is_valid_phone("+1234567890123456")


def test_contact_submission_normalizes_fields() -> None:
    payload = ContactSubmission.model_validate(
        {
            "name": "  Jane Doe ",
            "email": "Jane@X.io",
            "subject": "Hello",
            "message": "I would like a quote.",
            "phone": "",
        }
    )
    assert payload.name == "Jane Doe"
    assert payload.email == "jane@x.io"
    assert payload.phone is None


@pytest.mark.parametrize(
    "field,value",
    [
        ("name", "J"),
        ("email", "not-an-email"),
        ("subject", "Hi"),
        ("message", "too short"),
        ("phone", "abc"),
        ("phone", "5" * 10 + "-" * 31),
    ],
)
def test_contact_submission_rejects_bad_field(field: str, value: str) -> None:
    data = {
        "name": "Jane Doe",
        "email": "jane@x.io",
        "subject": "Hello",
        "message": "I would like a quote.",
    }
    data[field] = value
    with pytest.raises(ValidationError) as exc_info:
        ContactSubmission.model_validate(data)
    assert exc_info.value.errors()[0]["loc"] == (field,)


def test_job_application_accepts_camel_case_keys() -> None:
    payload = JobApplicationSubmission.model_validate(
        {
            "fullName": "Sam Rivera",
            "email": "sam@example.com",
            "phone": "+44 20 7946 0958",
            "position": "Backend Engineer",
            "experience": "3-5 years",
            "coverLetter": "   ",
        }
    )
    assert payload.full_name == "Sam Rivera"
    assert payload.cover_letter is None


def test_job_application_requires_phone() -> None:
    with pytest.raises(ValidationError):
        JobApplicationSubmission.model_validate(
            {
                "fullName": "Sam Rivera",
                "email": "sam@example.com",
                "phone": "",
                "position": "Backend Engineer",
                "experience": "3-5 years",
            }
        )


def test_clamp_page_bounds() -> None:
    assert clamp_page(None, None) == (1, 10)
    assert clamp_page(0, 500) == (1, 50)
    assert clamp_page(3, -2) == (3, 1)
