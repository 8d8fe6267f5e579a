import pytest
from pydantic import ValidationError

from intakedesk.config import Settings


def test_cors_origins_fall_back_to_client_url() -> None:
    assert Settings(cors_origins="", client_url="https://site.example").cors_origin_list == ["https://site.example"]
    assert Settings(cors_origins="https://a.example, https://b.example").cors_origin_list == [
        "https://a.example",
        "https://b.example",
    ]


def test_sender_address_prefers_explicit_from_address() -> None:
    assert Settings(mail_from_address="", smtp_user="mailer@example.com").sender_address == "mailer@example.com"
    assert Settings(mail_from_address="hello@example.com", smtp_user="x@example.com").sender_address == "hello@example.com"


@pytest.mark.parametrize("field,value", [("app_env", "qa"), ("resume_reject_policy", "truncate")])
def test_rejects_unknown_policy_values(field: str, value: str) -> None:
    with pytest.raises(ValidationError):
        Settings(**{field: value})
