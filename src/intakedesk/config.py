from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "IntakeDesk"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 5000
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/intakedesk.db"
    data_dir: Path = Path("./data")

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expires_hours: int = 24
    # Trust a valid token when the admin lookup itself fails (storage outage).
    auth_fail_open: bool = True

    client_url: str = "http://localhost:5173"
    cors_origins: str = ""

    rate_limit_requests: int = 100
    rate_limit_window_sec: int = 15 * 60

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_timeout_sec: int = 30
    mail_from_name: str = "Complete Solution Technology"
    mail_from_address: str = ""
    admin_email: str = ""

    resume_reject_policy: str = "drop"
    bcrypt_rounds: int = 12

    bootstrap_admin_username: str = ""
    bootstrap_admin_email: str = ""
    bootstrap_admin_password: str = ""

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("resume_reject_policy")
    @classmethod
    def validate_resume_policy(cls, value: str) -> str:
        allowed = {"drop", "reject"}
        if value not in allowed:
            raise ValueError(f"resume_reject_policy must be one of {sorted(allowed)}")
        return value

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        if not origins and self.client_url:
            origins = [self.client_url]
        return origins

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def sender_address(self) -> str:
        return self.mail_from_address or self.smtp_user


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
