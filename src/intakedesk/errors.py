from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from intakedesk.config import get_settings
from intakedesk.types import UploadRejection

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation error"

    def __init__(self, message: str | None = None, errors: Sequence[dict[str, str]] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])

    @classmethod
    def for_field(cls, field: str, message: str) -> ValidationError:
        return cls(errors=[{"field": field, "message": message}])

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "errors": self.errors}


class AuthError(AppError):
    status_code = 401
    default_message = "Invalid token"


class ForbiddenError(AuthError):
    status_code = 403
    default_message = "Insufficient privileges"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class UploadRejectedError(AppError):
    status_code = 400
    default_message = "Upload rejected"

    def __init__(self, rejections: Iterable[UploadRejection], message: str | None = None):
        self.rejections = list(rejections)
        if message is None and self.rejections:
            message = "; ".join(item.message for item in self.rejections)
        super().__init__(message)

    @property
    def reason(self) -> str:
        return self.rejections[0].reason if self.rejections else ""

    def to_payload(self) -> dict[str, Any]:
        return {
            **super().to_payload(),
            "reason": self.reason,
            "files": [item.to_payload() for item in self.rejections],
        }


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"


def field_errors(exc: RequestValidationError | PydanticValidationError) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part not in {"body", "query", "path", "form"}]
        errors.append({"field": ".".join(loc) or "body", "message": item.get("msg", "invalid value")})
    return errors


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError(errors=field_errors(exc))
        return JSONResponse(error.to_payload(), status_code=error.status_code)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        payload = InternalError().to_payload()
        if get_settings().is_development:
            payload["error"] = str(exc)
        return JSONResponse(payload, status_code=500)
