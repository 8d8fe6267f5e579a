from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intakedesk.api.deps import get_auth_guard, get_db, require_admin
from intakedesk.api.schemas import AdminResponse, LoginRequest, LoginResponse, MessageResponse
from intakedesk.core.auth import AuthGuard
from intakedesk.db.repositories import Repository
from intakedesk.errors import NotFoundError
from intakedesk.types import AdminContext

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, guard: AuthGuard = Depends(get_auth_guard)) -> LoginResponse:
    token, admin = guard.login(payload.username, payload.password)
    return LoginResponse.build(token, admin)


@router.get("/me", response_model=AdminResponse)
def me(admin: AdminContext = Depends(require_admin), db: Session = Depends(get_db)) -> AdminResponse:
    record = Repository(db).get_admin(admin.admin_id)
    if record is None:
        raise NotFoundError("Admin not found")
    return AdminResponse.model_validate(record)


@router.post("/logout", response_model=MessageResponse)
def logout(admin: AdminContext = Depends(require_admin)) -> MessageResponse:
    # Tokens are stateless; the client discards its copy.
    return MessageResponse(message="Logged out successfully")
