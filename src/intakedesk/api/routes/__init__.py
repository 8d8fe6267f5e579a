from __future__ import annotations

from fastapi import APIRouter

from intakedesk.api.routes import admin, auth, contact, files, job_applications

router = APIRouter(prefix="/api")
router.include_router(auth.router)
router.include_router(contact.router)
router.include_router(job_applications.router)
router.include_router(files.router)
router.include_router(admin.router)
