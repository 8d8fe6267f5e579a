from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from intakedesk.api.ratelimit import RateLimitMiddleware, SlidingWindowLimiter
from intakedesk.api.routes import router as api_router
from intakedesk.api.schemas import HealthResponse
from intakedesk.config import Settings, get_settings
from intakedesk.db.init import init_database
from intakedesk.errors import install_exception_handlers


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=SlidingWindowLimiter(settings.rate_limit_requests, settings.rate_limit_window_sec),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.get("/health", response_model=HealthResponse)
    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse()

    app.include_router(api_router)
    return app
