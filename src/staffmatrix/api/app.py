from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from staffmatrix.api.routes import router as api_router
from staffmatrix.config import get_settings
from staffmatrix.core.session import GatewayFactory, StaffingSession
from staffmatrix.errors import (
    CredentialRequiredError,
    GatewayError,
    MissingPrerequisiteError,
    UnsupportedDocumentError,
)
from staffmatrix.web.routes import router as web_router


def create_app(
    staffing: StaffingSession | None = None,
    *,
    gateway_factory: GatewayFactory | None = None,
) -> FastAPI:
    settings = get_settings()
    static_dir = Path(__file__).resolve().parents[1] / "web" / "static"

    app = FastAPI(title=settings.app_name)
    app.state.staffing = staffing or StaffingSession(settings, gateway_factory=gateway_factory)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GatewayError)
    async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={"detail": f"{exc.operation} failed", "operation": exc.operation, "error": exc.message},
        )

    @app.exception_handler(CredentialRequiredError)
    async def _credential_required(request: Request, exc: CredentialRequiredError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(MissingPrerequisiteError)
    async def _missing_prerequisite(request: Request, exc: MissingPrerequisiteError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(UnsupportedDocumentError)
    async def _unsupported_document(request: Request, exc: UnsupportedDocumentError) -> JSONResponse:
        return JSONResponse(status_code=415, content={"detail": str(exc)})

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    if settings.web_ui_enabled:
        app.include_router(web_router)

    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
    return app
