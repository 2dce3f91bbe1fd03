from __future__ import annotations
import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import ConfigurationError, Settings, load_settings
from app.routers import databases, files
from app.services.public_keys import PublicKeyVerifier
from app.services.uploads import UploadPipeline, UploadRejected
from app.utils.utils import StoragePathResolver, dir_exists

log = logging.getLogger(__name__)


def _pipeline(settings: Settings, verifier: PublicKeyVerifier, root, label: str) -> UploadPipeline:
    if not dir_exists(root):
        raise ConfigurationError(f"{label} path does not exist. Path: {root}")
    return UploadPipeline(
        verifier,
        StoragePathResolver(root),
        max_file_size=settings.max_file_size,
        max_files=settings.max_files,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    if settings.databases_folder_path is None and settings.files_folder_path is None:
        raise ConfigurationError("No storage root configured: set DATABASES_FOLDER_PATH or FILES_FOLDER_PATH")

    app = FastAPI(
        title="PublicKey File-API",
        description="Upload di file per utente autorizzati da public key `identity.signature`.",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    verifier = PublicKeyVerifier(settings.secret_key.get_secret_value())
    app.state.settings = settings

    if settings.databases_folder_path is not None:
        app.state.db_pipeline = _pipeline(settings, verifier, settings.databases_folder_path, "Db")
        app.include_router(databases.router)
    if settings.files_folder_path is not None:
        app.state.files_pipeline = _pipeline(settings, verifier, settings.files_folder_path, "Files")
        app.include_router(files.router)

    @app.exception_handler(UploadRejected)
    async def upload_rejected_handler(request: Request, exc: UploadRejected):
        return JSONResponse({"ok": False, "error": exc.error}, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def route_not_found_handler(request: Request, exc: StarletteHTTPException):
        # path noto ma metodo sbagliato: stesso 404 di una route inesistente
        if exc.status_code == 405:
            exc = StarletteHTTPException(status_code=404)
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"ok": False, "error": "Internal server error"}, status_code=500)

    @app.get("/ping")
    def ping(): return {"status": "ok"}

    return app


def run() -> None:
    import uvicorn
    from app.app_logging import setup_logger

    setup_logger()
    try:
        settings = load_settings()
        app = create_app(settings)
    except ConfigurationError as exc:
        log.error("%s", exc)
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level)
    log.info("Server running on port %d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
