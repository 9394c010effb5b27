import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from notes_api.config import Settings, settings as default_settings
from notes_api.database import check_db_connection
from notes_api.utils.exceptions import AppException
from notes_api.middleware.error_handler import (
    app_exception_handler,
    validation_exception_handler,
    integrity_error_handler,
    generic_exception_handler,
)
from notes_api.middleware.request_id import REQUEST_ID_HEADER, request_id_middleware
from notes_api.services.note_policy import NoteIntegrityPolicy
from notes_api.services.note_service import NoteService
from notes_api.services.storage_service import BlobService
from notes_api.services.token_service import TokenService

from notes_api.api.v1 import auth
from notes_api.api.v1 import me
from notes_api.api.v1 import notes
from notes_api.api.v1 import direct_uploads
from notes_api.api.v1 import public_notes

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


def create_app(settings: Settings = default_settings) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=APP_VERSION,
        description="Personal notes API: token authentication, notes and attachments",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ─── Services ─────────────────────────────────────────────────────────────
    # The signing secret is read once here and handed to the services
    app.state.token_service = TokenService.from_settings(settings)
    app.state.blob_service = BlobService.from_settings(settings)
    app.state.note_service = NoteService(
        NoteIntegrityPolicy(max_attachment_size=settings.max_attachment_size)
    )

    # ─── Middleware ───────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Content-MD5", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.middleware("http")(request_id_middleware)

    # ─── Exception Handlers ───────────────────────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # ─── Routers ──────────────────────────────────────────────────────────────
    PREFIX = settings.API_PREFIX
    app.include_router(auth.router,           prefix=PREFIX, tags=["Auth"])
    app.include_router(me.router,             prefix=PREFIX, tags=["Me"])
    app.include_router(notes.router,          prefix=PREFIX, tags=["Notes"])
    app.include_router(direct_uploads.router, prefix=PREFIX, tags=["Direct Uploads"])
    app.include_router(public_notes.router,   prefix=PREFIX, tags=["Public Notes"])

    # ─── Startup ──────────────────────────────────────────────────────────────
    @app.on_event("startup")
    def on_startup():
        ok = check_db_connection()
        logger.info("DB connected" if ok else "DB connection FAILED")

    # ─── Health ───────────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok", "app": settings.APP_NAME, "version": APP_VERSION}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("notes_api.main:app", host=default_settings.APP_HOST, port=default_settings.APP_PORT,
                reload=default_settings.is_development)
