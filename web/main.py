"""FastAPI application for the Timin marketplace"""

from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from timin.container import Container
from timin.services.record_store import JsonRecordStore, RecordStore
from timin.services.seed import ensure_seed
from timin.utils.common import utc_now_iso
from timin.utils.config import Settings, load_settings
from timin.utils.exceptions import TiminError
from timin.utils.logger import configure_logging, get_logger

from .api import router as api_router

logger = get_logger(__name__)

SECURITY_HEADERS = [
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"x-xss-protection", b"1; mode=block"),
    (b"referrer-policy", b"strict-origin-when-cross-origin"),
]


class SecurityHeadersASGI:
    """Raw ASGI middleware adding the fixed security headers to every HTTP response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers") or [])
                present = {k.lower() for k, _ in headers}
                headers.extend((k, v) for k, v in SECURITY_HEADERS if k not in present)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)


def _error(status_code: int, code: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code}, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TiminError)
    async def timin_error_handler(request: Request, exc: TiminError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.code, detail=str(exc))
            return _error(500, "server_error")
        logger.info("Request rejected", method=request.method, path=request.url.path, error=exc.code)
        return _error(exc.status_code, exc.code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Unreadable request body", path=request.url.path)
        return _error(400, "missing_fields")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return _error(404, "not_found")
        return _error(exc.status_code, "server_error" if exc.status_code >= 500 else "bad_request")

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Server error", method=request.method, path=request.url.path)
        # Served by ServerErrorMiddleware, outside SecurityHeadersASGI
        return _error(500, "server_error", headers={k.decode(): v.decode() for k, v in SECURITY_HEADERS})


def bootstrap(container: Container) -> None:
    """Create missing collection files and seed demo data if enabled."""
    if isinstance(container.store, JsonRecordStore):
        container.store.ensure_collections()
    if container.settings.storage.seed_demo_data:
        ensure_seed(container.store)


def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        file_path=settings.logging.file_path,
        max_bytes=settings.logging.max_bytes,
        backup_count=settings.logging.backup_count,
    )

    container = Container(settings, store)
    bootstrap(container)

    app = FastAPI(
        title=f"{settings.app.name} API",
        description="Shift marketplace: accounts, shifts, check-ins and reviews",
        version=settings.app.version,
    )
    app.state.container = container
    app.add_middleware(SecurityHeadersASGI)
    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "timestamp": utc_now_iso()}

    logger.info(
        "Application ready",
        environment=settings.app.environment,
        data_dir=settings.storage.data_dir,
    )
    return app
