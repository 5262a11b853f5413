# visa_tracker/main.py
import logging
import uuid
from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.datastructures import Headers
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import FileResponse, JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from visa_tracker.core.config import Settings, settings as default_settings
from visa_tracker.core.errors import VisaTrackerError
from visa_tracker.core.logging import configure_logging
from visa_tracker.db.store import DocumentStore, JsonFileStore
from visa_tracker.routers import applicants, auth, export, health, uploads
from visa_tracker.routers import settings as settings_router
from visa_tracker.services.settings_service import SettingsRegistry, seed_defaults
from visa_tracker.services.uploads import UploadStore

log = logging.getLogger("visa_tracker")

TOO_LARGE = "Request body too large."


class BodySizeLimitMiddleware:
    """
    Rejects bodies over the configured ceiling with 413. Declared lengths are
    refused up front; chunked bodies are counted as they are received.
    """

    def __init__(self, app: ASGIApp, limit: Callable[[], int]):
        self.app = app
        self.limit = limit

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self.limit()
        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > limit:
            response = JSONResponse({"error": TOO_LARGE}, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def counting_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise HTTPException(status_code=413, detail=TOO_LARGE)
            return message

        await self.app(scope, counting_receive, send)


def create_app(cfg: Optional[Settings] = None, store: Optional[DocumentStore] = None) -> FastAPI:
    cfg = cfg or default_settings
    app = FastAPI(title="Visa Tracker")

    app.state.settings = cfg
    app.state.store = store or JsonFileStore(cfg.data_path, locking=cfg.STORE_LOCKING)
    app.state.uploads = UploadStore(cfg.uploads_path)

    # ---------------- Session cookie ----------------
    app.add_middleware(
        SessionMiddleware,
        secret_key=cfg.SESSION_SECRET,
        max_age=cfg.SESSION_MAX_AGE,
        same_site="lax",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------- Request size ceiling ----------------
    app.add_middleware(BodySizeLimitMiddleware, limit=lambda: cfg.max_request_bytes)

    # ---------------- Correlation-ID ----------------
    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        cid = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = cid
        resp = await call_next(request)
        resp.headers["X-Correlation-ID"] = cid
        return resp

    # ---------------- Error handlers ----------------
    @app.exception_handler(VisaTrackerError)
    async def tracker_error_handler(request: Request, exc: VisaTrackerError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request body."})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "An unexpected error occurred."})

    # ---------------- Mount routers ----------------
    for r in (health.router, auth.router, settings_router.router, applicants.router, uploads.router, export.router):
        app.include_router(r, prefix="/api")

    # ---------------- Startup ----------------
    @app.on_event("startup")
    def startup():
        cfg.uploads_path.mkdir(parents=True, exist_ok=True)
        if isinstance(app.state.store, JsonFileStore):
            cfg.data_path.mkdir(parents=True, exist_ok=True)
        seed_defaults(app.state.store)
        if SettingsRegistry(app.state.store).uses_default_password():
            log.warning("Admin password is still the default placeholder; change it in settings")
        log.info("Visa Tracker ready (data=%s, uploads=%s)", cfg.data_path, cfg.uploads_path)

    # ---------------- Static uploads ----------------
    app.mount("/uploads", StaticFiles(directory=str(cfg.uploads_path), check_dir=False), name="uploads")

    # ---------------- Client app + SPA fallback ----------------
    @app.api_route("/api/{rest:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
    async def api_not_found(rest: str):
        return JSONResponse({"error": "API endpoint not found."}, status_code=404)

    @app.get("/{full_path:path}", include_in_schema=False)
    async def client_app(full_path: str):
        web_dir = cfg.web_path.resolve()
        candidate = (web_dir / full_path).resolve()
        if full_path and candidate.is_file() and web_dir in candidate.parents:
            return FileResponse(candidate)
        index = web_dir / "index.html"
        if index.is_file():
            return FileResponse(index)
        return JSONResponse({"error": "Client application not installed."}, status_code=404)

    return app


app = create_app()


def run():
    import uvicorn

    configure_logging(default_settings.LOG_LEVEL)
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    run()
