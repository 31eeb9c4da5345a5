import hmac
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, Response, StreamingResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import Settings, settings as default_settings
from .core.logging import configure_logging
from .errors import MediaIntakeError, MissingFile
from .services.hash_index import get_detector
from .services.retrieval import fetch
from .services.storage import get_bucket
from .services.upload import UploadEngine
from .services.urls import DeliveryConfig

logger = logging.getLogger(__name__)

MAX_AGE = 60 * 60 * 24 * 30  # 30 days
CACHE_CONTROL = f"public, max-age={MAX_AGE}"


def _form_text(value) -> Optional[str]:
    return value if isinstance(value, str) else None


def _etag_matches(header: str, etag: str) -> bool:
    candidates = [c.strip() for c in header.split(",")]
    return "*" in candidates or any(c.removeprefix("W/").strip('"') == etag for c in candidates)


def create_app(cfg: Optional[Settings] = None, bucket=None) -> FastAPI:
    cfg = cfg or default_settings
    app = FastAPI(title="media-intake")
    app.state.settings = cfg
    app.state.bucket = bucket
    app.state.engine = None

    def get_upload_engine(request: Request) -> UploadEngine:
        state = request.app.state
        if state.engine is None:
            if state.bucket is None:
                state.bucket = get_bucket(cfg)
            state.engine = UploadEngine(
                state.bucket,
                DeliveryConfig.from_settings(cfg),
                detector=get_detector(state.bucket, cfg),
                max_bytes=int(cfg.max_upload_mb) * 1024 * 1024,
            )
        return state.engine

    def require_auth_key(x_auth_key: str = Header(default="")):
        expected = cfg.auth_key
        if not x_auth_key or not expected:
            raise HTTPException(status_code=401, detail="Unauthorized")
        # header values arrive latin-1 decoded; compare bytes
        if not hmac.compare_digest(x_auth_key.encode("utf-8"), expected.encode("utf-8")):
            raise HTTPException(status_code=401, detail="Unauthorized")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(MediaIntakeError)
    async def intake_error(request: Request, exc: MediaIntakeError):
        if exc.status_code >= 500:
            logger.error("Request to %s failed: %s", request.url.path, exc)
        return PlainTextResponse(str(exc), status_code=exc.status_code)

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz():
        return "ok"

    @app.put("/upload", response_class=PlainTextResponse)
    async def upload(
        request: Request,
        _: None = Depends(require_auth_key),
        engine: UploadEngine = Depends(get_upload_engine),
    ):
        form = await request.form()
        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise MissingFile()
        data = await file.read()

        result = await run_in_threadpool(
            engine.upload,
            data,
            filename=_form_text(form.get("filename")) or file.filename,
            content_type=file.content_type,
            preference=_form_text(form.get("url_preference")),
            request_scheme=request.url.scheme,
        )
        return result.url

    @app.get("/{partition}/{key}")
    async def retrieve(
        partition: str,
        key: str,
        request: Request,
        engine: UploadEngine = Depends(get_upload_engine),
    ):
        obj = await run_in_threadpool(fetch, engine.bucket, partition, key)
        headers = {"ETag": f'"{obj.etag}"', "Cache-Control": CACHE_CONTROL}
        if_none_match = request.headers.get("if-none-match")
        if if_none_match and _etag_matches(if_none_match, obj.etag):
            obj.close()
            return Response(status_code=304, headers=headers)
        headers["Content-Type"] = obj.content_type
        return StreamingResponse(obj.body, headers=headers)

    return app


configure_logging()
app = create_app()
