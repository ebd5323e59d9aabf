"""
HTTP serving layer.

Thin FastAPI wrapper around a SearchEngine:
    GET  /         static search page
    GET  /health   readiness and catalog size
    POST /search   raw image body -> ranked product matches
"""

import os
import re
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse

from . import __version__, config
from .engine import SearchEngine
from .exceptions import (
    DecodeError, DegenerateVectorError, InferenceError,
    PayloadTooLargeError, SearchError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    PayloadTooLargeError: 413,
    DecodeError: 400,
    InferenceError: 500,
    DegenerateVectorError: 500,
}


def origin_regex(origins: List[str]) -> str:
    """Regex accepting any origin that starts with an allowed prefix."""
    return "(?:" + "|".join(re.escape(o) for o in origins) + ").*"


def status_for(exc: SearchError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def read_body(request: Request, limit: int) -> bytes:
    """Read the request body, stopping as soon as it exceeds `limit` bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError("Too large", details={"limit": limit})

    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise PayloadTooLargeError("Too large", details={"limit": limit})
        chunks.append(chunk)
    return b"".join(chunks)


def create_app(engine: SearchEngine,
               allowed_origins: Optional[List[str]] = None,
               index_page: Optional[str] = None,
               max_upload_bytes: int = config.MAX_UPLOAD_BYTES) -> FastAPI:
    """
    Build the FastAPI application around a ready SearchEngine.

    Args:
        engine: Fully initialized engine, shared by all requests.
        allowed_origins: CORS origin prefixes. Defaults to config.
        index_page: Path of the HTML page served at "/".
        max_upload_bytes: Largest accepted request body.
    """
    allowed_origins = config.ALLOWED_ORIGINS if allowed_origins is None else allowed_origins
    if index_page is None:
        index_page = os.path.join(config.DATA_DIR, config.INDEX_PAGE_FILE)

    app = FastAPI(title="Visual Product Search", version=__version__)
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=origin_regex(allowed_origins) if allowed_origins else None,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(SearchError)
    async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
        status_code = status_for(exc)
        logger.error(f"{request.url.path} failed ({exc.code}): {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"{request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc), "code": SearchError.code, "details": {}},
        )

    @app.get("/")
    async def index():
        if not os.path.exists(index_page):
            return PlainTextResponse("Not found", status_code=404)
        return FileResponse(index_page, media_type="text/html")

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"ok": True, "products": engine.catalog_size()}

    @app.post("/search")
    async def search(request: Request,
                     top_k: int = Query(config.DEFAULT_TOP_K, ge=0)) -> List[Dict[str, Any]]:
        body = await read_body(request, max_upload_bytes)
        return await engine.search_async(body, top_k)

    return app
