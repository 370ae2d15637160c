"""FastAPI application serving the mirrored tree and search."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from notefinder.config import AppConfig
from notefinder.index.indexer import IndexHolder
from notefinder.index.search import (
    EmptyQueryError,
    IndexNotReadyError,
    SearchFailedError,
    Searcher,
)
from notefinder.index.tree import build_tree, tree_to_json
from notefinder.sources import SourceAdapter, SourceUnavailableError, create_source
from notefinder.utils.files import content_disposition, content_type_for

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="NoteFinder", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

_CONFIG: AppConfig | None = None
_SOURCE: SourceAdapter | None = None
_HOLDER = IndexHolder()


class FileItem(BaseModel):
    name: str
    type: Literal["folder", "file"]


class CollectSummary(BaseModel):
    indexed: int
    skipped: int
    failed: int


class IndexStatus(BaseModel):
    ready: bool
    building: bool
    documents: int
    built_at: Optional[str] = None
    stats: Optional[CollectSummary] = None


class ReindexResponse(BaseModel):
    status: str


class ApiError(Exception):
    """Error rendered as a ``{error, details}`` JSON body."""

    def __init__(self, status_code: int, error: str, details: str = "") -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "details": exc.details},
    )


def get_config() -> AppConfig:
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = AppConfig.from_env()
    return _CONFIG


def get_source() -> SourceAdapter:
    global _SOURCE
    if _SOURCE is None:
        _SOURCE = create_source(get_config())
    return _SOURCE


def get_holder() -> IndexHolder:
    return _HOLDER


def configure(config: AppConfig, source: SourceAdapter | None = None) -> None:
    """Install the configuration (and optionally the source) the app serves."""
    global _CONFIG, _SOURCE
    _CONFIG = config
    _SOURCE = source


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    config = get_config()
    for problem in config.problems():
        LOGGER.error(problem)
    source = get_source()
    LOGGER.info("Serving from %s", source.describe())
    # Requests are accepted while the index builds; /search reports
    # "Index not ready" until the first snapshot is published.
    _HOLDER.schedule_rebuild(source, config)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if _SOURCE is not None:
        await _SOURCE.aclose()


def _listing(items: List[Any]) -> List[FileItem]:
    return [FileItem(name=i.name, type="folder" if i.is_dir else "file") for i in items]


@app.get("/folders")
async def list_folders(source: SourceAdapter = Depends(get_source)) -> List[str]:
    try:
        items = await source.list_children("")
    except SourceUnavailableError as exc:
        LOGGER.error("/folders error: %s", exc.message)
        raise ApiError(500, "Failed to read folders", exc.message) from exc
    return [item.name for item in items if item.is_dir]


@app.get("/files")
@app.get("/files/{folder_path:path}")
async def list_files(
    folder_path: str = "", source: SourceAdapter = Depends(get_source)
) -> List[FileItem]:
    try:
        items = await source.list_children(folder_path.strip("/"))
    except SourceUnavailableError as exc:
        LOGGER.error('/files error for path "%s": %s', folder_path, exc.message)
        raise ApiError(404, "Folder not found", exc.message) from exc
    return _listing(items)


@app.get("/note/{file_path:path}")
async def read_note(file_path: str, source: SourceAdapter = Depends(get_source)) -> Response:
    file_path = file_path.strip("/")
    if not file_path:
        raise ApiError(400, "Missing file path")
    try:
        data = await source.read_bytes(file_path)
    except SourceUnavailableError as exc:
        LOGGER.error('/note error for path "%s": %s', file_path, exc.message)
        raise ApiError(404, "File not found", exc.message) from exc
    return Response(
        content=data,
        media_type=content_type_for(file_path),
        headers={
            "Content-Disposition": content_disposition(file_path),
            "Cross-Origin-Resource-Policy": "cross-origin",
        },
    )


@app.get("/tree")
async def get_tree(
    source: SourceAdapter = Depends(get_source), config: AppConfig = Depends(get_config)
) -> Any:
    try:
        tree = await build_tree(source, extensions=config.tree_extensions)
    except Exception as exc:  # pragma: no cover - build_tree absorbs source errors
        LOGGER.exception("/tree error")
        raise ApiError(500, "Failed to scan repo tree", str(exc)) from exc
    return tree_to_json(tree)


@app.get("/search")
async def search_documents(
    q: str | None = None,
    folder: str | None = None,
    holder: IndexHolder = Depends(get_holder),
    config: AppConfig = Depends(get_config),
) -> List[Dict[str, Any]]:
    searcher = Searcher(holder.snapshot, limit=config.result_limit)
    try:
        results = searcher.search(q, folder)
    except EmptyQueryError as exc:
        raise ApiError(400, "Missing search query", str(exc)) from exc
    except IndexNotReadyError as exc:
        raise ApiError(500, "Index not ready", str(exc)) from exc
    except SearchFailedError as exc:
        LOGGER.error("/search error: %s", exc)
        raise ApiError(500, "Search failed", str(exc)) from exc
    except Exception as exc:
        LOGGER.exception("/search error")
        raise ApiError(500, "Search failed", str(exc)) from exc
    return [result.to_json() for result in results]


@app.get("/status")
async def index_status(holder: IndexHolder = Depends(get_holder)) -> IndexStatus:
    return IndexStatus(**holder.status())


@app.post("/reindex", status_code=202)
async def reindex(
    holder: IndexHolder = Depends(get_holder),
    source: SourceAdapter = Depends(get_source),
    config: AppConfig = Depends(get_config),
) -> ReindexResponse:
    started = holder.schedule_rebuild(source, config)
    return ReindexResponse(status="scheduled" if started else "already running")
