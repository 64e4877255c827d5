"""Entry point for the FastAPI-powered CineLog service."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, TypeVar

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .backup import backup_filename, export_backup
from .config import settings
from .database import Database
from .errors import (
    AuthRequiredError,
    DuplicateError,
    PersistenceError,
    UpstreamAuthError,
    UpstreamError,
)
from .library import LibraryMode, SortOption, project, summarize
from .models import CatalogCandidate, MediaKind
from .services.entry_store import EntryStore
from .services.igdb import IGDBClient
from .services.openrouter import TasteProfileClient
from .services.search import CatalogSearchService
from .services.sync import EntrySyncController, SessionRegistry
from .services.tmdb import TMDBClient
from .services.tokens import TwitchTokenProvider

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

IDENTITY_HEADER = "x-cinelog-user"

app: FastAPI

T = TypeVar("T")


class SaveEntryRequest(BaseModel):
    """Body of ``POST /api/entries``."""

    candidate: CatalogCandidate
    rating: int | None = Field(default=None, ge=0, le=5)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    igdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(timeout=httpx.Timeout(20.0, connect=10.0))
    )
    openrouter_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.openrouter_api_url),
            timeout=httpx.Timeout(60.0, connect=10.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    tokens = TwitchTokenProvider(settings, igdb_http)
    igdb = IGDBClient(settings, igdb_http, tokens)
    tmdb = TMDBClient(settings, tmdb_http)

    fastapi_app.state.database = database
    fastapi_app.state.igdb = igdb
    fastapi_app.state.search_service = CatalogSearchService(tmdb, igdb)
    fastapi_app.state.sessions = SessionRegistry(
        EntryStore(database.session_factory),
        max_sessions=settings.session_cache_size,
    )
    fastapi_app.state.taste_profile = TasteProfileClient(settings, openrouter_http)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Personal movie, series and game log with catalog search",
        version="1.0.0",
        lifespan=lifespan,
    )

    # The search proxy is public; the secrets it uses never leave the server.
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(fastapi_app)
    register_routes(fastapi_app)
    return fastapi_app


def get_state(fastapi_app: FastAPI, name: str, expected: type[T]) -> T:
    service = getattr(fastapi_app.state, name, None)
    if not isinstance(service, expected):
        raise RuntimeError(f"{name} not initialised")
    return service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def register_exception_handlers(fastapi_app: FastAPI) -> None:
    @fastapi_app.exception_handler(AuthRequiredError)
    async def _auth_required(_: Request, exc: AuthRequiredError) -> JSONResponse:
        return _error(401, str(exc))

    @fastapi_app.exception_handler(DuplicateError)
    async def _duplicate(_: Request, exc: DuplicateError) -> JSONResponse:
        return _error(409, str(exc))

    @fastapi_app.exception_handler(PersistenceError)
    async def _persistence(_: Request, exc: PersistenceError) -> JSONResponse:
        return _error(503, str(exc))

    @fastapi_app.exception_handler(UpstreamError)
    async def _upstream(_: Request, exc: UpstreamError) -> JSONResponse:
        return _error(502, str(exc))


def _require_identity(request: Request) -> str:
    identity = (request.headers.get(IDENTITY_HEADER) or "").strip()
    if not identity:
        raise AuthRequiredError()
    return identity


async def _read_search_query(request: Request) -> str:
    """Accept the query from the URL, a JSON body, or a plain-text body."""

    query = request.query_params.get("query")
    if query:
        return query.strip()
    body = await request.body()
    if not body:
        return ""
    try:
        parsed: Any = json.loads(body)
    except ValueError:
        return body.decode("utf-8", errors="ignore").strip()
    if isinstance(parsed, dict):
        return str(parsed.get("query") or "").strip()
    if isinstance(parsed, str):
        return parsed.strip()
    return ""


def register_routes(fastapi_app: FastAPI) -> None:
    async def _controller(request: Request) -> EntrySyncController:
        sessions = get_state(fastapi_app, "sessions", SessionRegistry)
        return await sessions.open(_require_identity(request))

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.post("/api/igdb")
    async def igdb_proxy(request: Request) -> JSONResponse:
        query = await _read_search_query(request)
        if not query:
            return _error(400, "Query is required")
        igdb = get_state(fastapi_app, "igdb", IGDBClient)
        try:
            games = await igdb.search(query)
        except UpstreamAuthError as exc:
            logger.error("IGDB token unavailable: %s", exc)
            return _error(500, str(exc))
        except UpstreamError as exc:
            logger.error("IGDB search for %r failed: %s", query, exc)
            return _error(502, str(exc))
        return JSONResponse([game.model_dump(exclude_none=True) for game in games])

    @fastapi_app.get("/api/search")
    async def search_catalog(
        query: str = "",
        mode: LibraryMode = "cine",
    ) -> list[dict[str, Any]]:
        service = get_state(fastapi_app, "search_service", CatalogSearchService)
        results = await service.search(mode, query)
        return [candidate.model_dump(exclude_none=True) for candidate in results]

    @fastapi_app.get("/api/entries")
    async def list_entries(
        request: Request,
        mode: LibraryMode = "cine",
        q: str = "",
        kind: str = Query(default="ALL", alias="type"),
        sort: SortOption = "recent",
    ) -> JSONResponse:
        if kind != "ALL":
            try:
                kind = MediaKind(kind)
            except ValueError:
                return _error(400, f"Unknown type filter: {kind}")
        controller = await _controller(request)
        visible = project(controller.entries, mode, q, kind, sort)  # type: ignore[arg-type]
        return JSONResponse([entry.to_wire() for entry in visible])

    @fastapi_app.post("/api/entries", status_code=201)
    async def save_entry(request: Request, payload: SaveEntryRequest) -> JSONResponse:
        controller = await _controller(request)
        service = get_state(fastapi_app, "search_service", CatalogSearchService)
        candidate = await service.resolve(payload.candidate)
        entry = await controller.save(candidate, payload.rating)
        return JSONResponse(entry.to_wire(), status_code=201)

    @fastapi_app.delete("/api/entries/{entry_id}", status_code=204)
    async def delete_entry(
        request: Request, entry_id: str, confirm: bool = False
    ) -> Response:
        controller = await _controller(request)
        if not await controller.remove(entry_id, confirmed=confirm):
            return _error(400, "Removal must be confirmed with confirm=true")
        return Response(status_code=204)

    @fastapi_app.post("/api/entries/refresh")
    async def refresh_entries(request: Request) -> JSONResponse:
        controller = await _controller(request)
        entries = await controller.refresh()
        return JSONResponse([entry.to_wire() for entry in entries])

    @fastapi_app.delete("/api/session", status_code=204)
    async def sign_out(request: Request) -> Response:
        sessions = get_state(fastapi_app, "sessions", SessionRegistry)
        sessions.close(_require_identity(request))
        return Response(status_code=204)

    @fastapi_app.get("/api/stats")
    async def library_stats(request: Request, mode: LibraryMode = "cine") -> dict[str, Any]:
        controller = await _controller(request)
        return summarize(project(controller.entries, mode)).model_dump()

    @fastapi_app.post("/api/analysis")
    async def analyse_library(request: Request) -> JSONResponse:
        identity = _require_identity(request)
        controller = await _controller(request)
        client = get_state(fastapi_app, "taste_profile", TasteProfileClient)
        try:
            analysis = await client.analyze(controller.entries)
        except RuntimeError as exc:
            return _error(503, str(exc))
        except ValueError as exc:
            return _error(400, str(exc))
        sessions = get_state(fastapi_app, "sessions", SessionRegistry)
        sessions.remember_analysis(identity, analysis)
        return JSONResponse(analysis.model_dump(by_alias=True))

    @fastapi_app.get("/api/backup")
    async def download_backup(request: Request) -> JSONResponse:
        identity = _require_identity(request)
        controller = await _controller(request)
        sessions = get_state(fastapi_app, "sessions", SessionRegistry)
        document = export_backup(controller.entries, sessions.analysis(identity))
        return JSONResponse(
            document,
            headers={
                "Content-Disposition": f'attachment; filename="{backup_filename()}"'
            },
        )


app = create_app()
