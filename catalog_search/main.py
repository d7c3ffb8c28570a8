"""FastAPI application wiring the search service."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .cache import create_cache
from .config import settings
from .database import create_db_engine
from .dispatcher import SearchDispatcher
from .es_client import create_client
from .health import EngineHealthGate
from .models import SearchResponse
from .relational import RelationalSearchPath
from .search import EngineSearchPath

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# Force a predictable logging setup even when run under uvicorn so request ids
# and fallback warnings end up in one stream. ``force=True`` replaces
# uvicorn's default handlers.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())


def build_dispatcher(application: FastAPI) -> SearchDispatcher:
    """Create the shared clients once and wire them into a dispatcher."""

    es = create_client(settings)
    db = create_db_engine(settings)
    gate = EngineHealthGate(es)
    cache = create_cache(settings) if settings.cache_ttl_seconds > 0 else None
    application.state.es_client = es
    application.state.db_engine = db
    application.state.health_gate = gate
    return SearchDispatcher(
        gate,
        EngineSearchPath(es, settings.es_index),
        RelationalSearchPath(db),
        cache=cache,
        cache_ttl=settings.cache_ttl_seconds,
    )


@asynccontextmanager
async def lifespan(application: FastAPI):
    if getattr(application.state, "dispatcher", None) is None:
        application.state.dispatcher = build_dispatcher(application)
    yield
    es = getattr(application.state, "es_client", None)
    if es is not None:
        await asyncio.to_thread(es.close)
    db = getattr(application.state, "db_engine", None)
    if db is not None:
        db.dispose()


app = FastAPI(title="Catalog Search Service", lifespan=lifespan)


@app.get("/health")
async def health(request: Request) -> dict:
    gate: EngineHealthGate = request.app.state.health_gate
    available = await asyncio.to_thread(gate.is_available)
    return {
        "search_engine": "available" if available else "unavailable",
        "index": settings.es_index,
        "state": gate.state().to_dict(),
    }


@app.get("/search", response_model=SearchResponse)
async def search(
    request: Request,
    q: str = Query("", description="Search query, empty for a plain listing"),
    page: str | None = None,
    limit: str | None = None,
    city_id: str | None = None,
    sort: str = "relevance",
    user_id: str | None = None,
) -> JSONResponse:
    # Left as raw strings; SearchRequest.from_params clamps them.
    dispatcher: SearchDispatcher = request.app.state.dispatcher
    params = {"q": q, "page": page, "limit": limit, "city_id": city_id, "sort": sort, "user_id": user_id}
    payload = await asyncio.to_thread(dispatcher.search, params)
    body = SearchResponse.model_validate(payload)
    return JSONResponse(
        status_code=200 if body.success else 503,
        content=body.model_dump(mode="json"),
    )
