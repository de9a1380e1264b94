# app.py
# FastAPI landmark service: in-memory cache backfilled from Wikipedia.
# - /api/landmarks?north&south&east&west  -> cache-then-backfill bounds query
# - /api/landmarks/search?q=               -> substring search (q >= 3 chars)
# - /api/landmarks/{id}, POST /api/landmarks
# - /stats and /healthz

import os
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import FiniteFloat

from landmark_cache import __version__
from landmark_cache import logging_config  # noqa: F401  # configure logging early
from landmark_cache.acquisition import LandmarkAcquirer
from landmark_cache.landmark_store import LandmarkStore
from landmark_cache.models import Landmark, LandmarkCreate
from landmark_cache.provider_wikipedia import WikipediaProvider, make_client
from landmark_cache.stats import Stats, STAT_SEARCHES

# ---- Config ----
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]
MIN_SEARCH_LENGTH = 3

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[LandmarkStore] = None,
    provider: Optional[WikipediaProvider] = None,
    stats: Optional[Stats] = None,
) -> FastAPI:
    """Build the service. Collaborators not passed in are created here;
    the provider's HTTP client and the stats Redis pool are then owned and
    closed by the app lifespan."""
    store = store if store is not None else LandmarkStore()
    owns_provider = provider is None
    owns_stats = stats is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_provider:
            app.state.acquirer.provider = WikipediaProvider(make_client())
        logger.info("landmark service v%s starting (CORS: %s)", __version__, CORS_ORIGINS)
        yield
        if owns_provider:
            await app.state.acquirer.provider.client.aclose()
        if owns_stats:
            await app.state.stats.close()
        logger.info("landmark service stopped")

    app = FastAPI(title="Landmark Map Cache", version=__version__, lifespan=lifespan)
    app.state.store = store
    app.state.stats = stats if stats is not None else Stats()
    app.state.acquirer = LandmarkAcquirer(store, provider, app.state.stats)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": jsonable_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    @app.get("/healthz")
    async def healthz():
        return {"redis_ok": await app.state.stats.redis_ok(), "landmarks": len(app.state.store)}

    @app.get("/stats")
    async def get_stats():
        out = await app.state.stats.snapshot()
        out["landmarks"] = len(app.state.store)
        return out

    @app.get("/api/landmarks", response_model=List[Landmark])
    async def landmarks_in_bounds(
        north: FiniteFloat = Query(...),
        south: FiniteFloat = Query(...),
        east: FiniteFloat = Query(...),
        west: FiniteFloat = Query(...),
    ):
        result = await app.state.acquirer.landmarks_in_bounds(north, south, east, west)
        return result.landmarks

    @app.get("/api/landmarks/search", response_model=List[Landmark])
    async def search_landmarks(q: str = Query(..., min_length=MIN_SEARCH_LENGTH)):
        await app.state.stats.incr(STAT_SEARCHES)
        return app.state.store.search(q)

    @app.get("/api/landmarks/{landmark_id}", response_model=Landmark)
    async def read_landmark(landmark_id: str):
        lm = app.state.store.get(landmark_id)
        if lm is None:
            raise HTTPException(status_code=404, detail="Landmark not found")
        return lm

    @app.post("/api/landmarks", response_model=Landmark, status_code=201)
    async def create_landmark(payload: LandmarkCreate):
        return app.state.store.insert(payload)

    return app


def jsonable_errors(exc: RequestValidationError) -> List[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


app = create_app()
