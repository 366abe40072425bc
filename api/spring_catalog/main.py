from __future__ import annotations

import logging
import os
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from spring_catalog.adapters.catalog_store import InMemoryCatalogStore
from spring_catalog.adapters.sql_store import SqlCatalogStore, database_url
from spring_catalog.routers import health, projects, sync
from spring_catalog.models.sync import SyncProgressEvent
from spring_catalog.services.comprehensive_sync_service import ComprehensiveSync

app = FastAPI(title="Spring Catalog API", version="1.0.0")
logger = logging.getLogger("spring_catalog")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
logger.propagate = False
logger.setLevel(os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO")


# Configure CORS
allowed_origins_str = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _default_store_path() -> str:
    api_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(api_dir, "logs", "catalog_store.json")


url = database_url()
if url:
    app.state.catalog_store = SqlCatalogStore(url)
    logger.info("Catalog store: SQL (%s)", url.split("://", 1)[0])
else:
    persist_path = os.getenv("CATALOG_STORE_PATH") or _default_store_path()
    app.state.catalog_store = InMemoryCatalogStore(persist_path=persist_path)
    logger.info("Catalog store: in-memory (persist to %s)", persist_path)
app.state.sync_service = ComprehensiveSync(app.state.catalog_store)


def _persist_on_completion(event: SyncProgressEvent) -> None:
    store = app.state.catalog_store
    if event.completed and isinstance(store, InMemoryCatalogStore):
        store.save()


app.state.sync_service.progress.add_listener(_persist_on_completion)


def _slow_request_ms_threshold() -> float:
    raw = os.getenv("API_SLOW_REQUEST_MS", "1500").strip()
    try:
        return max(25.0, float(raw))
    except ValueError:
        return 1500.0


@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    if elapsed_ms >= _slow_request_ms_threshold():
        logger.warning(
            "slow request method=%s path=%s status=%d elapsed_ms=%.1f",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
    return response


@app.get("/")
async def root():
    return {"name": "Spring Catalog API", "version": "1.0.0", "docs": "/docs", "health": "/api/health"}


app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(projects.router, prefix="/api", tags=["projects"])
app.include_router(sync.router, prefix="/api", tags=["sync"])
