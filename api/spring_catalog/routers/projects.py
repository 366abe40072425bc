"""Catalog read API: project search, versions, the n-2 active window and compatibility."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import CodeExample, CompatibilityLink, Project, ProjectSummary, Version
from spring_catalog.models.error import ErrorDetail
from spring_catalog.services import version_reconciler
from spring_catalog.services.sync_config import ANCHOR_PROJECT

router = APIRouter()

_NOT_FOUND = {404: {"model": ErrorDetail}}


def get_store(request: Request) -> CatalogStore:
    return request.app.state.catalog_store


def _require_project(store: CatalogStore, slug: str) -> Project:
    project = store.get_project(slug)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("/search")
async def search_projects(
    q: str = Query(..., min_length=1, description="Search query (substring match)."),
    limit: int = Query(20, ge=1, le=200),
    store: CatalogStore = Depends(get_store),
) -> dict:
    results: list[ProjectSummary] = store.search(q, limit=limit)
    return {"results": [r.model_dump(mode="json") for r in results], "total": len(results)}


@router.get("/projects", response_model=list[Project])
async def list_projects(
    active_only: bool = Query(False),
    store: CatalogStore = Depends(get_store),
) -> list[Project]:
    return store.list_projects(active_only=active_only)


@router.get("/projects/{slug}", response_model=Project, responses=_NOT_FOUND)
async def get_project(slug: str, store: CatalogStore = Depends(get_store)) -> Project:
    return _require_project(store, slug)


@router.get("/projects/{slug}/versions", response_model=list[Version], responses=_NOT_FOUND)
async def list_versions(slug: str, store: CatalogStore = Depends(get_store)) -> list[Version]:
    _require_project(store, slug)
    return store.list_versions(slug)


@router.get("/projects/{slug}/versions/active", response_model=list[Version], responses=_NOT_FOUND)
async def list_active_versions(slug: str, store: CatalogStore = Depends(get_store)) -> list[Version]:
    _require_project(store, slug)
    return version_reconciler.active_versions(store, slug)


@router.get("/projects/{slug}/children", responses=_NOT_FOUND)
async def list_children(slug: str, store: CatalogStore = Depends(get_store)) -> dict:
    _require_project(store, slug)
    children = store.list_children(slug)
    return {"parent": slug, "children": children, "total": len(children)}


@router.get("/projects/{slug}/examples", response_model=list[CodeExample], responses=_NOT_FOUND)
async def list_examples(slug: str, store: CatalogStore = Depends(get_store)) -> list[CodeExample]:
    _require_project(store, slug)
    return store.list_code_examples(slug)


@router.get("/compatibility/{anchor_version}", responses=_NOT_FOUND)
async def get_compatibility(anchor_version: str, store: CatalogStore = Depends(get_store)) -> dict:
    """Project versions linked to one Spring Boot version, grouped by project slug."""
    if store.get_version(ANCHOR_PROJECT, anchor_version) is None:
        raise HTTPException(status_code=404, detail="Version not found")
    links: list[CompatibilityLink] = [
        link for link in store.list_compatibility(ANCHOR_PROJECT) if link.anchor_version == anchor_version
    ]
    grouped: dict[str, list[str]] = {}
    for link in links:
        grouped.setdefault(link.target_slug, []).append(link.target_version)
    return {
        "anchor": {"project": ANCHOR_PROJECT, "version": anchor_version},
        "projects": {slug: sorted(versions) for slug, versions in sorted(grouped.items())},
        "total": len(links),
    }
