"""Per-project page crawl: enrich every known project's versions with doc URLs and support dates.

Projects are crawled on a thread pool. Each worker fetches outside any
transaction, then writes its project under that project's lock inside its own
store transaction, so one project's failure rolls back only its own writes.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import VersionState
from spring_catalog.models.sync import ItemOutcome, OutcomeKind, PhaseResult
from spring_catalog.services import sync_config
from spring_catalog.services.compatibility_matrix import refresh_matrix
from spring_catalog.services.phase_recorder import PhaseRecorder
from spring_catalog.services.project_page_client import ProjectPageClient, ProjectPageData
from spring_catalog.services.project_registry import ensure_project
from spring_catalog.services.version_parser import classify_state
from spring_catalog.services.version_reconciler import (
    project_lock,
    promote_latest,
    reconcile,
    refresh_latest_stable,
)

PHASE = "project_crawl"
log = logging.getLogger(__name__)


def apply_page_versions(store: CatalogStore, page: ProjectPageData) -> list[ItemOutcome]:
    """Reconcile every documented version of a page, then settle the latest flag.

    The version flagged `current` wins when it is GA; otherwise the highest GA does.
    """
    outcomes: list[ItemOutcome] = []
    for pv in page.versions:
        key = f"{page.slug}@{pv.version}"
        try:
            _, kind = reconcile(store, page.slug, pv.version, pv.observed, pv.status_token)
        except ValueError as e:
            outcomes.append(ItemOutcome(kind=OutcomeKind.ERROR, entity="version", key=key, detail=str(e)))
            continue
        outcomes.append(ItemOutcome(kind=kind, entity="version", key=key))

    current = page.current_version()
    if current and classify_state(current) == VersionState.GA:
        promote_latest(store, page.slug, current)
    else:
        refresh_latest_stable(store, page.slug)
    return outcomes


def crawl_project(store: CatalogStore, client: ProjectPageClient, slug: str) -> list[ItemOutcome]:
    page = client.fetch(slug)
    if page is None:
        return [ItemOutcome(kind=OutcomeKind.ERROR, entity="project", key=slug, detail="page data unavailable")]
    if not page.versions:
        return [ItemOutcome(kind=OutcomeKind.SKIPPED, entity="project", key=slug, detail="no documented versions")]
    with project_lock(slug), store.transaction():
        _, kind = ensure_project(store, slug, page.title, page.description)
        outcomes = [ItemOutcome(kind=kind, entity="project", key=slug)]
        outcomes.extend(apply_page_versions(store, page))
    return outcomes


def crawl_projects(
    store: CatalogStore,
    client: ProjectPageClient,
    workers: Optional[int] = None,
) -> PhaseResult:
    rec = PhaseRecorder(PHASE)
    slugs = [p.slug for p in store.list_projects()]
    failed_projects = 0
    log.info("Crawling page data for %d projects", len(slugs))

    with ThreadPoolExecutor(max_workers=workers or sync_config.crawl_workers()) as pool:
        futures = {pool.submit(crawl_project, store, client, slug): slug for slug in slugs}
        for future in as_completed(futures):
            slug = futures[future]
            try:
                outcomes = future.result()
            except Exception as e:
                log.warning("Crawl of %s failed", slug, exc_info=True)
                rec.error("project", slug, f"{type(e).__name__}: {e}")
                failed_projects += 1
                continue
            if any(o.kind == OutcomeKind.ERROR and o.entity == "project" for o in outcomes):
                failed_projects += 1
            rec.extend(outcomes)

    with store.transaction():
        rec.extend(refresh_matrix(store))

    # Tolerate a minority of unreachable project pages.
    success = failed_projects <= len(slugs) / 2
    message = None if success else f"{failed_projects} of {len(slugs)} project crawls failed"
    return rec.finish(success=success, error_message=message)
