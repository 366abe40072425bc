"""Phase 1: the anchor project's (Spring Boot) own versions, the reference table later phases resolve against."""

from __future__ import annotations

import logging

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.sync import PhaseResult
from spring_catalog.services.phase_recorder import PhaseRecorder
from spring_catalog.services.project_page_client import ProjectPageClient
from spring_catalog.services.project_page_crawler_service import apply_page_versions
from spring_catalog.services.project_registry import ensure_project
from spring_catalog.services.sync_config import ANCHOR_PROJECT
from spring_catalog.services.version_reconciler import project_lock

PHASE = "boot_versions"
log = logging.getLogger(__name__)


def sync_boot_versions(store: CatalogStore, client: ProjectPageClient) -> PhaseResult:
    rec = PhaseRecorder(PHASE)
    page = client.fetch(ANCHOR_PROJECT)
    if page is None:
        return rec.finish(success=False, error_message=f"{ANCHOR_PROJECT} page data unavailable")
    if not page.versions:
        return rec.finish(success=False, error_message=f"{ANCHOR_PROJECT} page data lists no versions")

    with project_lock(ANCHOR_PROJECT), store.transaction():
        _, kind = ensure_project(store, ANCHOR_PROJECT, page.title or "Spring Boot", page.description)
        rec.record(kind, "project", ANCHOR_PROJECT)
        rec.extend(apply_page_versions(store, page))

    log.info("Synced %d %s versions from page data", len(page.versions), ANCHOR_PROJECT)
    return rec.finish()
