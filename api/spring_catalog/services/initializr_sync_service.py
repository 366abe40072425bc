"""Phase 3: Boot versions offered by Spring Initializr, plus its default version."""

from __future__ import annotations

import logging

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import VersionState
from spring_catalog.models.sync import PhaseResult
from spring_catalog.services.initializr_client import InitializrClient
from spring_catalog.services.phase_recorder import PhaseRecorder
from spring_catalog.services.project_registry import ensure_project
from spring_catalog.services.sync_config import ANCHOR_PROJECT
from spring_catalog.services.version_parser import normalize_version
from spring_catalog.services.version_reconciler import (
    mark_default,
    project_lock,
    promote_latest,
    reconcile,
)

PHASE = "initializr"
log = logging.getLogger(__name__)


def sync_initializr(store: CatalogStore, client: InitializrClient) -> PhaseResult:
    rec = PhaseRecorder(PHASE)
    metadata = client.fetch()
    if metadata is None:
        return rec.finish(success=False, error_message="Initializr metadata unavailable")
    if not metadata.versions:
        return rec.finish(success=False, error_message="Initializr metadata lists no Boot versions")

    with project_lock(ANCHOR_PROJECT), store.transaction():
        _, kind = ensure_project(store, ANCHOR_PROJECT, "Spring Boot")
        rec.record(kind, "project", ANCHOR_PROJECT)
        for offered in metadata.versions:
            version = normalize_version(offered.id)
            try:
                _, kind = reconcile(store, ANCHOR_PROJECT, version)
            except ValueError as e:
                rec.error("version", f"{ANCHOR_PROJECT}@{offered.id}", str(e))
                continue
            rec.record(kind, "version", f"{ANCHOR_PROJECT}@{version}")

        if metadata.default_version:
            default = normalize_version(metadata.default_version)
            if mark_default(store, ANCHOR_PROJECT, default):
                target = store.get_version(ANCHOR_PROJECT, default)
                has_latest = any(v.is_latest for v in store.list_versions(ANCHOR_PROJECT))
                # Page data's "current" flag owns latest; the default only fills the gap.
                if target is not None and target.state == VersionState.GA and not has_latest:
                    promote_latest(store, ANCHOR_PROJECT, default)

    log.info("Initializr offered %d Boot versions (default %s)", len(metadata.versions), metadata.default_version)
    return rec.finish()
