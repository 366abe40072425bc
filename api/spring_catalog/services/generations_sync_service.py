"""Phase 2: map each Spring Boot generation to the project generations it supports.

Anchor generations ("3.5.x") are resolved against the Boot versions phase 1
stored; an anchor that cannot be resolved is counted as an error and its
mappings are skipped. Every target pattern is stored as a placeholder version
(patch unset) so the link exists before that project's concrete versions are
crawled; phase 4 re-expands the matrix once they are.
"""

from __future__ import annotations

import logging
from typing import Optional

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import Version, VersionState
from spring_catalog.models.sync import PhaseResult
from spring_catalog.services.compatibility_matrix import expand
from spring_catalog.services.generations_client import GenerationMapping, GenerationsClient
from spring_catalog.services.phase_recorder import PhaseRecorder
from spring_catalog.services.project_registry import ensure_project
from spring_catalog.services.sync_config import ANCHOR_PROJECT
from spring_catalog.services.version_parser import UNPARSEABLE, is_generation_pattern, parse_version
from spring_catalog.services.version_reconciler import reconcile

PHASE = "generations"
log = logging.getLogger(__name__)


def find_anchor_version(store: CatalogStore, pattern: str) -> Optional[Version]:
    """Exact match first; for "X.Y.x" the best X.Y version (latest, then GA, then highest patch)."""
    exact = store.get_version(ANCHOR_PROJECT, pattern)
    if exact is not None:
        return exact
    if not is_generation_pattern(pattern):
        return None
    parsed = parse_version(pattern)
    candidates = store.find_versions(ANCHOR_PROJECT, parsed.major, parsed.minor)
    if not candidates:
        return None
    return max(candidates, key=lambda v: (v.is_latest, v.state == VersionState.GA, v.sort_key()))


def _apply_mapping(store: CatalogStore, rec: PhaseRecorder, anchor: Version, mapping: GenerationMapping) -> None:
    project, kind = ensure_project(store, mapping.project_slug, mapping.project_name)
    rec.record(kind, "project", project.slug)
    if parse_version(mapping.pattern) == UNPARSEABLE:
        raise ValueError(f"unparseable generation pattern {mapping.pattern!r}")
    target, kind = reconcile(store, project.slug, mapping.pattern)
    rec.record(kind, "version", f"{project.slug}@{target.version}")
    rec.extend(
        expand(store, ANCHOR_PROJECT, anchor.major, anchor.minor, project.slug, target.major, target.minor)
    )


def sync_generations(store: CatalogStore, client: GenerationsClient) -> PhaseResult:
    rec = PhaseRecorder(PHASE)
    snapshot = client.fetch()
    if snapshot is None:
        return rec.finish(success=False, error_message="generations data unavailable")
    if not snapshot.generations:
        return rec.finish(success=False, error_message="generations data has no Boot generations")

    with store.transaction():
        for generation in snapshot.generations:
            anchor = find_anchor_version(store, generation.version)
            if anchor is None:
                rec.error(
                    "compatibility",
                    f"{ANCHOR_PROJECT}@{generation.version}",
                    "anchor version not synced; mappings skipped",
                )
                continue
            log.debug("Generation %s resolved to %s", generation.version, anchor.version)
            for mapping in generation.mappings:
                try:
                    _apply_mapping(store, rec, anchor, mapping)
                except ValueError as e:
                    rec.error("version", f"{mapping.project_slug}@{mapping.pattern}", str(e))

    log.info("Processed %d Boot generations", len(snapshot.generations))
    return rec.finish()
