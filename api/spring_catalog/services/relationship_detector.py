"""Parent/child project hierarchy from the projects navigation plus a static fallback table."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import ProjectRelationship
from spring_catalog.models.sync import OutcomeKind, PhaseResult
from spring_catalog.services.navigation_client import NavigationClient
from spring_catalog.services.phase_recorder import PhaseRecorder

PHASE = "relationships"
log = logging.getLogger(__name__)


def merge_hierarchy(
    discovered: Mapping[str, Iterable[str]],
    fallback: Mapping[str, Iterable[str]],
) -> dict[str, list[str]]:
    """Union discovered and fallback children per parent; discovered order comes first."""
    merged: dict[str, list[str]] = {parent: list(children) for parent, children in discovered.items()}
    for parent, children in fallback.items():
        known = merged.setdefault(parent, [])
        for child in children:
            if child not in known:
                known.append(child)
    return merged


def link_projects(store: CatalogStore, rec: PhaseRecorder, hierarchy: Mapping[str, Iterable[str]]) -> None:
    for parent, children in hierarchy.items():
        parent_known = store.get_project(parent) is not None
        for child in children:
            key = f"{parent}->{child}"
            if not parent_known:
                rec.skip("relationship", key, f"parent project {parent} not synced")
            elif store.get_project(child) is None:
                rec.skip("relationship", key, f"child project {child} not synced")
            elif store.relationship_exists(parent, child):
                rec.record(OutcomeKind.UNCHANGED, "relationship", key)
            else:
                store.add_relationship(ProjectRelationship(parent_slug=parent, child_slug=child))
                rec.record(OutcomeKind.CREATED, "relationship", key)


def sync_relationships(
    store: CatalogStore,
    client: NavigationClient,
    fallback: Mapping[str, Iterable[str]],
) -> PhaseResult:
    rec = PhaseRecorder(PHASE)
    discovered = client.fetch()
    if discovered is None:
        log.warning("Projects navigation unavailable; applying fallback hierarchy only")
    else:
        log.info("Navigation lists %d parent projects", len(discovered))

    with store.transaction():
        link_projects(store, rec, merge_hierarchy(discovered or {}, fallback))

    if discovered is None:
        return rec.finish(success=False, error_message="projects navigation unavailable")
    return rec.finish()
