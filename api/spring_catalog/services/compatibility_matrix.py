"""Expand generation-level compatibility ("Boot 3.5.x supports Batch 5.2.x") into concrete version links."""

from __future__ import annotations

import logging

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import CompatibilityLink
from spring_catalog.models.sync import ItemOutcome, OutcomeKind
from spring_catalog.services.sync_config import ANCHOR_PROJECT
from spring_catalog.services.version_parser import parse_version

log = logging.getLogger(__name__)


def _link_key(anchor_slug: str, anchor_version: str, target_slug: str, target_version: str) -> str:
    return f"{anchor_slug}@{anchor_version}->{target_slug}@{target_version}"


def expand(
    store: CatalogStore,
    anchor_slug: str,
    anchor_major: int,
    anchor_minor: int,
    target_slug: str,
    target_major: int,
    target_minor: int,
) -> list[ItemOutcome]:
    """Link every persisted anchor X.Y.* version to every persisted target A.B.* version.

    Existing pairs are looked up first and reported as unchanged.
    """
    anchors = store.find_versions(anchor_slug, anchor_major, anchor_minor)
    targets = store.find_versions(target_slug, target_major, target_minor)
    outcomes: list[ItemOutcome] = []
    for anchor in anchors:
        for target in targets:
            key = _link_key(anchor.project_slug, anchor.version, target.project_slug, target.version)
            if store.compatibility_exists(anchor.project_slug, anchor.version, target.project_slug, target.version):
                outcomes.append(ItemOutcome(kind=OutcomeKind.UNCHANGED, entity="compatibility", key=key))
                continue
            store.add_compatibility(
                CompatibilityLink(
                    anchor_slug=anchor.project_slug,
                    anchor_version=anchor.version,
                    target_slug=target.project_slug,
                    target_version=target.version,
                )
            )
            outcomes.append(ItemOutcome(kind=OutcomeKind.CREATED, entity="compatibility", key=key))

    created = sum(1 for o in outcomes if o.kind == OutcomeKind.CREATED)
    if created:
        log.debug(
            "Created %d compatibility links: %s %d.%d.x -> %s %d.%d.x",
            created, anchor_slug, anchor_major, anchor_minor, target_slug, target_major, target_minor,
        )
    return outcomes


def refresh_matrix(store: CatalogStore, anchor_slug: str = ANCHOR_PROJECT) -> list[ItemOutcome]:
    """Re-expand every generation class already linked, picking up versions discovered since."""
    classes: set[tuple[int, int, str, int, int]] = set()
    for link in store.list_compatibility(anchor_slug):
        a = parse_version(link.anchor_version)
        t = parse_version(link.target_version)
        classes.add((a.major, a.minor, link.target_slug, t.major, t.minor))

    outcomes: list[ItemOutcome] = []
    for anchor_major, anchor_minor, target_slug, target_major, target_minor in sorted(classes):
        outcomes.extend(
            expand(store, anchor_slug, anchor_major, anchor_minor, target_slug, target_major, target_minor)
        )
    return outcomes
