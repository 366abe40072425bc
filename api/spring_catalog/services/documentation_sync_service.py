"""Phase 6: project overview documentation, stored only when its content hash changes."""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import DocumentationContent, Version
from spring_catalog.models.sync import OutcomeKind, PhaseResult
from spring_catalog.services import sync_config
from spring_catalog.services.overview_client import OverviewClient, ProjectOverview
from spring_catalog.services.phase_recorder import PhaseRecorder

PHASE = "documentation"
log = logging.getLogger(__name__)


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def documentation_url(slug: str, docs_base_url: Optional[str] = None) -> str:
    return f"{(docs_base_url or sync_config.spring_docs_base_url()).rstrip('/')}/{slug}/index.html"


def target_version(store: CatalogStore, slug: str) -> Optional[Version]:
    """The latest version, else the first (highest) one stored."""
    versions = store.list_versions(slug)
    for v in versions:
        if v.is_latest:
            return v
    return versions[0] if versions else None


def store_overview(
    store: CatalogStore,
    slug: str,
    version: Version,
    overview: ProjectOverview,
    docs_base_url: Optional[str] = None,
) -> OutcomeKind:
    now = datetime.now(timezone.utc)
    url = documentation_url(slug, docs_base_url)
    digest = content_hash(overview.markdown)
    existing = store.get_documentation(url)
    if existing is not None and existing.content_hash == digest:
        store.save_documentation(existing.model_copy(update={"last_fetched": now}))
        return OutcomeKind.UNCHANGED

    project = store.get_project(slug)
    name = project.name if project is not None else slug
    store.save_documentation(
        DocumentationContent(
            url=url,
            project_slug=slug,
            version=version.version,
            title=f"{name} Documentation",
            description=overview.description or f"Overview documentation for {name}",
            content_hash=digest,
            content=overview.markdown,
            metadata={
                "source_url": overview.url,
                "content_type": "text/markdown",
                "content_length": len(overview.markdown),
            },
            last_fetched=now,
        )
    )
    return OutcomeKind.CREATED if existing is None else OutcomeKind.UPDATED


def sync_documentation(
    store: CatalogStore,
    client: OverviewClient,
    docs_base_url: Optional[str] = None,
) -> PhaseResult:
    rec = PhaseRecorder(PHASE)
    fetched: list[tuple[str, ProjectOverview]] = []
    for project in store.list_projects(active_only=True):
        overview = client.fetch(project.slug)
        if overview is None:
            rec.skip("documentation", project.slug, "overview page unavailable")
        elif not overview.markdown.strip():
            rec.skip("documentation", project.slug, "overview page has no content")
        else:
            fetched.append((project.slug, overview))

    with store.transaction():
        for slug, overview in fetched:
            version = target_version(store, slug)
            if version is None:
                rec.skip("documentation", slug, "project has no versions")
                continue
            try:
                kind = store_overview(store, slug, version, overview, docs_base_url)
            except ValueError as e:
                rec.error("documentation", slug, str(e))
                continue
            rec.record(kind, "documentation", documentation_url(slug, docs_base_url))

    errors = rec.count(OutcomeKind.ERROR)
    return rec.finish(
        success=errors == 0,
        error_message=f"{errors} documentation updates failed" if errors else None,
    )
