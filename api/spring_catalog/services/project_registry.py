"""Canonical Project records: created on first reference, descriptive gaps filled later."""

from __future__ import annotations

import logging
from typing import Optional

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import Project
from spring_catalog.models.sync import OutcomeKind

log = logging.getLogger(__name__)


def format_project_name(slug: str | None) -> str:
    """spring-data-jpa -> Spring Data Jpa."""
    if not slug:
        return "Unknown"
    return " ".join(part[:1].upper() + part[1:] for part in slug.split("-") if part)


def homepage_url(slug: str) -> str:
    return f"https://spring.io/projects/{slug}"


def repository_url(slug: str) -> str:
    return f"https://github.com/spring-projects/{slug}"


def ensure_project(
    store: CatalogStore,
    slug: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> tuple[Project, OutcomeKind]:
    """Find the project by slug or create it with defaults derived from the slug."""
    slug = slug.strip().lower()
    existing = store.get_project(slug)
    if existing is None:
        display = (name or "").strip() or format_project_name(slug)
        project = Project(
            slug=slug,
            name=display,
            description=(description or "").strip() or display,
            homepage_url=homepage_url(slug),
            repository_url=repository_url(slug),
            active=True,
        )
        store.save_project(project)
        log.info("Created project %s (%s)", project.name, slug)
        return project, OutcomeKind.CREATED

    updates: dict[str, str] = {}
    if not existing.name and name:
        updates["name"] = name.strip()
    if not existing.description and description:
        updates["description"] = description.strip()
    if not existing.homepage_url:
        updates["homepage_url"] = homepage_url(slug)
    if not existing.repository_url:
        updates["repository_url"] = repository_url(slug)
    if not updates:
        return existing, OutcomeKind.UNCHANGED
    project = existing.model_copy(update=updates)
    store.save_project(project)
    return project, OutcomeKind.UPDATED
