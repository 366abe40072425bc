"""Per-project page data client (spring.io Gatsby page-data JSON).

`documentation[]` and `support.generations[]` are published independently;
they are cross-matched here by major.minor so callers get one record per
documented version with its support dates attached.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, Field

from spring_catalog.models.catalog import ObservedVersionFields
from spring_catalog.services import sync_config
from spring_catalog.services.http_fetch import Fetcher, json_path
from spring_catalog.services.version_parser import (
    is_generation_pattern,
    parse_version,
    parse_year_month,
    status_label,
    substitute_version,
)

log = logging.getLogger(__name__)


class DocumentationEntry(BaseModel):
    version: str
    reference_doc_url: Optional[str] = None
    api_doc_url: Optional[str] = None
    current: bool = False
    status: Optional[str] = None  # GENERAL_AVAILABILITY | PRERELEASE | SNAPSHOT


class SupportGeneration(BaseModel):
    generation: str  # "3.5.x"
    initial_release: Optional[date] = None
    oss_support_end: Optional[date] = None
    enterprise_support_end: Optional[date] = None


class PageVersion(BaseModel):
    """A documented version merged with its generation's support window."""

    version: str
    current: bool = False
    status_token: Optional[str] = None
    observed: ObservedVersionFields = Field(default_factory=ObservedVersionFields)


class ProjectPageData(BaseModel):
    slug: str
    title: Optional[str] = None
    description: Optional[str] = None
    documentation: list[DocumentationEntry] = Field(default_factory=list)
    generations: list[SupportGeneration] = Field(default_factory=list)
    versions: list[PageVersion] = Field(default_factory=list)

    def current_version(self) -> Optional[str]:
        for v in self.versions:
            if v.current:
                return v.version
        return None


def _text(node: Any, key: str) -> Optional[str]:
    if not isinstance(node, dict):
        return None
    value = node.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_documentation(raw: Any) -> list[DocumentationEntry]:
    out: list[DocumentationEntry] = []
    if not isinstance(raw, list):
        return out
    for node in raw:
        version = _text(node, "version")
        if not version:
            log.debug("Skipping documentation entry without version: %r", node)
            continue
        out.append(
            DocumentationEntry(
                version=version,
                reference_doc_url=substitute_version(_text(node, "ref"), version),
                api_doc_url=substitute_version(_text(node, "api"), version),
                current=bool(node.get("current")),
                status=_text(node, "status"),
            )
        )
    return out


def _parse_generations(raw: Any) -> list[SupportGeneration]:
    out: list[SupportGeneration] = []
    if not isinstance(raw, list):
        return out
    for node in raw:
        generation = _text(node, "generation")
        if not generation:
            continue
        out.append(
            SupportGeneration(
                generation=generation,
                initial_release=parse_year_month(_text(node, "initialRelease")),
                oss_support_end=parse_year_month(_text(node, "ossSupportEnd")),
                enterprise_support_end=parse_year_month(_text(node, "enterpriseSupportEnd")),
            )
        )
    return out


def merge_support_dates(
    documentation: list[DocumentationEntry], generations: list[SupportGeneration]
) -> list[PageVersion]:
    """Attach each generation's dates to every documented version with the same major.minor."""
    by_class: dict[tuple[int, int], SupportGeneration] = {}
    for gen in generations:
        parsed = parse_version(gen.generation)
        by_class.setdefault((parsed.major, parsed.minor), gen)

    out: list[PageVersion] = []
    for entry in documentation:
        if is_generation_pattern(entry.version):
            continue
        parsed = parse_version(entry.version)
        gen = by_class.get((parsed.major, parsed.minor))
        out.append(
            PageVersion(
                version=entry.version,
                current=entry.current,
                status_token=entry.status,
                observed=ObservedVersionFields(
                    reference_doc_url=entry.reference_doc_url,
                    api_doc_url=entry.api_doc_url,
                    release_date=gen.initial_release if gen else None,
                    oss_support_end=gen.oss_support_end if gen else None,
                    enterprise_support_end=gen.enterprise_support_end if gen else None,
                    status=status_label(entry.status, entry.current),
                ),
            )
        )
    return out


def parse_project_page(slug: str, payload: Any) -> ProjectPageData:
    fields = json_path(payload, "result", "data", "page", "fields")
    if not isinstance(fields, dict):
        fields = {}
    if not fields:
        log.info("No page fields in page data for %s", slug)
    documentation = _parse_documentation(fields.get("documentation"))
    generations = _parse_generations(json_path(fields, "support", "generations"))
    return ProjectPageData(
        slug=slug,
        title=_text(fields, "title"),
        description=_text(fields, "description"),
        documentation=documentation,
        generations=generations,
        versions=merge_support_dates(documentation, generations),
    )


class ProjectPageClient:
    def __init__(self, fetcher: Fetcher, base_url: Optional[str] = None) -> None:
        self._fetcher = fetcher
        self._base_url = (base_url or sync_config.spring_io_base_url()).rstrip("/")

    def page_data_url(self, slug: str) -> str:
        return f"{self._base_url}/page-data/projects/{slug}/page-data.json"

    def fetch(self, slug: str) -> Optional[ProjectPageData]:
        """Fetch and parse one project's page data. None when the fetch failed."""
        payload = self._fetcher.fetch_json(self.page_data_url(slug))
        if payload is None:
            return None
        return parse_project_page(slug, payload)
