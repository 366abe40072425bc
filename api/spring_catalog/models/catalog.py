"""Catalog models: projects, versions and the links between them."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VersionState(str, Enum):
    GA = "GA"
    RC = "RC"
    MILESTONE = "MILESTONE"
    SNAPSHOT = "SNAPSHOT"


class Project(BaseModel):
    """Full project data for GET /api/projects/{slug}."""

    slug: str = Field(min_length=1)
    name: str
    description: Optional[str] = None
    homepage_url: Optional[str] = None
    repository_url: Optional[str] = None
    active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class ProjectSummary(BaseModel):
    """Summary for search results."""

    slug: str
    name: str
    description: str


class Version(BaseModel):
    project_slug: str = Field(min_length=1)
    version: str = Field(min_length=1)
    major: int = Field(default=0, ge=0)
    minor: int = Field(default=0, ge=0)
    patch: Optional[int] = Field(default=None, ge=0)
    state: VersionState = VersionState.GA
    is_latest: bool = False
    is_default: bool = False
    release_date: Optional[date] = None
    oss_support_end: Optional[date] = None
    enterprise_support_end: Optional[date] = None
    reference_doc_url: Optional[str] = None
    api_doc_url: Optional[str] = None
    status: Optional[str] = None  # CURRENT | GA | PRE | SNAPSHOT
    created_at: datetime = Field(default_factory=_utcnow)

    def sort_key(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch if self.patch is not None else -1)


class ObservedVersionFields(BaseModel):
    """Fields a source observed for a version; None means 'not observed'."""

    reference_doc_url: Optional[str] = None
    api_doc_url: Optional[str] = None
    release_date: Optional[date] = None
    oss_support_end: Optional[date] = None
    enterprise_support_end: Optional[date] = None
    status: Optional[str] = None


class CompatibilityLink(BaseModel):
    anchor_slug: str
    anchor_version: str
    target_slug: str
    target_version: str
    created_at: datetime = Field(default_factory=_utcnow)


class ProjectRelationship(BaseModel):
    parent_slug: str
    child_slug: str
    created_at: datetime = Field(default_factory=_utcnow)


class DocumentationContent(BaseModel):
    """Documentation link for a project version plus the last fetched content."""

    url: str = Field(min_length=1)
    project_slug: str
    version: str
    title: str
    description: str = ""
    content_hash: Optional[str] = None
    content: Optional[str] = None
    metadata: dict[str, str | int] = Field(default_factory=dict)
    last_fetched: Optional[datetime] = None


class CodeExample(BaseModel):
    project_slug: str
    version: str
    title: str = Field(min_length=1)
    description: str = ""
    code: str = ""
    language: str = "java"
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    source_url: str
    created_at: datetime = Field(default_factory=_utcnow)
