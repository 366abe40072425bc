"""CatalogStore abstraction + in-memory backend.

The sync pipeline treats persistence as a keyed store: find by natural key,
save (upsert) and exists checks per entity, plus a transaction scope that a
phase or a single crawled project writes inside.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
from contextlib import contextmanager
from typing import ContextManager, Iterator, Optional, Protocol

from pydantic import ValidationError

from spring_catalog.models.catalog import (
    CodeExample,
    CompatibilityLink,
    DocumentationContent,
    Project,
    ProjectRelationship,
    ProjectSummary,
    Version,
)

log = logging.getLogger(__name__)


def _key(slug: str) -> str:
    return slug.strip().lower()


def _version_key(slug: str, version: str) -> tuple[str, str]:
    return (_key(slug), version.strip())


class CatalogStore(Protocol):
    """Protocol for catalog storage. Implementations: InMemoryCatalogStore, SqlCatalogStore."""

    def transaction(self) -> ContextManager[None]:
        """Commit everything written inside on success, roll it back on error. Nests."""
        ...

    # --- projects ---

    def get_project(self, slug: str) -> Optional[Project]:
        ...

    def save_project(self, project: Project) -> None:
        ...

    def list_projects(self, active_only: bool = False) -> list[Project]:
        ...

    def count_projects(self) -> int:
        ...

    def search(self, query: str, limit: int = 20) -> list[ProjectSummary]:
        ...

    # --- versions ---

    def get_version(self, project_slug: str, version: str) -> Optional[Version]:
        ...

    def save_version(self, version: Version) -> None:
        ...

    def list_versions(self, project_slug: str) -> list[Version]:
        ...

    def find_versions(self, project_slug: str, major: int, minor: int) -> list[Version]:
        ...

    # --- compatibility ---

    def compatibility_exists(
        self, anchor_slug: str, anchor_version: str, target_slug: str, target_version: str
    ) -> bool:
        ...

    def add_compatibility(self, link: CompatibilityLink) -> None:
        ...

    def list_compatibility(self, anchor_slug: Optional[str] = None) -> list[CompatibilityLink]:
        ...

    # --- relationships ---

    def relationship_exists(self, parent_slug: str, child_slug: str) -> bool:
        ...

    def add_relationship(self, relationship: ProjectRelationship) -> None:
        ...

    def list_children(self, parent_slug: str) -> list[str]:
        ...

    # --- documentation + examples ---

    def get_documentation(self, url: str) -> Optional[DocumentationContent]:
        ...

    def save_documentation(self, doc: DocumentationContent) -> None:
        ...

    def code_example_exists(self, project_slug: str, version: str, title: str, source_url: str) -> bool:
        ...

    def add_code_example(self, example: CodeExample) -> None:
        ...

    def list_code_examples(self, project_slug: str) -> list[CodeExample]:
        ...


class InMemoryCatalogStore:
    """In-memory CatalogStore. Optional JSON persistence for restart.

    One re-entrant lock guards all state; a transaction holds it for its whole
    scope and restores a snapshot when the block raises.
    """

    def __init__(self, persist_path: Optional[str] = None) -> None:
        self._projects: dict[str, Project] = {}
        self._versions: dict[tuple[str, str], Version] = {}
        self._compat: dict[tuple[str, str, str, str], CompatibilityLink] = {}
        self._relationships: dict[tuple[str, str], ProjectRelationship] = {}
        self._docs: dict[str, DocumentationContent] = {}
        self._examples: dict[tuple[str, str, str, str], CodeExample] = {}
        self._persist_path = persist_path
        self._lock = threading.RLock()
        self._tx_depth = 0

        if persist_path and os.path.isfile(persist_path):
            self._load()

    def _state(self) -> tuple:
        return (
            self._projects,
            self._versions,
            self._compat,
            self._relationships,
            self._docs,
            self._examples,
        )

    def _restore(self, state: tuple) -> None:
        (
            self._projects,
            self._versions,
            self._compat,
            self._relationships,
            self._docs,
            self._examples,
        ) = state

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = copy.deepcopy(self._state()) if self._tx_depth == 0 else None
            self._tx_depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                raise
            finally:
                self._tx_depth -= 1

    def _load(self) -> None:
        if not self._persist_path:
            return
        try:
            with open(self._persist_path, encoding="utf-8") as f:
                data = json.load(f)
            for p in data.get("projects", []):
                proj = Project(**p)
                self._projects[_key(proj.slug)] = proj
            for v in data.get("versions", []):
                ver = Version(**v)
                self._versions[_version_key(ver.project_slug, ver.version)] = ver
            for c in data.get("compatibility", []):
                link = CompatibilityLink(**c)
                self._compat[self._compat_key(
                    link.anchor_slug, link.anchor_version, link.target_slug, link.target_version
                )] = link
            for r in data.get("relationships", []):
                rel = ProjectRelationship(**r)
                self._relationships[(_key(rel.parent_slug), _key(rel.child_slug))] = rel
            for d in data.get("documentation", []):
                doc = DocumentationContent(**d)
                self._docs[doc.url] = doc
            for e in data.get("code_examples", []):
                ex = CodeExample(**e)
                self._examples[self._example_key(ex.project_slug, ex.version, ex.title, ex.source_url)] = ex
        except (json.JSONDecodeError, OSError, ValidationError) as e:
            log.warning("Ignoring unreadable catalog store %s: %s", self._persist_path, e)

    def save(self) -> None:
        """Persist to JSON if path set."""
        if not self._persist_path:
            return
        os.makedirs(os.path.dirname(self._persist_path) or ".", exist_ok=True)
        with self._lock:
            data = {
                "projects": [p.model_dump(mode="json") for p in self._projects.values()],
                "versions": [v.model_dump(mode="json") for v in self._versions.values()],
                "compatibility": [c.model_dump(mode="json") for c in self._compat.values()],
                "relationships": [r.model_dump(mode="json") for r in self._relationships.values()],
                "documentation": [d.model_dump(mode="json") for d in self._docs.values()],
                "code_examples": [e.model_dump(mode="json") for e in self._examples.values()],
            }
        with open(self._persist_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=0)

    # --- projects ---

    def get_project(self, slug: str) -> Optional[Project]:
        with self._lock:
            return self._projects.get(_key(slug))

    def save_project(self, project: Project) -> None:
        with self._lock:
            self._projects[_key(project.slug)] = project

    def list_projects(self, active_only: bool = False) -> list[Project]:
        with self._lock:
            out = [p for p in self._projects.values() if p.active or not active_only]
        return sorted(out, key=lambda p: p.slug)

    def count_projects(self) -> int:
        return len(self._projects)

    def search(self, query: str, limit: int = 20) -> list[ProjectSummary]:
        q = query.lower().strip()
        if not q:
            return []
        out: list[ProjectSummary] = []
        for proj in self.list_projects():
            if q in proj.slug.lower() or q in proj.name.lower() or q in (proj.description or "").lower():
                out.append(
                    ProjectSummary(slug=proj.slug, name=proj.name, description=proj.description or "")
                )
                if len(out) >= limit:
                    break
        return out

    # --- versions ---

    def get_version(self, project_slug: str, version: str) -> Optional[Version]:
        with self._lock:
            return self._versions.get(_version_key(project_slug, version))

    def save_version(self, version: Version) -> None:
        with self._lock:
            self._versions[_version_key(version.project_slug, version.version)] = version

    def list_versions(self, project_slug: str) -> list[Version]:
        slug = _key(project_slug)
        with self._lock:
            out = [v for k, v in self._versions.items() if k[0] == slug]
        return sorted(out, key=lambda v: v.sort_key(), reverse=True)

    def find_versions(self, project_slug: str, major: int, minor: int) -> list[Version]:
        return [v for v in self.list_versions(project_slug) if v.major == major and v.minor == minor]

    # --- compatibility ---

    @staticmethod
    def _compat_key(anchor_slug: str, anchor_version: str, target_slug: str, target_version: str):
        return (_key(anchor_slug), anchor_version, _key(target_slug), target_version)

    def compatibility_exists(
        self, anchor_slug: str, anchor_version: str, target_slug: str, target_version: str
    ) -> bool:
        with self._lock:
            return self._compat_key(anchor_slug, anchor_version, target_slug, target_version) in self._compat

    def add_compatibility(self, link: CompatibilityLink) -> None:
        k = self._compat_key(link.anchor_slug, link.anchor_version, link.target_slug, link.target_version)
        with self._lock:
            self._compat.setdefault(k, link)

    def list_compatibility(self, anchor_slug: Optional[str] = None) -> list[CompatibilityLink]:
        with self._lock:
            links = list(self._compat.values())
        if anchor_slug:
            links = [c for c in links if _key(c.anchor_slug) == _key(anchor_slug)]
        return links

    # --- relationships ---

    def relationship_exists(self, parent_slug: str, child_slug: str) -> bool:
        with self._lock:
            return (_key(parent_slug), _key(child_slug)) in self._relationships

    def add_relationship(self, relationship: ProjectRelationship) -> None:
        with self._lock:
            self._relationships.setdefault(
                (_key(relationship.parent_slug), _key(relationship.child_slug)), relationship
            )

    def list_children(self, parent_slug: str) -> list[str]:
        parent = _key(parent_slug)
        with self._lock:
            return sorted(r.child_slug for k, r in self._relationships.items() if k[0] == parent)

    # --- documentation + examples ---

    def get_documentation(self, url: str) -> Optional[DocumentationContent]:
        with self._lock:
            return self._docs.get(url)

    def save_documentation(self, doc: DocumentationContent) -> None:
        with self._lock:
            self._docs[doc.url] = doc

    @staticmethod
    def _example_key(project_slug: str, version: str, title: str, source_url: str):
        return (_key(project_slug), version, title, source_url)

    def code_example_exists(self, project_slug: str, version: str, title: str, source_url: str) -> bool:
        with self._lock:
            return self._example_key(project_slug, version, title, source_url) in self._examples

    def add_code_example(self, example: CodeExample) -> None:
        k = self._example_key(example.project_slug, example.version, example.title, example.source_url)
        with self._lock:
            self._examples.setdefault(k, example)

    def list_code_examples(self, project_slug: str) -> list[CodeExample]:
        slug = _key(project_slug)
        with self._lock:
            return [e for k, e in self._examples.items() if k[0] == slug]
