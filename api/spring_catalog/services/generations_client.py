"""Spring Boot generations client: which project generations each Boot generation supports.

`generationsMapping.projects` values come in two shapes:

- plain project: ``{"spring-batch": ["5.2.x"]}``
- release train: ``{"spring-cloud": {"2025.0.x": {"spring-cloud-gateway": ["4.3.x"]}}}``

Release trains are flattened one level here: the train itself becomes a
mapping, followed by one mapping per member project pattern.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from spring_catalog.services import sync_config
from spring_catalog.services.http_fetch import Fetcher, json_path
from spring_catalog.services.project_registry import format_project_name

log = logging.getLogger(__name__)


class GenerationMapping(BaseModel):
    project_slug: str
    project_name: str
    pattern: str  # "6.2.x" or a train label such as "2025.0.x"
    train_slug: Optional[str] = None


class BootGeneration(BaseModel):
    version: str  # anchor pattern, e.g. "3.5.x"
    support: Optional[str] = None  # oss | enterprise | end-of-life
    mappings: list[GenerationMapping] = Field(default_factory=list)


class GenerationsSnapshot(BaseModel):
    generations: list[BootGeneration] = Field(default_factory=list)


def _patterns(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(p).strip() for p in raw if isinstance(p, (str, int, float)) and str(p).strip()]


def _name(lookup: dict[str, str], slug: str) -> str:
    name = lookup.get(slug)
    return name if isinstance(name, str) and name.strip() else format_project_name(slug)


def flatten_project_mappings(projects: Any, lookup: dict[str, str]) -> list[GenerationMapping]:
    out: list[GenerationMapping] = []
    if not isinstance(projects, dict):
        return out
    for slug, data in projects.items():
        if isinstance(data, list):
            for pattern in _patterns(data):
                out.append(GenerationMapping(project_slug=slug, project_name=_name(lookup, slug), pattern=pattern))
        elif isinstance(data, dict):
            for train_version, members in data.items():
                out.append(
                    GenerationMapping(project_slug=slug, project_name=_name(lookup, slug), pattern=str(train_version))
                )
                if not isinstance(members, dict):
                    log.debug("Release train %s %s has no member map", slug, train_version)
                    continue
                for member_slug, member_patterns in members.items():
                    for pattern in _patterns(member_patterns):
                        out.append(
                            GenerationMapping(
                                project_slug=member_slug,
                                project_name=_name(lookup, member_slug),
                                pattern=pattern,
                                train_slug=slug,
                            )
                        )
        else:
            log.debug("Ignoring generation mapping for %s with shape %s", slug, type(data).__name__)
    return out


def parse_generations(payload: Any) -> GenerationsSnapshot:
    nodes = json_path(payload, "result", "data", "allSpringBootGeneration", "nodes")
    if not isinstance(nodes, list):
        log.warning("Generations payload has no allSpringBootGeneration.nodes")
        return GenerationsSnapshot()

    generations: list[BootGeneration] = []
    for node in nodes:
        if not isinstance(node, dict) or not node.get("version"):
            log.debug("Skipping generation node without version: %r", node)
            continue
        mapping = node.get("generationsMapping") if isinstance(node.get("generationsMapping"), dict) else {}
        lookup = node.get("projectLookup") if isinstance(node.get("projectLookup"), dict) else {}
        generations.append(
            BootGeneration(
                version=str(node["version"]).strip(),
                support=mapping.get("support"),
                mappings=flatten_project_mappings(mapping.get("projects"), lookup),
            )
        )
    return GenerationsSnapshot(generations=generations)


class GenerationsClient:
    def __init__(self, fetcher: Fetcher, base_url: Optional[str] = None) -> None:
        self._fetcher = fetcher
        self._base_url = (base_url or sync_config.spring_io_base_url()).rstrip("/")

    @property
    def url(self) -> str:
        return f"{self._base_url}/page-data/projects/generations/page-data.json"

    def fetch(self) -> Optional[GenerationsSnapshot]:
        payload = self._fetcher.fetch_json(self.url)
        if payload is None:
            return None
        return parse_generations(payload)
