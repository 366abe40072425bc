"""Projects navigation page client: parent/child hierarchy from spring.io/projects markup."""

from __future__ import annotations

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from spring_catalog.services import sync_config
from spring_catalog.services.http_fetch import Fetcher

log = logging.getLogger(__name__)

PROJECT_LINK = "a[href*='/projects/']"

# Tried in order; the first selector with any match wins.
PARENT_SELECTORS: tuple[str, ...] = (
    f"{PROJECT_LINK}.is-parent",
    f"li.is-parent > {PROJECT_LINK}",
    f"div.project-parent {PROJECT_LINK}",
)
CHILD_SELECTOR = f"ul {PROJECT_LINK}, li {PROJECT_LINK}"
DATA_CHILD_SELECTOR = f"[data-parent], .child-project {PROJECT_LINK}"

_QUERY_OR_FRAGMENT = re.compile(r"[?#].*$")


def slug_from_href(href: Optional[str]) -> Optional[str]:
    """/projects/spring-data-jpa?tab=learn -> spring-data-jpa."""
    if not href or "/projects/" not in href:
        return None
    tail = _QUERY_OR_FRAGMENT.sub("", href.split("/projects/", 1)[1]).strip("/")
    slug = tail.split("/", 1)[0].strip().lower()
    return slug or None


def _child_href(element) -> Optional[str]:
    href = element.get("href")
    if href:
        return href
    nested = element.select_one(PROJECT_LINK)
    return nested.get("href") if nested is not None else None


def parse_navigation(html: str) -> dict[str, list[str]]:
    """Map of parent slug -> child slugs discovered in the markup (order preserved, no duplicates)."""
    soup = BeautifulSoup(html or "", "html.parser")
    parents = []
    for selector in PARENT_SELECTORS:
        parents = soup.select(selector)
        if parents:
            log.debug("Navigation parents matched by %r: %d", selector, len(parents))
            break

    hierarchy: dict[str, list[str]] = {}
    for anchor in parents:
        parent_slug = slug_from_href(anchor.get("href"))
        container = anchor.parent
        if not parent_slug or container is None:
            continue
        children = hierarchy.setdefault(parent_slug, [])
        candidates = container.select(CHILD_SELECTOR) + container.select(DATA_CHILD_SELECTOR)
        for element in candidates:
            child_slug = slug_from_href(_child_href(element))
            if child_slug and child_slug != parent_slug and child_slug not in children:
                children.append(child_slug)
    return {parent: children for parent, children in hierarchy.items() if children}


class NavigationClient:
    def __init__(self, fetcher: Fetcher, base_url: Optional[str] = None) -> None:
        self._fetcher = fetcher
        self._base_url = (base_url or sync_config.spring_io_base_url()).rstrip("/")

    @property
    def url(self) -> str:
        return f"{self._base_url}/projects"

    def fetch(self) -> Optional[dict[str, list[str]]]:
        html = self._fetcher.fetch_text(self.url)
        if html is None:
            return None
        return parse_navigation(html)
