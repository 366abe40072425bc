"""Project overview page client: the descriptive text shown on spring.io/projects/{slug}."""

from __future__ import annotations

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from pydantic import BaseModel

from spring_catalog.services import sync_config
from spring_catalog.services.http_fetch import Fetcher

log = logging.getLogger(__name__)

CONTENT_SELECTORS: tuple[str, ...] = (
    ".markdown.content",
    "main",
    "article",
    "[role=main]",
    "#content",
    ".content",
)

_BLANK_RUNS = re.compile(r"\n{3,}")


class ProjectOverview(BaseModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    markdown: str = ""


def _inline(node) -> str:
    if isinstance(node, NavigableString):
        return str(node)
    if not isinstance(node, Tag):
        return ""
    text = "".join(_inline(child) for child in node.children)
    if node.name == "a" and node.get("href"):
        return f"[{text.strip()}]({node['href']})"
    if node.name == "code":
        return f"`{text}`"
    if node.name in ("strong", "b"):
        return f"**{text}**"
    if node.name in ("em", "i"):
        return f"*{text}*"
    return text


def to_markdown(element: Tag) -> str:
    """Reduce an HTML fragment to markdown-ish text: headings, paragraphs, lists and code blocks."""
    lines: list[str] = []
    for node in element.find_all(["h1", "h2", "h3", "h4", "p", "li", "pre"]):
        if node.find_parent("pre") is not None:
            continue
        if node.name == "pre":
            lines.append(f"```\n{node.get_text().rstrip()}\n```")
            continue
        if node.name == "p" and node.find_parent("li") is not None:
            continue
        text = " ".join(_inline(node).split())
        if not text:
            continue
        if node.name.startswith("h"):
            lines.append(f"{'#' * int(node.name[1])} {text}")
        elif node.name == "li":
            lines.append(f"- {text}")
        else:
            lines.append(text)
    if not lines:
        return element.get_text(" ", strip=True)
    return _BLANK_RUNS.sub("\n\n", "\n\n".join(lines)).strip()


def parse_overview(url: str, html: str) -> ProjectOverview:
    soup = BeautifulSoup(html or "", "html.parser")
    content = None
    for selector in CONTENT_SELECTORS:
        content = soup.select_one(selector)
        if content is not None:
            break
    title = None
    heading = soup.select_one("h1")
    if heading is not None:
        title = heading.get_text(" ", strip=True) or None
    elif soup.title is not None:
        title = soup.title.get_text(strip=True) or None
    description = None
    meta = soup.select_one("meta[name=description]")
    if meta is not None:
        description = (meta.get("content") or "").strip() or None
    return ProjectOverview(
        url=url,
        title=title,
        description=description,
        markdown=to_markdown(content) if content is not None else "",
    )


class OverviewClient:
    def __init__(self, fetcher: Fetcher, base_url: Optional[str] = None) -> None:
        self._fetcher = fetcher
        self._base_url = (base_url or sync_config.spring_io_base_url()).rstrip("/")

    def overview_url(self, slug: str) -> str:
        return f"{self._base_url}/projects/{slug}"

    def fetch(self, slug: str) -> Optional[ProjectOverview]:
        url = self.overview_url(slug)
        html = self._fetcher.fetch_text(url)
        if html is None:
            return None
        return parse_overview(url, html)
