"""Guide page client: code blocks from spring.io/guides/{path}."""

from __future__ import annotations

import logging
from typing import Optional

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from spring_catalog.services import sync_config
from spring_catalog.services.http_fetch import Fetcher

log = logging.getLogger(__name__)

MIN_SNIPPET_LENGTH = 50

_LANGUAGE_PREFIXES = ("language-", "lang-")

# Class token (after the prefix) -> stored language name.
_LANGUAGE_ALIASES: dict[str, str] = {
    "kt": "kotlin",
    "yml": "yaml",
    "sh": "bash",
    "shell": "bash",
    "console": "bash",
}


class GuideSnippet(BaseModel):
    index: int = Field(ge=1)
    code: str
    language: str = "java"
    context: Optional[str] = None


class GuidePage(BaseModel):
    url: str
    snippets: list[GuideSnippet] = Field(default_factory=list)


def detect_language(class_names: list[str] | str | None) -> str:
    """Language from a whole `language-*` or `lang-*` class token; Java when none is present."""
    tokens = class_names.split() if isinstance(class_names, str) else (class_names or [])
    for token in tokens:
        lowered = token.lower()
        for prefix in _LANGUAGE_PREFIXES:
            if lowered.startswith(prefix) and len(lowered) > len(prefix):
                name = lowered[len(prefix):]
                return _LANGUAGE_ALIASES.get(name, name)
    return "java"


def parse_guide(url: str, html: str) -> GuidePage:
    soup = BeautifulSoup(html or "", "html.parser")
    blocks = soup.select("pre code") or soup.select("pre")
    snippets: list[GuideSnippet] = []
    for block in blocks:
        code = block.get_text().strip()
        if len(code) < MIN_SNIPPET_LENGTH:
            continue
        heading = block.find_previous(["h2", "h3"])
        context = heading.get_text(" ", strip=True) if heading is not None else None
        snippets.append(
            GuideSnippet(
                index=len(snippets) + 1,
                code=code,
                language=detect_language(block.get("class")),
                context=context if context and len(context) < 200 else None,
            )
        )
    if not snippets:
        log.info("No code examples found in guide %s", url)
    return GuidePage(url=url, snippets=snippets)


class GuidesClient:
    def __init__(self, fetcher: Fetcher, base_url: Optional[str] = None) -> None:
        self._fetcher = fetcher
        self._base_url = (base_url or sync_config.spring_io_base_url()).rstrip("/")

    def guide_url(self, path: str) -> str:
        return f"{self._base_url}/guides/{path.strip('/')}"

    def fetch(self, path: str) -> Optional[GuidePage]:
        url = self.guide_url(path)
        html = self._fetcher.fetch_text(url)
        if html is None:
            return None
        return parse_guide(url, html)
