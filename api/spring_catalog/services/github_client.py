"""GitHub API client for organization repository listings.

Requests go through the shared Fetcher, so a listing page is bounded by the
same overall fetch deadline as every other source. On top of that:
- optional token auth (GITHUB_TOKEN / GH_TOKEN)
- ETag revalidation against the last good page
- one pause-and-retry when the rate limit is exhausted, capped at the fetch timeout

Every failure (transport, HTTP status, undecodable body) surfaces as
RuntimeError; callers treat the listing as unavailable.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from spring_catalog.services import sync_config
from spring_catalog.services.http_fetch import Fetcher

log = logging.getLogger(__name__)

API_VERSION = "2022-11-28"


class GitHubRepository(BaseModel):
    name: str = Field(min_length=1)
    full_name: str
    html_url: str = Field(min_length=1)
    description: Optional[str] = None
    archived: bool = False
    fork: bool = False


def _env_token() -> Optional[str]:
    for name in ("GITHUB_TOKEN", "GH_TOKEN"):
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        fetcher: Optional[Fetcher] = None,
    ) -> None:
        self._base_url = (base_url or sync_config.github_api_base_url()).rstrip("/")
        self._fetcher = fetcher or Fetcher(timeout=timeout, user_agent=user_agent)
        self._headers = {"Accept": "application/vnd.github+json", "X-GitHub-Api-Version": API_VERSION}
        token = token or _env_token()
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        # url -> (etag, decoded body)
        self._pages: dict[str, tuple[str, Any]] = {}

    def _pause_if_exhausted(self, r: httpx.Response) -> bool:
        if r.headers.get("X-RateLimit-Remaining") != "0":
            return False
        try:
            reset = int(r.headers.get("X-RateLimit-Reset", ""))
        except ValueError:
            return False
        delay = max(0, reset - int(time.time())) + 1
        time.sleep(min(delay, self._fetcher.timeout))
        return True

    def _send(self, url: str, headers: dict[str, str]) -> httpx.Response:
        try:
            r = self._fetcher.send(url, headers)
            if self._pause_if_exhausted(r) and r.status_code in (403, 429):
                r = self._fetcher.send(url, headers)
        except httpx.HTTPError as e:
            raise RuntimeError(f"GitHub API request failed for {url}: {e}") from e
        return r

    def get_json(self, path: str) -> Any:
        """GET JSON for a path or full URL. Raises RuntimeError when no usable JSON comes back."""
        url = path if path.startswith("http") else f"{self._base_url}{path}"
        headers = dict(self._headers)
        cached = self._pages.get(url)
        if cached:
            headers["If-None-Match"] = cached[0]

        r = self._send(url, headers)
        if r.status_code == 304 and cached:
            return cached[1]
        if r.status_code >= 300:
            raise RuntimeError(f"GitHub API error {r.status_code} for {url}: {r.text[:200]}")
        try:
            data = r.json()
        except ValueError as e:
            raise RuntimeError(f"GitHub API returned a non-JSON body for {url}") from e

        etag = r.headers.get("ETag")
        if etag:
            self._pages[url] = (etag, data)
        return data

    def list_org_repos(self, org: str, per_page: int = 100, max_pages: int = 3) -> list[GitHubRepository]:
        """Public repositories of an organization. Malformed entries are skipped one by one."""
        out: list[GitHubRepository] = []
        for page in range(1, max_pages + 1):
            data = self.get_json(f"/orgs/{org}/repos?type=public&per_page={per_page}&page={page}")
            if not isinstance(data, list):
                break
            for item in data:
                if not isinstance(item, dict):
                    continue
                try:
                    repo = GitHubRepository(
                        name=item.get("name") or "",
                        full_name=item.get("full_name") or f"{org}/{item.get('name')}",
                        html_url=item.get("html_url") or "",
                        description=item.get("description"),
                        archived=bool(item.get("archived")),
                        fork=bool(item.get("fork")),
                    )
                except ValidationError as e:
                    log.debug("Skipping malformed repository entry in %s: %s", org, e)
                    continue
                out.append(repo)
            if len(data) < per_page:
                break
        return out
