"""Outbound fetch capability: URL in, text/JSON out, or None on any failure."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from spring_catalog.services import sync_config

log = logging.getLogger(__name__)

_WIRE_HEADERS = {"content-encoding", "content-length", "transfer-encoding"}


class Fetcher:
    """Thin httpx wrapper. Each call carries its own timeout and never raises for transport trouble.

    The timeout bounds the whole fetch, not just each socket operation: a body
    that keeps trickling in past the deadline is abandoned.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else sync_config.fetch_timeout_seconds()
        self._headers = {"User-Agent": user_agent or sync_config.user_agent()}
        self._transport = transport

    @property
    def timeout(self) -> float:
        return self._timeout

    def send(self, url: str, headers: Optional[dict[str, str]] = None) -> httpx.Response:
        """GET with the overall deadline applied. Any status is returned; transport trouble raises httpx.HTTPError."""
        merged = dict(self._headers)
        if headers:
            merged.update(headers)
        deadline = time.monotonic() + self._timeout
        with httpx.Client(
            timeout=self._timeout,
            headers=merged,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            with client.stream("GET", url) as r:
                body = bytearray()
                for chunk in r.iter_bytes():
                    body.extend(chunk)
                    if time.monotonic() > deadline:
                        raise httpx.ReadTimeout(
                            f"response not complete within {self._timeout:g}s", request=r.request
                        )
        # The body is already decoded; drop the headers that described the wire form.
        kept = [(k, v) for k, v in r.headers.multi_items() if k.lower() not in _WIRE_HEADERS]
        return httpx.Response(r.status_code, headers=kept, content=bytes(body), request=r.request)

    def _get(self, url: str, accept: str) -> Optional[httpx.Response]:
        try:
            r = self.send(url, {"Accept": accept})
        except httpx.HTTPError as e:
            log.warning("fetch %s failed: %s", url, e)
            return None
        if r.status_code >= 400:
            log.warning("fetch %s returned HTTP %d", url, r.status_code)
            return None
        return r

    def fetch_text(self, url: str, accept: str = "text/html,application/xhtml+xml") -> Optional[str]:
        r = self._get(url, accept)
        return r.text if r is not None else None

    def fetch_json(self, url: str, accept: str = "application/json") -> Optional[Any]:
        r = self._get(url, accept)
        if r is None:
            return None
        try:
            return r.json()
        except ValueError as e:
            log.warning("fetch %s returned undecodable JSON: %s", url, e)
            return None


def json_path(node: Any, *keys: str) -> Any:
    """Walk nested dicts; None as soon as a level is missing or not a dict."""
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node
