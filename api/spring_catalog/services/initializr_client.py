"""Spring Initializr metadata client: the Boot versions start.spring.io offers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from spring_catalog.services import sync_config
from spring_catalog.services.http_fetch import Fetcher

log = logging.getLogger(__name__)


class InitializrVersion(BaseModel):
    id: str
    name: str


class InitializrMetadata(BaseModel):
    default_version: Optional[str] = None
    versions: list[InitializrVersion] = Field(default_factory=list)


def parse_initializr(payload: Any) -> InitializrMetadata:
    boot = payload.get("bootVersion") if isinstance(payload, dict) else None
    if not isinstance(boot, dict):
        log.warning("Initializr metadata has no bootVersion section")
        return InitializrMetadata()
    versions: list[InitializrVersion] = []
    for value in boot.get("values") or []:
        if not isinstance(value, dict) or not value.get("id"):
            continue
        vid = str(value["id"]).strip()
        versions.append(InitializrVersion(id=vid, name=str(value.get("name") or vid)))
    default = boot.get("default")
    return InitializrMetadata(default_version=str(default).strip() if default else None, versions=versions)


class InitializrClient:
    def __init__(self, fetcher: Fetcher, url: Optional[str] = None) -> None:
        self._fetcher = fetcher
        self._url = url or sync_config.initializr_url()

    def fetch(self) -> Optional[InitializrMetadata]:
        payload = self._fetcher.fetch_json(self._url, accept="application/json")
        if payload is None:
            return None
        return parse_initializr(payload)
