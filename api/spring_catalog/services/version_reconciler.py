"""Find-or-create canonical Version records and maintain the per-project flags.

Merging never clobbers: an observed field only replaces the stored one when
the observation is non-null. `is_latest` and `is_default` are kept unique per
project by clearing the flag on siblings before setting it on the target.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import ObservedVersionFields, Version, VersionState
from spring_catalog.models.sync import OutcomeKind
from spring_catalog.services.version_parser import classify_state, parse_version

log = logging.getLogger(__name__)

ACTIVE_PREVIOUS_MINORS = 2
ACTIVE_PRERELEASES = 3

_LOCKS_GUARD = threading.Lock()
_PROJECT_LOCKS: dict[str, threading.Lock] = {}


@contextmanager
def project_lock(slug: str) -> Iterator[None]:
    """Serialize writers of one project's version set."""
    key = slug.strip().lower()
    with _LOCKS_GUARD:
        lock = _PROJECT_LOCKS.setdefault(key, threading.Lock())
    with lock:
        yield


def reconcile(
    store: CatalogStore,
    project_slug: str,
    version: str,
    observed: Optional[ObservedVersionFields] = None,
    status_token: Optional[str] = None,
) -> tuple[Version, OutcomeKind]:
    version = (version or "").strip()
    if not version:
        raise ValueError(f"empty version string for {project_slug}")

    existing = store.get_version(project_slug, version)
    if existing is None:
        parsed = parse_version(version)
        created = Version(
            project_slug=project_slug.strip().lower(),
            version=version,
            major=parsed.major,
            minor=parsed.minor,
            patch=parsed.patch,
            state=classify_state(version, status_token),
            **(observed.model_dump(exclude_none=True) if observed else {}),
        )
        store.save_version(created)
        log.debug("Created version %s %s (%s)", project_slug, version, created.state.value)
        return created, OutcomeKind.CREATED

    if observed is None:
        return existing, OutcomeKind.UNCHANGED
    changes = {
        field: value
        for field, value in observed.model_dump(exclude_none=True).items()
        if getattr(existing, field) != value
    }
    if not changes:
        return existing, OutcomeKind.UNCHANGED
    merged = existing.model_copy(update=changes)
    store.save_version(merged)
    log.debug("Updated version %s %s: %s", project_slug, version, ", ".join(sorted(changes)))
    return merged, OutcomeKind.UPDATED


def _set_unique_flag(store: CatalogStore, project_slug: str, version: str, flag: str) -> bool:
    versions = store.list_versions(project_slug)
    target = next((v for v in versions if v.version == version.strip()), None)
    if target is None:
        log.warning("Cannot mark %s %s as %s: version not found", project_slug, version, flag)
        return False
    for v in versions:
        wanted = v is target
        if getattr(v, flag) != wanted:
            store.save_version(v.model_copy(update={flag: wanted}))
    return True


def promote_latest(store: CatalogStore, project_slug: str, version: str) -> bool:
    """Make `version` the only latest version of the project. False if it does not exist."""
    return _set_unique_flag(store, project_slug, version, "is_latest")


def mark_default(store: CatalogStore, project_slug: str, version: str) -> bool:
    return _set_unique_flag(store, project_slug, version, "is_default")


def find_latest_stable(store: CatalogStore, project_slug: str) -> Optional[Version]:
    """Highest concrete GA version; generation placeholders (no patch) never qualify."""
    stable = [v for v in store.list_versions(project_slug) if v.state == VersionState.GA and v.patch is not None]
    if not stable:
        return None
    return max(stable, key=lambda v: v.sort_key())


def refresh_latest_stable(store: CatalogStore, project_slug: str) -> Optional[Version]:
    latest = find_latest_stable(store, project_slug)
    if latest is None:
        log.debug("No stable version for %s; latest flag left as is", project_slug)
        return None
    promote_latest(store, project_slug, latest.version)
    return latest


def active_versions(store: CatalogStore, project_slug: str) -> list[Version]:
    """n-2 window: latest stable, the newest patch of the two preceding minors, newer pre-releases."""
    latest = find_latest_stable(store, project_slug)
    if latest is None:
        return []
    versions = store.list_versions(project_slug)

    previous: dict[int, Version] = {}
    for v in versions:
        if v.state != VersionState.GA or v.patch is None:
            continue
        if v.major != latest.major or v.minor >= latest.minor:
            continue
        best = previous.get(v.minor)
        if best is None or v.sort_key() > best.sort_key():
            previous[v.minor] = v
    previous_minors = [previous[m] for m in sorted(previous, reverse=True)[:ACTIVE_PREVIOUS_MINORS]]

    prereleases = sorted(
        (v for v in versions if v.state != VersionState.GA and v.sort_key() > latest.sort_key()),
        key=lambda v: v.sort_key(),
        reverse=True,
    )[:ACTIVE_PRERELEASES]

    return [latest, *previous_minors, *prereleases]
