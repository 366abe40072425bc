"""Comprehensive sync: the seven phases in dependency order, one run at a time.

Degrade, don't abort: a phase that raises is recorded as failed and the next
phase still runs. The run result is the explicit merge of the per-phase
results; overall success requires every phase to succeed.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, NamedTuple, Optional
from uuid import uuid4

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.sync import (
    ComprehensiveSyncResult,
    OutcomeKind,
    PhaseResult,
    SyncProgressEvent,
)
from spring_catalog.services import sync_config
from spring_catalog.services.boot_version_sync_service import sync_boot_versions
from spring_catalog.services.code_examples_sync_service import sync_code_examples
from spring_catalog.services.documentation_sync_service import sync_documentation
from spring_catalog.services.generations_client import GenerationsClient
from spring_catalog.services.generations_sync_service import sync_generations
from spring_catalog.services.github_client import GitHubClient
from spring_catalog.services.guides_client import GuidesClient
from spring_catalog.services.http_fetch import Fetcher
from spring_catalog.services.initializr_client import InitializrClient
from spring_catalog.services.initializr_sync_service import sync_initializr
from spring_catalog.services.navigation_client import NavigationClient
from spring_catalog.services.overview_client import OverviewClient
from spring_catalog.services.phase_recorder import failed_phase
from spring_catalog.services.project_page_client import ProjectPageClient
from spring_catalog.services.project_page_crawler_service import crawl_projects
from spring_catalog.services.relationship_detector import sync_relationships
from spring_catalog.services.sync_progress import SyncProgressTracker

log = logging.getLogger(__name__)


class SyncError(RuntimeError):
    pass


class SyncAlreadyRunningError(SyncError):
    pass


class UnknownPhaseError(SyncError):
    pass


class SyncPhase(NamedTuple):
    name: str
    description: str
    run: Callable[[], PhaseResult]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _created(phases: Iterable[PhaseResult], entity: str) -> int:
    return sum(p.created_by_entity.get(entity, 0) for p in phases)


def merge_phase_results(
    run_id: str,
    started_at: datetime,
    phases: list[PhaseResult],
    expected_phases: int,
    cancelled: bool = False,
    error_message: Optional[str] = None,
) -> ComprehensiveSyncResult:
    success = (
        error_message is None
        and not cancelled
        and len(phases) == expected_phases
        and all(p.success for p in phases)
    )
    documentation_updated = sum(
        1
        for p in phases
        for o in p.outcomes
        if o.entity == "documentation" and o.kind in (OutcomeKind.CREATED, OutcomeKind.UPDATED)
    )
    return ComprehensiveSyncResult(
        run_id=run_id,
        success=success,
        started_at=started_at,
        finished_at=_utcnow(),
        cancelled=cancelled,
        error_message=error_message,
        phases=tuple(phases),
        projects_created=_created(phases, "project"),
        versions_created=_created(phases, "version"),
        compatibility_links_created=_created(phases, "compatibility"),
        relationships_created=_created(phases, "relationship"),
        documentation_updated=documentation_updated,
        code_examples_created=_created(phases, "code_example"),
        total_created=sum(p.created for p in phases),
        total_updated=sum(p.updated for p in phases),
        total_skipped=sum(p.skipped for p in phases),
        total_errors=sum(p.errors for p in phases),
    )


class ComprehensiveSync:
    def __init__(
        self,
        store: CatalogStore,
        fetcher: Optional[Fetcher] = None,
        github: Optional[GitHubClient] = None,
        progress: Optional[SyncProgressTracker] = None,
        fallback_hierarchy: Mapping[str, Iterable[str]] = sync_config.KNOWN_PROJECT_HIERARCHY,
        crawl_workers: Optional[int] = None,
    ) -> None:
        fetcher = fetcher or Fetcher()
        self.store = store
        self.progress = progress or SyncProgressTracker()
        self.page_client = ProjectPageClient(fetcher)
        self.generations_client = GenerationsClient(fetcher)
        self.initializr_client = InitializrClient(fetcher)
        self.navigation_client = NavigationClient(fetcher)
        self.overview_client = OverviewClient(fetcher)
        self.guides_client = GuidesClient(fetcher)
        self.github = github or GitHubClient(fetcher=fetcher)
        self.fallback_hierarchy = fallback_hierarchy
        self.crawl_workers = crawl_workers

        self.last_result: Optional[ComprehensiveSyncResult] = None
        self._run_lock = threading.Lock()
        self._cancel = threading.Event()
        self._current_run_id: Optional[str] = None

        self.phases: tuple[SyncPhase, ...] = (
            SyncPhase(
                "boot_versions",
                "Syncing Spring Boot Versions",
                lambda: sync_boot_versions(self.store, self.page_client),
            ),
            SyncPhase(
                "generations",
                "Syncing Spring Generations",
                lambda: sync_generations(self.store, self.generations_client),
            ),
            SyncPhase(
                "initializr",
                "Syncing Spring Initializr Versions",
                lambda: sync_initializr(self.store, self.initializr_client),
            ),
            SyncPhase(
                "project_crawl",
                "Crawling Project Pages",
                lambda: crawl_projects(self.store, self.page_client, self.crawl_workers),
            ),
            SyncPhase(
                "relationships",
                "Syncing Project Relationships",
                lambda: sync_relationships(self.store, self.navigation_client, self.fallback_hierarchy),
            ),
            SyncPhase(
                "documentation",
                "Syncing Documentation",
                lambda: sync_documentation(self.store, self.overview_client),
            ),
            SyncPhase(
                "code_examples",
                "Syncing Code Examples",
                lambda: sync_code_examples(self.store, self.guides_client, self.github),
            ),
        )

    # --- run control ---

    def phase_names(self) -> list[str]:
        return [p.name for p in self.phases]

    def is_running(self) -> bool:
        return self._run_lock.locked()

    @property
    def current_run_id(self) -> Optional[str]:
        return self._current_run_id

    def cancel(self) -> bool:
        """Ask the running sync to stop at the next phase boundary. False if nothing is running."""
        if not self.is_running():
            return False
        self._cancel.set()
        log.info("Cancellation requested for sync %s", self._current_run_id)
        return True

    def _acquire(self, run_id: str) -> None:
        if not self._run_lock.acquire(blocking=False):
            raise SyncAlreadyRunningError(f"sync {self._current_run_id} is already running")
        self._current_run_id = run_id
        self._cancel.clear()

    def _release(self) -> None:
        self._current_run_id = None
        self._cancel.clear()
        self._run_lock.release()

    def run_all(self, run_id: Optional[str] = None) -> ComprehensiveSyncResult:
        """Run every phase in order and return the merged result. Raises only if a run is in progress."""
        run_id = run_id or uuid4().hex
        self._acquire(run_id)
        try:
            return self._execute(run_id)
        finally:
            self._release()

    def start(self) -> str:
        """Start a full run on a background thread; returns its run id."""
        run_id = uuid4().hex
        self._acquire(run_id)
        try:
            thread = threading.Thread(
                target=self._run_in_background, args=(run_id,), name=f"sync-{run_id[:8]}", daemon=True
            )
            thread.start()
        except RuntimeError:
            self._release()
            raise
        return run_id

    def _run_in_background(self, run_id: str) -> None:
        try:
            self._execute(run_id)
        finally:
            self._release()

    def run_phase(self, name: str) -> PhaseResult:
        phase = next((p for p in self.phases if p.name == name), None)
        if phase is None:
            raise UnknownPhaseError(f"unknown sync phase {name!r}")
        self._acquire(uuid4().hex)
        try:
            index = self.phases.index(phase)
            self._publish(index, phase.description, "running")
            result = self._run_one(phase)
            self._publish(
                index + 1,
                phase.description,
                "completed" if result.success else "error",
                percent=100,
                completed=True,
                message=result.error_message,
            )
            return result
        finally:
            self._release()

    # --- internals ---

    def _publish(
        self,
        index: int,
        description: str,
        status: str,
        percent: Optional[int] = None,
        completed: bool = False,
        message: Optional[str] = None,
    ) -> None:
        total = len(self.phases)
        self.progress.publish(
            SyncProgressEvent(
                current_phase=index,
                total_phases=total,
                phase_description=description,
                status=status,
                percent_complete=percent if percent is not None else index * 100 // total,
                completed=completed,
                message=message,
            )
        )

    def _run_one(self, phase: SyncPhase) -> PhaseResult:
        started_at = _utcnow()
        log.info("Phase %s started", phase.name)
        try:
            result = phase.run()
        except Exception as e:
            log.exception("Phase %s raised; continuing with the next phase", phase.name)
            return failed_phase(phase.name, f"{type(e).__name__}: {e}", started_at)
        log.info(
            "Phase %s finished: success=%s created=%d updated=%d skipped=%d errors=%d",
            phase.name, result.success, result.created, result.updated, result.skipped, result.errors,
        )
        return result

    def _execute(self, run_id: str) -> ComprehensiveSyncResult:
        started_at = _utcnow()
        results: list[PhaseResult] = []
        cancelled = False
        error_message: Optional[str] = None
        self.progress.clear()
        log.info("Comprehensive sync %s started", run_id)

        try:
            for index, phase in enumerate(self.phases):
                if self._cancel.is_set():
                    cancelled = True
                    log.info("Sync %s cancelled before phase %s", run_id, phase.name)
                    for remaining in self.phases[index:]:
                        results.append(failed_phase(remaining.name, "cancelled", errors=0))
                    break
                self._publish(index, phase.description, "running")
                results.append(self._run_one(phase))
        except Exception as e:
            log.exception("Comprehensive sync %s failed", run_id)
            error_message = f"{type(e).__name__}: {e}"

        result = merge_phase_results(
            run_id, started_at, results, len(self.phases), cancelled=cancelled, error_message=error_message
        )
        self.last_result = result
        log.info("Comprehensive sync %s: %s", run_id, result.summary())
        self._publish(
            len(self.phases),
            "Sync Complete",
            "completed" if result.success else "error",
            percent=100,
            completed=True,
            message=result.summary(),
        )
        return result
