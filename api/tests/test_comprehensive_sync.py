"""End-to-end tests for the seven-phase sync against canned upstream sources."""

from datetime import date

import pytest
from httpx import Response

from spring_catalog.adapters.catalog_store import InMemoryCatalogStore
from spring_catalog.adapters.sql_store import SqlCatalogStore
from spring_catalog.models.catalog import VersionState
from spring_catalog.services.comprehensive_sync_service import (
    ComprehensiveSync,
    SyncAlreadyRunningError,
    UnknownPhaseError,
    merge_phase_results,
)
from spring_catalog.services.phase_recorder import PhaseRecorder, failed_phase
from spring_payloads import INITIALIZR

PHASES = [
    "boot_versions",
    "generations",
    "initializr",
    "project_crawl",
    "relationships",
    "documentation",
    "code_examples",
]

FALLBACK = {"spring-cloud": ("spring-cloud-gateway", "spring-cloud-vault")}


def _sync(store) -> ComprehensiveSync:
    return ComprehensiveSync(store, fallback_hierarchy=FALLBACK, crawl_workers=2)


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryCatalogStore(persist_path=None)
        return
    sql = SqlCatalogStore(f"sqlite+pysqlite:///{tmp_path / 'catalog.db'}")
    yield sql
    sql.dispose()


def test_full_sync_builds_catalog(spring_sources, any_store):
    result = _sync(any_store).run_all()

    assert result.success, result.summary()
    assert [p.phase for p in result.phases] == PHASES
    assert {p.slug for p in any_store.list_projects()} == {
        "spring-boot",
        "spring-batch",
        "spring-cloud",
        "spring-cloud-gateway",
    }

    boot = {v.version: v for v in any_store.list_versions("spring-boot")}
    assert set(boot) == {"4.0.0-SNAPSHOT", "3.5.7", "3.4.11"}
    assert boot["3.5.7"].is_latest and boot["3.5.7"].is_default
    assert boot["3.5.7"].status == "CURRENT"
    assert boot["3.5.7"].oss_support_end == date(2026, 6, 1)
    assert boot["4.0.0-SNAPSHOT"].state == VersionState.SNAPSHOT
    assert sum(1 for v in boot.values() if v.is_latest) == 1

    # Generation-level links were expanded to the versions the crawl found
    assert any_store.compatibility_exists("spring-boot", "3.5.7", "spring-batch", "5.2.3")
    assert any_store.compatibility_exists("spring-boot", "3.5.7", "spring-batch", "5.2.x")
    assert any_store.compatibility_exists("spring-boot", "3.5.7", "spring-cloud-gateway", "4.3.0")
    assert any_store.compatibility_exists("spring-boot", "3.4.11", "spring-batch", "5.1.2")
    assert not any_store.compatibility_exists("spring-boot", "3.4.11", "spring-batch", "5.2.3")
    assert len(any_store.list_compatibility("spring-boot")) == 8
    assert result.compatibility_links_created == 8

    assert any_store.list_children("spring-cloud") == ["spring-cloud-gateway"]
    doc = any_store.get_documentation("https://docs.spring.io/spring-boot/index.html")
    assert doc is not None and doc.version == "3.5.7"
    assert "Embedded servers" in doc.content

    examples = any_store.list_code_examples("spring-boot")
    assert len(examples) == 5
    assert all(e.version == "3.5.7" for e in examples)
    assert len(any_store.list_code_examples("spring-batch")) == 1


def test_second_run_creates_nothing(spring_sources, any_store):
    sync = _sync(any_store)
    first = sync.run_all()
    assert first.success
    counts = (
        any_store.count_projects(),
        len(any_store.list_compatibility()),
        len(any_store.list_versions("spring-batch")),
    )

    second = sync.run_all()

    assert second.success, second.summary()
    assert second.total_created == 0
    assert second.total_updated == 0
    assert second.compatibility_links_created == 0
    assert second.documentation_updated == 0
    assert (
        any_store.count_projects(),
        len(any_store.list_compatibility()),
        len(any_store.list_versions("spring-batch")),
    ) == counts


def test_failing_source_fails_only_its_phase(spring_sources, store):
    spring_sources.routes["initializr"].mock(return_value=Response(500))

    result = _sync(store).run_all()

    assert not result.success
    failed = [p for p in result.phases if not p.success]
    assert [p.phase for p in failed] == ["initializr"]
    assert failed[0].error_message == "Initializr metadata unavailable"
    assert "failed phases: initializr" in result.summary()
    # Later phases still ran; the page data alone decided latest
    assert store.get_version("spring-boot", "3.5.7").is_latest
    assert not store.get_version("spring-boot", "3.5.7").is_default
    assert store.list_children("spring-cloud") == ["spring-cloud-gateway"]


def test_raising_phase_is_recorded_and_run_continues(spring_sources, store, monkeypatch):
    sync = _sync(store)

    def boom():
        raise RuntimeError("upstream changed shape")

    monkeypatch.setattr(sync.generations_client, "fetch", boom)
    result = sync.run_all()

    generations = result.phases[1]
    assert generations.phase == "generations"
    assert not generations.success
    assert generations.error_message == "RuntimeError: upstream changed shape"
    assert generations.errors == 1
    assert all(p.success for p in result.phases if p.phase != "generations")
    assert store.list_compatibility() == []


def test_anchor_missing_counts_error_and_skips_mappings(spring_sources, store):
    spring_sources.routes["page:spring-boot"].mock(return_value=Response(404))

    result = _sync(store).run_all()

    by_phase = {p.phase: p for p in result.phases}
    assert not by_phase["boot_versions"].success
    assert by_phase["generations"].errors == 2
    assert store.list_compatibility() == []


def test_cancel_stops_at_next_phase_boundary(spring_sources, store):
    sync = _sync(store)

    def cancel_during_initializr(event):
        if event.current_phase == 2 and not event.completed:
            sync.cancel()

    sync.progress.add_listener(cancel_during_initializr)
    result = sync.run_all()

    assert result.cancelled
    assert not result.success
    assert [p.phase for p in result.phases] == PHASES
    assert result.phases[2].success
    assert all(p.error_message == "cancelled" and p.errors == 0 for p in result.phases[3:])
    assert store.list_children("spring-cloud") == []
    assert not sync.is_running()
    assert sync.cancel() is False


def test_only_one_run_at_a_time(spring_sources, store):
    sync = _sync(store)
    rejected = []

    def try_second_run(event):
        if event.current_phase == 0 and not rejected:
            try:
                sync.run_phase("generations")
            except SyncAlreadyRunningError:
                rejected.append(True)

    sync.progress.add_listener(try_second_run)
    result = sync.run_all()

    assert rejected == [True]
    assert result.success


def test_progress_events_cover_every_phase(spring_sources, store):
    sync = _sync(store)
    events = []
    sync.progress.add_listener(events.append)

    sync.run_all()

    assert [e.current_phase for e in events] == list(range(8))
    assert events[0].phase_description == "Syncing Spring Boot Versions"
    assert events[-1].completed and events[-1].percent_complete == 100
    assert events[-1].phase_description == "Sync Complete"
    assert events[-1].status == "completed"
    assert all(e.total_phases == 7 for e in events)


def test_run_single_phase(spring_sources, store):
    sync = _sync(store)
    result = sync.run_phase("boot_versions")
    assert result.success
    assert result.created_by_entity == {"project": 1, "version": 3}

    with pytest.raises(UnknownPhaseError):
        sync.run_phase("nope")


def test_merge_phase_results_requires_every_phase():
    ok = PhaseRecorder("boot_versions").finish()
    partial = merge_phase_results("run", ok.started_at, [ok], expected_phases=7)
    assert not partial.success

    failed = failed_phase("generations", "generations data unavailable")
    merged = merge_phase_results("run", ok.started_at, [ok, failed], expected_phases=2)
    assert not merged.success
    assert merged.total_errors == 1
    assert "failed phases: generations" in merged.summary()


def test_unparseable_github_reply_keeps_guide_examples(spring_sources, store):
    spring_sources.routes["github"].mock(return_value=Response(200, text="<html>proxy error</html>"))

    result = _sync(store).run_all()

    code_examples = result.phases[6]
    assert code_examples.phase == "code_examples"
    assert code_examples.success, code_examples.error_message
    unavailable = [o.key for o in code_examples.outcomes if "repository listing unavailable" in (o.detail or "")]
    assert unavailable == ["spring-projects", "spring-cloud", "spring-cloud-samples", "spring-guides"]
    assert len(store.list_code_examples("spring-boot")) == 5
    assert len(store.list_code_examples("spring-batch")) == 1


def _seed_for_crawl(sync):
    assert sync.run_phase("boot_versions").success
    assert sync.run_phase("generations").success


def test_crawl_isolates_a_failing_project(spring_sources, store):
    sync = _sync(store)
    _seed_for_crawl(sync)
    spring_sources.routes["page:spring-batch"].mock(return_value=Response(404))

    result = sync.run_phase("project_crawl")

    assert result.success
    assert result.errors == 1
    assert store.get_version("spring-batch", "5.2.3") is None
    # The other projects were still enriched
    assert store.get_version("spring-cloud-gateway", "4.3.0") is not None
    assert store.get_version("spring-cloud", "2025.0.0") is not None


def test_crawl_survives_a_raising_project(spring_sources, store, monkeypatch):
    sync = _sync(store)
    _seed_for_crawl(sync)
    real_fetch = sync.page_client.fetch

    def fetch(slug):
        if slug == "spring-cloud":
            raise RuntimeError("page data changed shape")
        return real_fetch(slug)

    monkeypatch.setattr(sync.page_client, "fetch", fetch)
    result = sync.run_phase("project_crawl")

    assert result.success
    assert result.errors == 1
    assert store.get_version("spring-batch", "5.2.3") is not None


def test_crawl_fails_when_most_projects_fail(spring_sources, store):
    sync = _sync(store)
    _seed_for_crawl(sync)
    for slug in ("spring-batch", "spring-cloud", "spring-cloud-gateway"):
        spring_sources.routes[f"page:{slug}"].mock(return_value=Response(404))

    result = sync.run_phase("project_crawl")

    assert not result.success
    assert result.error_message == "3 of 4 project crawls failed"
    assert result.errors == 3


def test_initializr_default_fills_latest_only_when_missing(spring_sources, store):
    sync = _sync(store)
    assert sync.run_phase("initializr").success
    assert store.get_version("spring-boot", "3.5.7").is_latest
    assert store.get_version("spring-boot", "3.5.7").is_default


def test_initializr_default_does_not_take_latest_from_page_data(spring_sources, store):
    sync = _sync(store)
    assert sync.run_phase("boot_versions").success
    metadata = {"bootVersion": {**INITIALIZR["bootVersion"], "default": "3.4.11"}}
    spring_sources.routes["initializr"].mock(return_value=Response(200, json=metadata))

    assert sync.run_phase("initializr").success

    assert store.get_version("spring-boot", "3.4.11").is_default
    assert not store.get_version("spring-boot", "3.4.11").is_latest
    assert store.get_version("spring-boot", "3.5.7").is_latest
