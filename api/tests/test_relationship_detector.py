"""Tests for project hierarchy discovery: navigation markup parsing and fallback merge."""

import respx
from httpx import Response

from spring_catalog.models.sync import OutcomeKind
from spring_catalog.services.http_fetch import Fetcher
from spring_catalog.services.navigation_client import NavigationClient, parse_navigation, slug_from_href
from spring_catalog.services.project_registry import ensure_project
from spring_catalog.services.relationship_detector import merge_hierarchy, sync_relationships
from spring_payloads import NAVIGATION_HTML


def test_slug_from_href():
    assert slug_from_href("/projects/spring-data-jpa") == "spring-data-jpa"
    assert slug_from_href("https://spring.io/projects/spring-cloud-config?tab=learn") == "spring-cloud-config"
    assert slug_from_href("/projects/spring-boot/#overview") == "spring-boot"
    assert slug_from_href("/guides") is None
    assert slug_from_href(None) is None


def test_parse_navigation_li_parent():
    assert parse_navigation(NAVIGATION_HTML) == {"spring-cloud": ["spring-cloud-gateway", "spring-cloud-config"]}


def test_parse_navigation_anchor_class_takes_precedence():
    html = """
    <div>
      <a class="is-parent" href="/projects/spring-data">Spring Data</a>
      <ul><li><a href="/projects/spring-data-jpa">JPA</a></li></ul>
    </div>
    <ul><li class="is-parent"><a href="/projects/spring-cloud">Cloud</a>
      <ul><li><a href="/projects/spring-cloud-gateway">Gateway</a></li></ul></li></ul>
    """
    # The first selector with matches wins, so only the anchor-class parent is read
    assert parse_navigation(html) == {"spring-data": ["spring-data-jpa"]}


def test_parse_navigation_without_hierarchy():
    assert parse_navigation("<html><body><a href='/projects/spring-boot'>Boot</a></body></html>") == {}
    assert parse_navigation("") == {}


def test_merge_hierarchy_unions_children():
    merged = merge_hierarchy(
        {"spring-cloud": ["spring-cloud-gateway"]},
        {"spring-cloud": ("spring-cloud-config", "spring-cloud-gateway"), "spring-data": ("spring-data-jpa",)},
    )
    assert merged == {
        "spring-cloud": ["spring-cloud-gateway", "spring-cloud-config"],
        "spring-data": ["spring-data-jpa"],
    }


@respx.mock
def test_sync_relationships_links_known_projects_and_skips_missing(store):
    respx.get("https://spring.io/projects").mock(return_value=Response(200, text=NAVIGATION_HTML))
    for slug in ("spring-cloud", "spring-cloud-gateway", "spring-data", "spring-data-jpa"):
        ensure_project(store, slug)
    client = NavigationClient(Fetcher())

    result = sync_relationships(store, client, {"spring-data": ("spring-data-jpa", "spring-data-redis")})
    assert result.success
    assert result.created == 2
    # spring-cloud-config and spring-data-redis were never synced
    assert result.skipped == 2
    assert store.list_children("spring-cloud") == ["spring-cloud-gateway"]
    assert store.list_children("spring-data") == ["spring-data-jpa"]

    rerun = sync_relationships(store, client, {"spring-data": ("spring-data-jpa", "spring-data-redis")})
    assert rerun.created == 0
    assert all(o.kind != OutcomeKind.CREATED for o in rerun.outcomes)


@respx.mock
def test_sync_relationships_applies_fallback_when_navigation_down(store):
    respx.get("https://spring.io/projects").mock(return_value=Response(503))
    ensure_project(store, "spring-data")
    ensure_project(store, "spring-data-jpa")

    result = sync_relationships(store, NavigationClient(Fetcher()), {"spring-data": ("spring-data-jpa",)})
    assert not result.success
    assert result.error_message == "projects navigation unavailable"
    assert store.relationship_exists("spring-data", "spring-data-jpa")
