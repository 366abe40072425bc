"""Tests for the upstream source clients (page data, generations, Initializr, overview, guides).

Uses mocked HTTP responses (respx) to avoid real spring.io calls.
"""

import time
from datetime import date

import httpx
import respx
from httpx import Response

from spring_catalog.services.generations_client import GenerationsClient, parse_generations
from spring_catalog.services.guides_client import GuidesClient, detect_language, parse_guide
from spring_catalog.services.http_fetch import Fetcher, json_path
from spring_catalog.services.initializr_client import InitializrClient, parse_initializr
from spring_catalog.services.overview_client import OverviewClient, parse_overview
from spring_catalog.services.project_page_client import ProjectPageClient, parse_project_page
from spring_payloads import BOOT_PAGE, GENERATIONS, GUIDE_HTML, INITIALIZR, OVERVIEW_HTML


@respx.mock
def test_fetcher_returns_none_on_http_error_and_bad_json():
    respx.get("https://spring.io/missing").mock(return_value=Response(404))
    respx.get("https://spring.io/broken").mock(return_value=Response(200, text="<html>not json"))
    respx.get("https://spring.io/down").mock(side_effect=httpx.ConnectError)
    fetcher = Fetcher(timeout=1)

    assert fetcher.fetch_text("https://spring.io/missing") is None
    assert fetcher.fetch_json("https://spring.io/broken") is None
    assert fetcher.fetch_text("https://spring.io/down") is None


@respx.mock
def test_fetcher_sends_user_agent_and_accept():
    route = respx.get("https://start.spring.io").mock(return_value=Response(200, json={}))
    Fetcher(user_agent="catalog-test/1.0").fetch_json("https://start.spring.io")
    request = route.calls[0].request
    assert request.headers["user-agent"] == "catalog-test/1.0"
    assert request.headers["accept"] == "application/json"


def test_fetcher_abandons_body_that_outlasts_the_timeout():
    def trickle():
        for _ in range(20):
            time.sleep(0.1)
            yield b"x"

    transport = httpx.MockTransport(lambda request: Response(200, content=trickle()))
    fetcher = Fetcher(timeout=0.3, transport=transport)

    started = time.monotonic()
    assert fetcher.fetch_text("https://spring.io/projects") is None
    assert time.monotonic() - started < 1.5


def test_fetcher_send_returns_any_status_with_headers():
    transport = httpx.MockTransport(lambda request: Response(304, headers={"ETag": "\"v1\""}))
    r = Fetcher(timeout=1, transport=transport).send("https://api.github.com/orgs/x/repos", {"If-None-Match": "\"v1\""})
    assert r.status_code == 304
    assert r.headers["etag"] == "\"v1\""


def test_json_path():
    assert json_path({"a": {"b": {"c": 1}}}, "a", "b", "c") == 1
    assert json_path({"a": [1]}, "a", "b") is None
    assert json_path(None, "a") is None


def test_parse_project_page_merges_support_dates():
    page = parse_project_page("spring-boot", BOOT_PAGE)
    assert page.title == "Spring Boot"
    assert [v.version for v in page.versions] == ["4.0.0-SNAPSHOT", "3.5.7", "3.4.11"]
    assert page.current_version() == "3.5.7"

    current = page.versions[1]
    assert current.observed.reference_doc_url == "https://docs.spring.io/spring-boot/reference/3.5.7/index.html"
    assert current.observed.release_date == date(2025, 5, 1)
    assert current.observed.oss_support_end == date(2026, 6, 1)
    assert current.observed.enterprise_support_end == date(2032, 6, 1)
    assert current.observed.status == "CURRENT"

    older = page.versions[2]
    assert older.observed.enterprise_support_end is None  # "-" in the source
    assert older.observed.status == "GA"

    snapshot = page.versions[0]
    assert snapshot.observed.release_date is None
    assert snapshot.status_token == "SNAPSHOT"


def test_parse_project_page_tolerates_missing_fields():
    page = parse_project_page("spring-ai", {"result": {"data": {}}})
    assert page.versions == []
    assert page.current_version() is None


@respx.mock
def test_project_page_client_fetch():
    route = respx.get("https://spring.io/page-data/projects/spring-boot/page-data.json").mock(
        return_value=Response(200, json=BOOT_PAGE)
    )
    page = ProjectPageClient(Fetcher()).fetch("spring-boot")
    assert route.called
    assert len(page.versions) == 3

    respx.get("https://spring.io/page-data/projects/spring-nope/page-data.json").mock(return_value=Response(404))
    assert ProjectPageClient(Fetcher()).fetch("spring-nope") is None


def test_parse_generations_flattens_release_trains():
    snapshot = parse_generations(GENERATIONS)
    assert [g.version for g in snapshot.generations] == ["3.5.x", "3.4.x"]
    mappings = [(m.project_slug, m.pattern, m.train_slug) for m in snapshot.generations[0].mappings]
    assert mappings == [
        ("spring-batch", "5.2.x", None),
        ("spring-cloud", "2025.0.x", None),
        ("spring-cloud-gateway", "4.3.x", "spring-cloud"),
    ]
    names = {m.project_slug: m.project_name for m in snapshot.generations[0].mappings}
    assert names["spring-batch"] == "Spring Batch"
    assert names["spring-cloud-gateway"] == "Spring Cloud Gateway"


def test_parse_generations_unexpected_shape():
    assert parse_generations({"result": {}}).generations == []
    assert parse_generations([]).generations == []


@respx.mock
def test_generations_client_url():
    respx.get("https://spring.io/page-data/projects/generations/page-data.json").mock(
        return_value=Response(200, json=GENERATIONS)
    )
    client = GenerationsClient(Fetcher())
    assert client.url == "https://spring.io/page-data/projects/generations/page-data.json"
    assert len(client.fetch().generations) == 2


def test_parse_initializr():
    metadata = parse_initializr(INITIALIZR)
    assert metadata.default_version == "3.5.7"
    assert [v.id for v in metadata.versions] == ["4.0.0-SNAPSHOT", "3.5.7", "3.4.11"]
    assert parse_initializr({"javaVersion": {}}).versions == []


@respx.mock
def test_initializr_client_respects_configured_url(monkeypatch):
    monkeypatch.setenv("INITIALIZR_URL", "https://start.example.test")
    respx.get("https://start.example.test").mock(return_value=Response(200, json=INITIALIZR))
    assert InitializrClient(Fetcher()).fetch().default_version == "3.5.7"


def test_parse_overview_to_markdown():
    overview = parse_overview("https://spring.io/projects/spring-boot", OVERVIEW_HTML)
    assert overview.title == "Overview"
    assert overview.description == "Level up your Java code"
    assert overview.markdown.startswith("# Overview")
    assert "**production-grade**" in overview.markdown
    assert "[Spring](https://spring.io)" in overview.markdown
    assert "- Embedded servers" in overview.markdown


@respx.mock
def test_overview_client_fetch():
    respx.get("https://spring.io/projects/spring-boot").mock(return_value=Response(200, text=OVERVIEW_HTML))
    overview = OverviewClient(Fetcher()).fetch("spring-boot")
    assert overview.url == "https://spring.io/projects/spring-boot"
    assert overview.markdown


def test_parse_guide_keeps_substantial_snippets():
    guide = parse_guide("https://spring.io/guides/gs/rest-service", GUIDE_HTML)
    assert len(guide.snippets) == 1
    snippet = guide.snippets[0]
    assert snippet.index == 1
    assert snippet.language == "java"
    assert snippet.context == "Create a Resource Controller"
    assert "@RestController" in snippet.code


def test_detect_language():
    assert detect_language(["language-kotlin"]) == "kotlin"
    assert detect_language("hljs language-yml") == "yaml"
    assert detect_language(["hljs", "lang-sh"]) == "bash"
    assert detect_language(["language-javascript"]) == "javascript"
    assert detect_language("language-typescript") == "typescript"
    # A bare word is not a language class
    assert detect_language(["kotlin-snippet"]) == "java"
    assert detect_language(None) == "java"


@respx.mock
def test_guides_client_url():
    respx.get("https://spring.io/guides/gs/rest-service").mock(return_value=Response(200, text=GUIDE_HTML))
    client = GuidesClient(Fetcher())
    assert client.guide_url("/gs/rest-service/") == "https://spring.io/guides/gs/rest-service"
    assert len(client.fetch("gs/rest-service").snippets) == 1
