"""Phase 7: code examples from curated guides and sample repositories on GitHub."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from spring_catalog.adapters.catalog_store import CatalogStore
from spring_catalog.models.catalog import CodeExample
from spring_catalog.models.sync import OutcomeKind, PhaseResult
from spring_catalog.services import sync_config
from spring_catalog.services.documentation_sync_service import target_version
from spring_catalog.services.github_client import GitHubClient, GitHubRepository
from spring_catalog.services.guides_client import GuidePage, GuidesClient
from spring_catalog.services.phase_recorder import PhaseRecorder
from spring_catalog.services.project_registry import format_project_name

PHASE = "code_examples"
log = logging.getLogger(__name__)


def is_sample_repository(repo: GitHubRepository) -> bool:
    haystack = f"{repo.name} {repo.description or ''}".lower()
    return any(keyword in haystack for keyword in sync_config.SAMPLE_KEYWORDS)


def project_slug_for_repo(repo_name: str, org: str) -> Optional[str]:
    name = repo_name.lower()
    for needle, slug in sync_config.REPO_SLUG_RULES:
        if needle in name:
            return slug
    if org in ("spring-cloud", "spring-cloud-samples"):
        return "spring-cloud"
    if "spring" in name:
        return "spring-boot"
    return None


def _add_example(store: CatalogStore, rec: PhaseRecorder, example: CodeExample) -> None:
    key = f"{example.project_slug}@{example.version}:{example.title}"
    if store.code_example_exists(example.project_slug, example.version, example.title, example.source_url):
        rec.record(OutcomeKind.UNCHANGED, "code_example", key)
        return
    store.add_code_example(example)
    rec.record(OutcomeKind.CREATED, "code_example", key)


def store_guide_examples(
    store: CatalogStore,
    rec: PhaseRecorder,
    guide: tuple[str, str, str, str],
    page: GuidePage,
) -> None:
    path, title, slug, category = guide
    version = target_version(store, slug)
    if version is None:
        rec.skip("code_example", path, f"project {slug} has no synced versions")
        return
    for snippet in page.snippets:
        _add_example(
            store,
            rec,
            CodeExample(
                project_slug=slug,
                version=version.version,
                title=f"{title} - Example {snippet.index}",
                description=snippet.context or title,
                code=snippet.code,
                language=snippet.language,
                category=category,
                tags=[category, "spring-guide", path.split("/", 1)[0]],
                source_url=page.url,
            ),
        )


def store_sample_repositories(
    store: CatalogStore,
    rec: PhaseRecorder,
    org: str,
    repos: Iterable[GitHubRepository],
) -> None:
    for repo in repos:
        if repo.archived or not is_sample_repository(repo):
            continue
        slug = project_slug_for_repo(repo.name, org)
        if slug is None:
            rec.skip("code_example", repo.full_name, "no matching project")
            continue
        version = target_version(store, slug)
        if version is None:
            rec.skip("code_example", repo.full_name, f"project {slug} has no synced versions")
            continue
        title = format_project_name(repo.name)
        _add_example(
            store,
            rec,
            CodeExample(
                project_slug=slug,
                version=version.version,
                title=title,
                description=repo.description or title,
                code=f"GitHub repository: {repo.html_url}",
                language="java",
                category="Sample Repository",
                tags=["github", "sample", org, slug],
                source_url=repo.html_url,
            ),
        )


def sync_code_examples(
    store: CatalogStore,
    guides_client: GuidesClient,
    github: GitHubClient,
    guides: Iterable[tuple[str, str, str, str]] = sync_config.GUIDES,
    orgs: Iterable[str] = sync_config.SAMPLE_ORGS,
) -> PhaseResult:
    rec = PhaseRecorder(PHASE)

    guide_pages: list[tuple[tuple[str, str, str, str], GuidePage]] = []
    for guide in guides:
        page = guides_client.fetch(guide[0])
        if page is None:
            rec.skip("code_example", guide[0], "guide page unavailable")
        else:
            guide_pages.append((guide, page))

    org_repos: list[tuple[str, list[GitHubRepository]]] = []
    for org in orgs:
        try:
            org_repos.append((org, github.list_org_repos(org)))
        except RuntimeError as e:
            rec.skip("code_example", org, f"repository listing unavailable: {e}")

    with store.transaction():
        for guide, page in guide_pages:
            if store.get_project(guide[2]) is None:
                rec.skip("code_example", guide[0], f"project {guide[2]} not synced")
                continue
            store_guide_examples(store, rec, guide, page)
        for org, repos in org_repos:
            store_sample_repositories(store, rec, org, repos)

    log.info(
        "Code examples: %d guides fetched, %d orgs listed",
        len(guide_pages), len(org_repos),
    )
    return rec.finish()
