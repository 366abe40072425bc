"""Environment-driven sync settings and the static data tables the phases consume."""

from __future__ import annotations

import os
from types import MappingProxyType
from typing import Mapping

ANCHOR_PROJECT = "spring-boot"


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name, "").strip()
    return raw or default


def _env_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return max(minimum, float(raw)) if raw else default
    except ValueError:
        return default


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return max(minimum, int(raw)) if raw else default
    except ValueError:
        return default


def spring_io_base_url() -> str:
    return _env_str("SPRING_IO_BASE_URL", "https://spring.io").rstrip("/")


def spring_docs_base_url() -> str:
    return _env_str("SPRING_DOCS_BASE_URL", "https://docs.spring.io").rstrip("/")


def initializr_url() -> str:
    return _env_str("INITIALIZR_URL", "https://start.spring.io").rstrip("/")


def github_api_base_url() -> str:
    return _env_str("GITHUB_API_BASE_URL", "https://api.github.com").rstrip("/")


def fetch_timeout_seconds() -> float:
    return _env_float("SYNC_FETCH_TIMEOUT_SECONDS", 30.0, minimum=1.0)


def crawl_workers() -> int:
    return _env_int("SYNC_CRAWL_WORKERS", 4, minimum=1)


def user_agent() -> str:
    return _env_str("SYNC_USER_AGENT", "spring-catalog/1.0")


# Parent -> children hierarchies that the projects page does not expose in markup.
KNOWN_PROJECT_HIERARCHY: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "spring-data": (
            "spring-data-jpa",
            "spring-data-mongodb",
            "spring-data-redis",
            "spring-data-elasticsearch",
            "spring-data-cassandra",
            "spring-data-neo4j",
            "spring-data-r2dbc",
            "spring-data-jdbc",
            "spring-data-rest",
            "spring-data-couchbase",
            "spring-data-ldap",
        ),
        "spring-cloud": (
            "spring-cloud-azure",
            "spring-cloud-alibaba",
            "spring-cloud-aws",
            "spring-cloud-config",
            "spring-cloud-gateway",
            "spring-cloud-netflix",
            "spring-cloud-stream",
            "spring-cloud-sleuth",
            "spring-cloud-vault",
        ),
        "spring-security": ("spring-security-kerberos", "spring-security-oauth"),
        "spring-session": ("spring-session-data-geode",),
    }
)


# (guide path, guide title, project slug, category)
GUIDES: tuple[tuple[str, str, str, str], ...] = (
    ("gs/rest-service", "Building a RESTful Web Service", "spring-boot", "Getting Started"),
    ("gs/spring-boot", "Building an Application with Spring Boot", "spring-boot", "Getting Started"),
    ("gs/actuator-service", "Building a RESTful Web Service with Spring Boot Actuator", "spring-boot", "Getting Started"),
    ("gs/scheduling-tasks", "Scheduling Tasks", "spring-boot", "Getting Started"),
    ("gs/consuming-rest", "Consuming a RESTful Web Service", "spring-boot", "Getting Started"),
    ("gs/serving-web-content", "Serving Web Content with Spring MVC", "spring-framework", "Web"),
    ("gs/handling-form-submission", "Handling Form Submission", "spring-framework", "Web"),
    ("gs/uploading-files", "Uploading Files", "spring-framework", "Web"),
    ("gs/validating-form-input", "Validating Form Input", "spring-framework", "Web"),
    ("gs/reactive-rest-service", "Building a Reactive RESTful Web Service", "spring-framework", "Reactive"),
    ("gs/accessing-data-jpa", "Accessing Data with JPA", "spring-data", "Data Access"),
    ("gs/accessing-data-mysql", "Accessing data with MySQL", "spring-data", "Data Access"),
    ("gs/accessing-data-mongodb", "Accessing Data with MongoDB", "spring-data", "Data Access"),
    ("gs/accessing-data-rest", "Accessing JPA Data with REST", "spring-data", "Data Access"),
    ("gs/relational-data-access", "Accessing Relational Data using JDBC with Spring", "spring-framework", "Data Access"),
    ("gs/securing-web", "Securing a Web Application", "spring-security", "Security"),
    ("gs/messaging-rabbitmq", "Messaging with RabbitMQ", "spring-amqp", "Messaging"),
    ("gs/messaging-redis", "Messaging with Redis", "spring-data", "Messaging"),
    ("gs/batch-processing", "Creating a Batch Service", "spring-batch", "Batch"),
    ("gs/integration", "Integrating Data", "spring-integration", "Integration"),
    ("gs/caching", "Caching Data with Spring", "spring-framework", "Caching"),
    ("topical/spring-security-architecture", "Spring Security Architecture", "spring-security", "Security"),
)

SAMPLE_ORGS: tuple[str, ...] = ("spring-projects", "spring-cloud", "spring-cloud-samples", "spring-guides")
SAMPLE_KEYWORDS: tuple[str, ...] = ("sample", "example", "demo")

# First matching substring of a repository name wins.
REPO_SLUG_RULES: tuple[tuple[str, str], ...] = (
    ("spring-boot", "spring-boot"),
    ("spring-cloud", "spring-cloud"),
    ("spring-security", "spring-security"),
    ("spring-data", "spring-data"),
    ("spring-batch", "spring-batch"),
    ("spring-integration", "spring-integration"),
    ("webflux", "spring-framework"),
    ("mvc", "spring-framework"),
    ("spring-amqp", "spring-amqp"),
    ("spring-kafka", "spring-kafka"),
)
