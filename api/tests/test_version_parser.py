"""Tests for version string parsing and release-state classification."""

from datetime import date

import pytest

from spring_catalog.models.catalog import VersionState
from spring_catalog.services.version_parser import (
    UNPARSEABLE,
    classify_state,
    is_generation_pattern,
    normalize_version,
    parse_version,
    parse_year_month,
    status_label,
    substitute_version,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("3.5.7", (3, 5, 7)),
        ("4.0.0-SNAPSHOT", (4, 0, 0)),
        ("3.5.0-M1", (3, 5, 0)),
        ("3.4.0-RC2", (3, 4, 0)),
        ("2.7.0.RELEASE", (2, 7, 0)),
        ("2.7.1.BUILD-SNAPSHOT", (2, 7, 1)),
        ("3.5", (3, 5, None)),
        ("3.5.x", (3, 5, None)),
        ("2025.0.x", (2025, 0, None)),
    ],
)
def test_parse_version_formats(raw, expected):
    assert tuple(parse_version(raw)) == expected


@pytest.mark.parametrize("raw", ["", None, "latest", "v-next", "x.y.z"])
def test_parse_version_degrades_instead_of_raising(raw):
    assert parse_version(raw) == UNPARSEABLE


def test_classify_state_marker_order():
    assert classify_state("4.0.0-SNAPSHOT") == VersionState.SNAPSHOT
    assert classify_state("3.4.0-RC2") == VersionState.RC
    assert classify_state("3.5.0-M1") == VersionState.MILESTONE
    assert classify_state("3.5.7") == VersionState.GA
    # "RC" wins over milestone when both appear
    assert classify_state("1.0.0-M1-RC1") == VersionState.RC


def test_classify_state_uses_status_token_only_without_marker():
    assert classify_state("4.0.0", "PRERELEASE") == VersionState.RC
    assert classify_state("4.0.0", "SNAPSHOT") == VersionState.SNAPSHOT
    assert classify_state("4.0.0", "GENERAL_AVAILABILITY") == VersionState.GA
    assert classify_state("4.0.0", "SOMETHING_NEW") == VersionState.GA
    assert classify_state("4.0.0-M2", "GENERAL_AVAILABILITY") == VersionState.MILESTONE


def test_status_label():
    assert status_label("GENERAL_AVAILABILITY", current=True) == "CURRENT"
    assert status_label("GENERAL_AVAILABILITY") == "GA"
    assert status_label("PRERELEASE") == "PRE"
    assert status_label("SNAPSHOT") == "SNAPSHOT"
    assert status_label(None) is None


def test_generation_pattern_detection():
    assert is_generation_pattern("3.5.x")
    assert is_generation_pattern("2025.0.X")
    assert not is_generation_pattern("3.5.7")
    assert not is_generation_pattern(None)


def test_parse_year_month():
    assert parse_year_month("2025-05") == date(2025, 5, 1)
    assert parse_year_month("2032-06-30") == date(2032, 6, 1)
    assert parse_year_month("-") is None
    assert parse_year_month("") is None
    assert parse_year_month("2025-13") is None


def test_substitute_version():
    url = "https://docs.spring.io/spring-boot/{version}/reference/"
    assert substitute_version(url, "3.5.7") == "https://docs.spring.io/spring-boot/3.5.7/reference/"
    assert substitute_version(None, "3.5.7") is None


def test_normalize_initializr_ids():
    assert normalize_version("2.7.0.RELEASE") == "2.7.0"
    assert normalize_version("2.7.1.BUILD-SNAPSHOT") == "2.7.1-SNAPSHOT"
    assert normalize_version("3.5.7") == "3.5.7"
