"""Version string parsing and release-state classification.

Upstream sources spell versions many ways: "3.5.7", "4.0.0-SNAPSHOT",
"3.5.0-M1", "2.7.0.RELEASE", "3.4.0-RC2", "3.5.x". Parsing never raises;
unparseable input degrades to (0, 0, None) with a warning so a single bad
record cannot abort a sync.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import NamedTuple, Optional

from spring_catalog.models.catalog import VersionState

log = logging.getLogger(__name__)

_SUFFIXES = re.compile(r"(\.RELEASE|\.BUILD-SNAPSHOT|RC\d+|M\d+|\.[xX])$")
_NUMBERS = re.compile(r"^(\d+)\.(\d+)(?:\.(\d+))?")
_MILESTONE = re.compile(r"M\d")
_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{1,2})")

_STATUS_TOKENS = {
    "GENERAL_AVAILABILITY": VersionState.GA,
    "PRERELEASE": VersionState.RC,
    "SNAPSHOT": VersionState.SNAPSHOT,
}


class ParsedVersion(NamedTuple):
    major: int
    minor: int
    patch: Optional[int]


UNPARSEABLE = ParsedVersion(0, 0, None)


def parse_version(raw: str | None) -> ParsedVersion:
    """Parse a version string into (major, minor, patch). Patch is None for "3.5" or "3.5.x"."""
    text = (raw or "").strip()
    m = _NUMBERS.match(_SUFFIXES.sub("", text))
    if not m:
        log.warning("Could not parse version string %r", raw)
        return UNPARSEABLE
    patch = int(m.group(3)) if m.group(3) is not None else None
    return ParsedVersion(int(m.group(1)), int(m.group(2)), patch)


def classify_state(version: str | None, status_token: str | None = None) -> VersionState:
    """Classify a release state.

    Order: SNAPSHOT, RC, milestone ("M" followed by a digit). When the version
    string carries no marker, the upstream status token decides; GA otherwise.
    """
    text = (version or "").upper()
    if "SNAPSHOT" in text:
        return VersionState.SNAPSHOT
    if "RC" in text:
        return VersionState.RC
    if _MILESTONE.search(text):
        return VersionState.MILESTONE
    if status_token:
        return _STATUS_TOKENS.get(status_token.strip().upper(), VersionState.GA)
    return VersionState.GA


def status_label(status_token: str | None, current: bool = False) -> Optional[str]:
    """Map a page-data status token to the stored status flag."""
    token = (status_token or "").strip().upper()
    if token == "GENERAL_AVAILABILITY":
        return "CURRENT" if current else "GA"
    if token == "SNAPSHOT":
        return "SNAPSHOT"
    if token == "PRERELEASE":
        return "PRE"
    return None


def is_generation_pattern(raw: str | None) -> bool:
    return bool(raw) and raw.strip().lower().endswith(".x")


def parse_year_month(raw: str | None) -> Optional[date]:
    """Parse "YYYY-MM" to the first day of that month. "-", empty or junk gives None."""
    text = (raw or "").strip()
    m = _YEAR_MONTH.match(text)
    if not m:
        if text and text != "-":
            log.debug("Ignoring unparseable support date %r", raw)
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), 1)
    except ValueError:
        log.debug("Ignoring out-of-range support date %r", raw)
        return None


def substitute_version(url: str | None, version: str) -> Optional[str]:
    if not url:
        return None
    return url.replace("{version}", version)


def normalize_version(raw: str | None) -> str:
    """Old-style Initializr ids: "2.7.0.RELEASE" -> "2.7.0", "2.7.1.BUILD-SNAPSHOT" -> "2.7.1-SNAPSHOT"."""
    text = (raw or "").strip()
    if text.endswith(".RELEASE"):
        return text[: -len(".RELEASE")]
    if text.endswith(".BUILD-SNAPSHOT"):
        return text[: -len(".BUILD-SNAPSHOT")] + "-SNAPSHOT"
    return text
