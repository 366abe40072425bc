"""Pydantic models."""

from spring_catalog.models.catalog import (
    CodeExample,
    CompatibilityLink,
    DocumentationContent,
    ObservedVersionFields,
    Project,
    ProjectRelationship,
    ProjectSummary,
    Version,
    VersionState,
)
from spring_catalog.models.error import ErrorDetail
from spring_catalog.models.sync import (
    ComprehensiveSyncResult,
    ItemOutcome,
    OutcomeKind,
    PhaseResult,
    SyncProgressEvent,
)

__all__ = [
    "CodeExample",
    "CompatibilityLink",
    "ComprehensiveSyncResult",
    "DocumentationContent",
    "ErrorDetail",
    "ItemOutcome",
    "ObservedVersionFields",
    "OutcomeKind",
    "PhaseResult",
    "Project",
    "ProjectRelationship",
    "ProjectSummary",
    "SyncProgressEvent",
    "Version",
    "VersionState",
]
