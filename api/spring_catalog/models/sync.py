"""Sync run models: per-item outcomes, per-phase results and progress events."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OutcomeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    ERROR = "error"


class ItemOutcome(BaseModel):
    """What happened to one record during a phase."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    entity: str  # project | version | compatibility | relationship | documentation | code_example
    key: str
    detail: Optional[str] = None


class PhaseResult(BaseModel):
    """Finished result of one sync phase. Built once by PhaseRecorder, never mutated."""

    model_config = ConfigDict(frozen=True)

    phase: str
    success: bool
    started_at: datetime
    finished_at: datetime
    created: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    created_by_entity: dict[str, int] = Field(default_factory=dict)
    error_message: Optional[str] = None
    outcomes: tuple[ItemOutcome, ...] = ()

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


class ComprehensiveSyncResult(BaseModel):
    """Aggregate of all phases of one run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    success: bool
    started_at: datetime
    finished_at: datetime
    cancelled: bool = False
    error_message: Optional[str] = None
    phases: tuple[PhaseResult, ...] = ()
    projects_created: int = 0
    versions_created: int = 0
    compatibility_links_created: int = 0
    relationships_created: int = 0
    documentation_updated: int = 0
    code_examples_created: int = 0
    total_created: int = 0
    total_updated: int = 0
    total_skipped: int = 0
    total_errors: int = 0

    def summary(self) -> str:
        state = "succeeded" if self.success else ("cancelled" if self.cancelled else "failed")
        failed = [p.phase for p in self.phases if not p.success]
        out = (
            f"sync {state}: {self.total_created} created, {self.total_updated} updated, "
            f"{self.total_skipped} skipped, {self.total_errors} errors"
        )
        if failed:
            out += f" (failed phases: {', '.join(failed)})"
        return out


class SyncProgressEvent(BaseModel):
    current_phase: int = Field(ge=0)
    total_phases: int = Field(ge=1)
    phase_description: str
    status: str  # running | completed | error
    percent_complete: int = Field(ge=0, le=100)
    completed: bool = False
    message: Optional[str] = None


class SyncRunAccepted(BaseModel):
    run_id: str
    status: str = "started"


class SyncStatus(BaseModel):
    running: bool
    current_run_id: Optional[str] = None
    last_result: Optional[ComprehensiveSyncResult] = None
