"""Phase-local collector of item outcomes, finished into an immutable PhaseResult."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Optional

from spring_catalog.models.sync import ItemOutcome, OutcomeKind, PhaseResult

log = logging.getLogger(__name__)

# Unchanged outcomes are counted but not kept; a re-run would otherwise carry every link it re-checked.
_KEPT_KINDS = {OutcomeKind.CREATED, OutcomeKind.UPDATED, OutcomeKind.SKIPPED, OutcomeKind.ERROR}


class PhaseRecorder:
    def __init__(self, phase: str) -> None:
        self.phase = phase
        self.started_at = datetime.now(timezone.utc)
        self._counts: Counter[OutcomeKind] = Counter()
        self._created_by_entity: Counter[str] = Counter()
        self._kept: list[ItemOutcome] = []

    def add(self, outcome: ItemOutcome) -> ItemOutcome:
        self._counts[outcome.kind] += 1
        if outcome.kind == OutcomeKind.CREATED:
            self._created_by_entity[outcome.entity] += 1
        if outcome.kind in _KEPT_KINDS:
            self._kept.append(outcome)
        return outcome

    def extend(self, outcomes: Iterable[ItemOutcome]) -> None:
        for outcome in outcomes:
            self.add(outcome)

    def record(self, kind: OutcomeKind, entity: str, key: str, detail: Optional[str] = None) -> ItemOutcome:
        return self.add(ItemOutcome(kind=kind, entity=entity, key=key, detail=detail))

    def skip(self, entity: str, key: str, detail: str) -> ItemOutcome:
        log.debug("%s: skipped %s %s (%s)", self.phase, entity, key, detail)
        return self.record(OutcomeKind.SKIPPED, entity, key, detail)

    def error(self, entity: str, key: str, detail: str) -> ItemOutcome:
        log.warning("%s: %s %s failed: %s", self.phase, entity, key, detail)
        return self.record(OutcomeKind.ERROR, entity, key, detail)

    def count(self, kind: OutcomeKind) -> int:
        return self._counts[kind]

    def finish(self, success: bool = True, error_message: Optional[str] = None) -> PhaseResult:
        return PhaseResult(
            phase=self.phase,
            success=success,
            started_at=self.started_at,
            finished_at=datetime.now(timezone.utc),
            created=self._counts[OutcomeKind.CREATED],
            updated=self._counts[OutcomeKind.UPDATED],
            skipped=self._counts[OutcomeKind.SKIPPED],
            errors=self._counts[OutcomeKind.ERROR],
            created_by_entity=dict(self._created_by_entity),
            error_message=error_message,
            outcomes=tuple(self._kept),
        )


def failed_phase(
    phase: str,
    error_message: str,
    started_at: Optional[datetime] = None,
    errors: int = 1,
) -> PhaseResult:
    """Result for a phase that raised, or (errors=0) one that never started."""
    now = datetime.now(timezone.utc)
    return PhaseResult(
        phase=phase,
        success=False,
        started_at=started_at or now,
        finished_at=now,
        errors=errors,
        error_message=error_message,
    )
