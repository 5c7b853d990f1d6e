"""Pipeline stages and their outcomes.

One StageResult exists per stage per run. Stages whose CI job never reported
are `not_started`; skippable stages with their skip flag set are forced to
`skipped`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping

if TYPE_CHECKING:
    from pipeline_report.gate.policy import GatePolicy

logger = logging.getLogger(__name__)

LINT = "lint"
TYPECHECK = "typecheck"
BUILD = "build"
SECURITY = "security"
SONAR = "sonar"
DOCKER = "docker"

# Report/log order
ALL_STAGES: tuple[str, ...] = (LINT, TYPECHECK, BUILD, SECURITY, SONAR, DOCKER)

STAGE_LABELS: dict[str, str] = {
    LINT: "ESLint",
    TYPECHECK: "TypeScript",
    BUILD: "Build",
    SECURITY: "Security Audit",
    SONAR: "SonarQube Analysis",
    DOCKER: "Docker Build",
}


def stage_label(name: str) -> str:
    return STAGE_LABELS.get(name, name)


class StageOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"

    @classmethod
    def parse(cls, raw: str | StageOutcome | None) -> StageOutcome:
        """Map a CI job result/status string onto the outcome lattice."""
        if isinstance(raw, StageOutcome):
            return raw
        value = (raw or "").strip().lower()
        if not value:
            return cls.NOT_STARTED
        try:
            return cls(value)
        except ValueError:
            pass
        if value in _FAILURE_ALIASES:
            return cls.FAILURE
        if value in _IN_PROGRESS_ALIASES:
            return cls.IN_PROGRESS
        logger.warning("Unrecognised stage outcome %r, treating as not_started", raw)
        return cls.NOT_STARTED


_FAILURE_ALIASES = frozenset({"cancelled", "timed_out", "action_required", "startup_failure"})
_IN_PROGRESS_ALIASES = frozenset({"queued", "pending", "waiting", "requested", "completed"})


@dataclass(frozen=True)
class StageResult:
    name: str
    outcome: StageOutcome
    is_core: bool = False
    is_skippable: bool = False

    @property
    def label(self) -> str:
        return stage_label(self.name)

    @property
    def succeeded(self) -> bool:
        return self.outcome is StageOutcome.SUCCESS


def build_stage_results(
    outcomes: Mapping[str, str | StageOutcome | None],
    policy: GatePolicy,
) -> list[StageResult]:
    """Create exactly one StageResult per known stage, in report order."""
    names = list(ALL_STAGES)
    names.extend(n for n in outcomes if n not in names)

    results = []
    for name in names:
        outcome = StageOutcome.parse(outcomes.get(name))
        is_skippable = name in policy.skippable_stages
        if is_skippable and policy.is_skip_flagged(name):
            outcome = StageOutcome.SKIPPED
        results.append(
            StageResult(
                name=name,
                outcome=outcome,
                is_core=name in policy.core_stages,
                is_skippable=is_skippable,
            )
        )
    return results


def index_results(results: Iterable[StageResult]) -> dict[str, StageResult]:
    return {r.name: r for r in results}


def outcome_of(results_by_name: Mapping[str, StageResult], name: str) -> StageOutcome:
    result = results_by_name.get(name)
    return result.outcome if result else StageOutcome.NOT_STARTED
