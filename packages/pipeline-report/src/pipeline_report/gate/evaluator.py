"""Gate evaluator — overall pass/fail from stage outcomes under a policy.

Pure: same results + policy always give the same decision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from pipeline_report.gate.policy import GatePolicy
from pipeline_report.stages import (
    DOCKER,
    SECURITY,
    SONAR,
    StageOutcome,
    StageResult,
    index_results,
    outcome_of,
    stage_label,
)


@dataclass
class GateDecision:
    passed: bool
    reasons: list[str] = field(default_factory=list)
    core_failures: list[str] = field(default_factory=list)
    container_build: StageOutcome = StageOutcome.NOT_STARTED
    container_blocked: bool = False


_ADVISORY_NOUNS = {
    SECURITY: ("Security audit completed", "Security audit found issues"),
    SONAR: ("SonarQube analysis completed successfully", "SonarQube analysis failed"),
}


def evaluate(results: Iterable[StageResult], policy: GatePolicy) -> GateDecision:
    by_name = index_results(results)
    decision = GateDecision(passed=True)

    for stage in policy.core_stages:
        label = stage_label(stage)
        outcome = outcome_of(by_name, stage)
        if policy.is_validly_skipped(stage):
            decision.reasons.append(f"{label} check skipped")
        elif outcome is StageOutcome.SUCCESS:
            decision.reasons.append(f"{label} check passed")
        else:
            decision.passed = False
            decision.core_failures.append(stage)
            decision.reasons.append(f"{label} check failed ({outcome.value})")

    for stage in policy.informational_stages():
        if stage == DOCKER:
            continue
        decision.reasons.append(_advisory_reason(stage, outcome_of(by_name, stage), policy))

    if DOCKER not in policy.core_stages:
        _evaluate_container_build(by_name, policy, decision)

    return decision


def _advisory_reason(stage: str, outcome: StageOutcome, policy: GatePolicy) -> str:
    label = stage_label(stage)
    if policy.is_skip_flagged(stage):
        return f"{label} skipped"
    ok, failed = _ADVISORY_NOUNS.get(stage, (f"{label} completed", f"{label} failed"))
    if outcome is StageOutcome.SUCCESS:
        return f"{ok} (informational)"
    if outcome is StageOutcome.FAILURE:
        return f"{failed} (informational only, does not block pipeline)"
    return f"{label} {outcome.value} (informational)"


def _evaluate_container_build(
    by_name: dict[str, StageResult],
    policy: GatePolicy,
    decision: GateDecision,
) -> None:
    label = stage_label(DOCKER)
    if policy.is_skip_flagged(DOCKER):
        decision.container_build = StageOutcome.SKIPPED
        decision.reasons.append(f"{label} skipped")
        return

    dependencies = policy.container_dependencies_for_run()
    if not all(outcome_of(by_name, dep) is StageOutcome.SUCCESS for dep in dependencies):
        decision.container_build = StageOutcome.SKIPPED
        decision.container_blocked = True
        decision.reasons.append(f"{label} blocked by failed core checks")
        return

    outcome = outcome_of(by_name, DOCKER)
    decision.container_build = outcome
    if outcome is StageOutcome.SUCCESS:
        decision.reasons.append(f"{label} succeeded")
    elif outcome is StageOutcome.FAILURE:
        decision.reasons.append(f"{label} failed (but core checks passed)")
    else:
        decision.reasons.append(f"{label} {outcome.value}")
