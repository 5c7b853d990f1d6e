"""Quality gate — policy and evaluator."""

from pipeline_report.gate.evaluator import GateDecision, evaluate
from pipeline_report.gate.policy import (
    SKIP_FLAG_STAGES,
    GatePolicy,
    PolicyError,
    SkipFlags,
    load_policy,
)

__all__ = [
    "GateDecision",
    "GatePolicy",
    "PolicyError",
    "SKIP_FLAG_STAGES",
    "SkipFlags",
    "evaluate",
    "load_policy",
]
