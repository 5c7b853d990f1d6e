"""Pydantic models for a SonarQube analysis snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

# Snapshot sections, one per read against the service
METRICS = "metrics"
QUALITY_GATE = "quality_gate"
ISSUES = "issues"
HOTSPOTS = "hotspots"
DUPLICATIONS = "duplications"
COVERAGE = "coverage"

SECTIONS: tuple[str, ...] = (METRICS, QUALITY_GATE, ISSUES, HOTSPOTS, DUPLICATIONS, COVERAGE)

SEVERITIES: tuple[str, ...] = ("BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO")
CRITICAL_SEVERITIES = frozenset({"BLOCKER", "CRITICAL"})


def _short_path(component: str) -> str:
    """`project:src/app.ts` -> `src/app.ts`."""
    return component.split(":")[-1] if component else ""


class Issue(BaseModel):
    severity: str = "INFO"
    message: str = ""
    component: str = ""
    line: int | None = None
    rule: str = ""

    @property
    def file(self) -> str:
        return _short_path(self.component)

    @property
    def rule_id(self) -> str:
        return self.rule.split(":")[-1] if self.rule else "Unknown"

    @property
    def is_critical(self) -> bool:
        return self.severity.upper() in CRITICAL_SEVERITIES


class Hotspot(BaseModel):
    probability: str = ""
    message: str = ""
    component: str = ""
    line: int | None = None

    @property
    def file(self) -> str:
        return _short_path(self.component)


class GateCondition(BaseModel):
    metric: str
    status: str = ""
    actual: str | None = None
    threshold: str | None = None


class QualityGateStatus(BaseModel):
    status: str = "NONE"
    conditions: list[GateCondition] = Field(default_factory=list)

    @property
    def failed_conditions(self) -> list[GateCondition]:
        return [c for c in self.conditions if c.status == "ERROR"]


class DuplicationBlock(BaseModel):
    file_ref: str = ""
    from_line: int = 0
    size: int = 0


class Duplication(BaseModel):
    blocks: list[DuplicationBlock] = Field(default_factory=list)


class CoverageFile(BaseModel):
    name: str
    path: str = ""
    measures: dict[str, str] = Field(default_factory=dict)

    @property
    def coverage(self) -> float | None:
        value = self.measures.get("coverage")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None


class AnalysisSnapshot(BaseModel):
    """Point-in-time pull of analysis data. Never cached across runs."""

    attempted: bool = False
    metrics: dict[str, str] = Field(default_factory=dict)
    quality_gate: QualityGateStatus | None = None
    issues: list[Issue] = Field(default_factory=list)
    hotspots: list[Hotspot] = Field(default_factory=list)
    duplications: list[Duplication] = Field(default_factory=list)
    coverage_files: list[CoverageFile] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (
            self.metrics
            or self.quality_gate
            or self.issues
            or self.hotspots
            or self.duplications
            or self.coverage_files
        )

    @property
    def fetch_error(self) -> str | None:
        if not self.errors:
            return None
        return "; ".join(f"{section}: {reason}" for section, reason in self.errors.items())

    def section_error(self, section: str) -> str | None:
        return self.errors.get(section)

    def critical_issues(self) -> list[Issue]:
        return [i for i in self.issues if i.is_critical]

    def issue_counts(self) -> dict[str, int]:
        """Issue count per severity, in first-seen order."""
        counts: dict[str, int] = {}
        for issue in self.issues:
            counts[issue.severity] = counts.get(issue.severity, 0) + 1
        return counts

    def low_coverage_files(self, threshold: float) -> list[CoverageFile]:
        return [
            f for f in self.coverage_files
            if f.coverage is not None and f.coverage < threshold
        ]

    @property
    def duplicated_blocks(self) -> int:
        return sum(len(d.blocks) for d in self.duplications)


@dataclass
class Capped(Generic[T]):
    items: list[T]
    omitted: int = 0


def capped(items: Sequence[T], limit: int) -> Capped[T]:
    """Keep the first *limit* items in their original order."""
    limit = max(limit, 0)
    return Capped(items=list(items[:limit]), omitted=max(len(items) - limit, 0))
