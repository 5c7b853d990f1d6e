"""Markdown report renderer.

`render` is pure and total: it never raises on an empty or partial snapshot,
and every section header is emitted on every run so the comment keeps the
same shape. Missing values render as `N/A` or a "not available" note.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from pipeline_report.gate.evaluator import GateDecision
from pipeline_report.gate.policy import GatePolicy
from pipeline_report.report.glyphs import outcome_glyph, quality_gate_glyph, severity_glyph
from pipeline_report.sonar.models import (
    COVERAGE,
    DUPLICATIONS,
    HOTSPOTS,
    ISSUES,
    METRICS,
    QUALITY_GATE,
    AnalysisSnapshot,
    capped,
)
from pipeline_report.sonar.ratings import get_rating
from pipeline_report.stages import (
    DOCKER,
    SONAR,
    StageOutcome,
    StageResult,
    index_results,
    outcome_of,
    stage_label,
)

REPORT_TITLE = "⚙️ Backend Quality + Docker Pipeline Report"

STATUS_HEADER = "### 📋 Status"
ANALYSIS_HEADER = "### 📊 SonarQube Analysis Results"
METRICS_HEADER = "**📈 Quality Metrics:**"
CRITICAL_ISSUES_HEADER = "**🚨 Critical Issues:**"
ISSUES_SUMMARY_HEADER = "**📋 Issues Summary:**"
HOTSPOTS_HEADER = "**🔥 Security Hotspots (To Review):**"
DUPLICATIONS_HEADER = "**🧬 Duplicated Blocks:**"
FAILED_CONDITIONS_HEADER = "**❌ Failed Quality Gate Conditions:**"
POLICY_HEADER = "### 🐳 Docker Build Policy"

NA = "N/A"


def low_coverage_header(threshold: float) -> str:
    return f"**📉 Files with Low Coverage (<{threshold:g}%):**"


@dataclass
class ReportOptions:
    title: str = REPORT_TITLE
    project_key: str = ""
    sonar_host_url: str | None = None
    policy: GatePolicy = field(default_factory=GatePolicy)
    max_issues: int = 10
    max_hotspots: int = 5
    max_coverage_files: int = 5
    coverage_threshold: float = 80.0
    generated_at: datetime | None = None


def render(
    results: Iterable[StageResult],
    decision: GateDecision,
    snapshot: AnalysisSnapshot,
    options: ReportOptions | None = None,
) -> str:
    options = options or ReportOptions()
    by_name = index_results(results)

    lines: list[str] = [f"## {options.title}", ""]
    lines += _stage_table(by_name, decision, options.policy)
    lines += ["", STATUS_HEADER, _status_banner(decision)]
    lines += [""] + _analysis_section(outcome_of(by_name, SONAR), snapshot, options)
    lines += [""] + _policy_section(options.policy)

    generated_at = options.generated_at or datetime.now(timezone.utc)
    lines += ["", "---", f"*Pipeline report updated at: {generated_at.isoformat()}*"]
    return "\n".join(lines) + "\n"


# ── Stage summary ───────────────────────────────────────────────────────────


def _stage_table(
    by_name: dict[str, StageResult],
    decision: GateDecision,
    policy: GatePolicy,
) -> list[str]:
    rows = ["| Check | Status | Result |", "|-------|--------|--------|"]
    for name, result in by_name.items():
        outcome = result.outcome
        if name == DOCKER:
            outcome = decision.container_build if decision.container_blocked else outcome
            text = _docker_text(outcome, decision, policy)
        elif policy.is_skip_flagged(name) and outcome is StageOutcome.SKIPPED:
            text = "skipped (disabled)"
        elif result.is_core:
            text = outcome.value
        else:
            text = f"{outcome.value} (informational)"
        rows.append(f"| {stage_label(name)} | {outcome_glyph(outcome)} | {text} |")
    return rows


def _docker_text(outcome: StageOutcome, decision: GateDecision, policy: GatePolicy) -> str:
    if policy.is_skip_flagged(DOCKER):
        return "skipped (disabled)"
    if decision.container_blocked:
        return "skipped (core checks failed)"
    return outcome.value


def _status_banner(decision: GateDecision) -> str:
    if not decision.passed:
        failed = ", ".join(stage_label(s) for s in decision.core_failures)
        if decision.container_blocked:
            headline = (
                "⚠️ **Core quality checks failed.** Docker build was blocked to prevent "
                "broken images."
            )
        else:
            headline = "⚠️ **Core quality checks failed.** Please fix the issues before proceeding."
        return f"{headline}\n\nFailed checks: {failed}"
    if decision.container_build is StageOutcome.SUCCESS:
        return "🎉 **All checks passed and Docker image built successfully!** Ready to deploy."
    return "✅ **Core quality checks passed.** Docker build may have been skipped or failed."


# ── Static analysis ─────────────────────────────────────────────────────────


def _unavailable(snapshot: AnalysisSnapshot, section: str, empty: str = "_None_") -> str:
    error = snapshot.section_error(section)
    if error:
        return f"_Not available: {error}_"
    if not snapshot.attempted:
        return "_Not available_"
    return empty


def _analysis_section(
    sonar_outcome: StageOutcome,
    snapshot: AnalysisSnapshot,
    options: ReportOptions,
) -> list[str]:
    lines = [ANALYSIS_HEADER]
    if options.policy.is_skip_flagged(SONAR):
        lines.append("⏭️ **Analysis skipped** - disabled for this pipeline")
    elif sonar_outcome is StageOutcome.FAILURE:
        lines.append("❌ **Analysis failed** - Check the logs for details")
    elif sonar_outcome is StageOutcome.SUCCESS:
        lines.append("✅ **Analysis completed successfully**")
    else:
        lines.append(f"⏳ **Analysis status: {sonar_outcome.value}**")

    if sonar_outcome in (StageOutcome.SUCCESS, StageOutcome.FAILURE) and not snapshot.attempted:
        lines.append("")
        lines.append(
            "⚠️ **No metrics available** - SonarQube credentials are not configured "
            "or the project data is not accessible."
        )

    lines.append("")
    gate = snapshot.quality_gate
    if gate is not None:
        lines.append(f"**Quality Gate:** {quality_gate_glyph(gate.status)} **{gate.status}**")
    else:
        lines.append(f"**Quality Gate:** {quality_gate_glyph(None)} {_unavailable(snapshot, QUALITY_GATE, NA)}")

    lines += [""] + _metrics_table(snapshot)
    lines += [""] + _critical_issues(snapshot, options.max_issues)
    lines += [""] + _issues_summary(snapshot)
    lines += [""] + _hotspots(snapshot, options.max_hotspots)
    lines += [""] + _low_coverage(snapshot, options)
    lines += ["", f"{DUPLICATIONS_HEADER} {_duplications(snapshot)}"]
    lines += [""] + _failed_conditions(snapshot)

    if options.sonar_host_url and options.project_key:
        host = options.sonar_host_url.rstrip("/")
        key = options.project_key
        lines += [
            "",
            f"[📈 View Full Report]({host}/dashboard?id={key}) | "
            f"[🔍 View Issues]({host}/project/issues?id={key}) | "
            f"[🔥 View Hotspots]({host}/security_hotspots?id={key})",
        ]
    return lines


def _metric(metrics: dict[str, str], key: str, suffix: str = "") -> str:
    value = metrics.get(key)
    if value is None or value == "":
        return NA
    return f"{value}{suffix}"


def _metrics_table(snapshot: AnalysisSnapshot) -> list[str]:
    m = snapshot.metrics
    lines = [METRICS_HEADER]
    error = snapshot.section_error(METRICS)
    if error:
        lines.append(f"⚠️ Metrics unavailable: {error}")
    lines += [
        "| Metric | Current | New Code | Rating |",
        "|--------|---------|----------|--------|",
        f"| 🐛 Bugs | {_metric(m, 'bugs')} | {_metric(m, 'new_bugs')} | {get_rating(m.get('reliability_rating'))} |",
        f"| 🔒 Vulnerabilities | {_metric(m, 'vulnerabilities')} | {_metric(m, 'new_vulnerabilities')} | {get_rating(m.get('security_rating'))} |",
        f"| 🧼 Code Smells | {_metric(m, 'code_smells')} | {_metric(m, 'new_code_smells')} | {get_rating(m.get('sqale_rating'))} |",
        f"| 📏 Lines of Code | {_metric(m, 'ncloc')} | - | - |",
        f"| 🧪 Coverage | {_metric(m, 'coverage', '%')} | {_metric(m, 'new_coverage', '%')} | - |",
        f"| 📋 Duplicated Lines | {_metric(m, 'duplicated_lines_density', '%')} | {_metric(m, 'new_duplicated_lines_density', '%')} | - |",
        f"| 🧠 Complexity | {_metric(m, 'complexity')} | - | - |",
        f"| 🔄 Cognitive Complexity | {_metric(m, 'cognitive_complexity')} | - | - |",
    ]
    return lines


def _location(file: str, line: int | None) -> str:
    return f"📁 `{file or NA}` (Line {line if line is not None else NA})"


def _critical_issues(snapshot: AnalysisSnapshot, limit: int) -> list[str]:
    lines = [CRITICAL_ISSUES_HEADER]
    shown = capped(snapshot.critical_issues(), limit)
    if not shown.items:
        lines.append(_unavailable(snapshot, ISSUES))
        return lines
    for issue in shown.items:
        lines.append(
            f"- {severity_glyph(issue.severity)} **{issue.severity}** - {issue.message}  \n"
            f"  {_location(issue.file, issue.line)} | Rule: `{issue.rule_id}`"
        )
    if shown.omitted:
        lines.append(f"\n*... and {shown.omitted} more critical issues*")
    return lines


def _issues_summary(snapshot: AnalysisSnapshot) -> list[str]:
    counts = snapshot.issue_counts()
    if not counts:
        return [ISSUES_SUMMARY_HEADER, _unavailable(snapshot, ISSUES)]
    summary = " | ".join(
        f"{severity_glyph(severity)} {severity}: {count}" for severity, count in counts.items()
    )
    return [ISSUES_SUMMARY_HEADER, summary]


def _hotspots(snapshot: AnalysisSnapshot, limit: int) -> list[str]:
    lines = [HOTSPOTS_HEADER]
    shown = capped(snapshot.hotspots, limit)
    if not shown.items:
        lines.append(_unavailable(snapshot, HOTSPOTS))
        return lines
    for hotspot in shown.items:
        lines.append(
            f"- 🔍 **{hotspot.probability or NA}** - {hotspot.message}  \n"
            f"  {_location(hotspot.file, hotspot.line)}"
        )
    if shown.omitted:
        lines.append(f"\n*... and {shown.omitted} more hotspots*")
    return lines


def _low_coverage(snapshot: AnalysisSnapshot, options: ReportOptions) -> list[str]:
    lines = [low_coverage_header(options.coverage_threshold)]
    shown = capped(snapshot.low_coverage_files(options.coverage_threshold), options.max_coverage_files)
    if not shown.items:
        lines.append(_unavailable(snapshot, COVERAGE))
        return lines
    for f in shown.items:
        lines.append(f"- 📁 `{f.path or f.name}` - {f.measures.get('coverage', NA)}%")
    if shown.omitted:
        lines.append(f"\n*... and {shown.omitted} more files*")
    return lines


def _duplications(snapshot: AnalysisSnapshot) -> str:
    if snapshot.duplications:
        return str(snapshot.duplicated_blocks)
    return _unavailable(snapshot, DUPLICATIONS, "0")


def _failed_conditions(snapshot: AnalysisSnapshot) -> list[str]:
    lines = [FAILED_CONDITIONS_HEADER]
    gate = snapshot.quality_gate
    failed = gate.failed_conditions if gate else []
    if not failed:
        lines.append(_unavailable(snapshot, QUALITY_GATE))
        return lines
    for c in failed:
        lines.append(f"- {c.metric}: {c.actual or NA} (threshold: {c.threshold or NA})")
    return lines


# ── Policy text ─────────────────────────────────────────────────────────────


def _join_labels(stages: Iterable[str]) -> str:
    labels = [stage_label(s) for s in stages]
    if len(labels) <= 1:
        return "".join(labels) or "no"
    if len(labels) == 2:
        return f"{labels[0]} and {labels[1]}"
    return f"{', '.join(labels[:-1])}, and {labels[-1]}"


def _policy_section(policy: GatePolicy) -> list[str]:
    informational = [s for s in policy.informational_stages() if s != DOCKER]
    lines = [
        POLICY_HEADER,
        f"- Docker build **only runs** if {_join_labels(policy.container_dependencies_for_run())} "
        "checks all pass",
    ]
    if informational:
        lines.append(
            f"- **{_join_labels(informational)} are informational only** - they do NOT block "
            "Docker builds"
        )
    lines.append("- Failed core checks = No Docker image to prevent deploying broken code")
    if policy.is_skip_flagged(DOCKER):
        lines.append("- **Docker build is disabled** for this pipeline")
    for stage in policy.core_stages:
        if policy.is_validly_skipped(stage):
            lines.append(
                f"- **{stage_label(stage)} step is skipped** - Docker builds without "
                "separate verification"
            )
    return lines
