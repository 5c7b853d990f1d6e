"""Command line entry point.

    pipeline-report gate      # exit 1 iff a core stage failed
    pipeline-report report    # fetch analysis, render, replace the PR comment
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import httpx

from pipeline_report.config import ReportSettings
from pipeline_report.gate.evaluator import GateDecision, evaluate
from pipeline_report.gate.policy import GatePolicy, PolicyError, load_policy
from pipeline_report.github.actions import find_job_outcome
from pipeline_report.github.client import GitHubClient
from pipeline_report.github.context import PullRequestContextError, PullRequestTarget
from pipeline_report.github.publisher import CommentPublisher, PublishError
from pipeline_report.report.renderer import ReportOptions, render
from pipeline_report.sonar.fetcher import fetch_snapshot
from pipeline_report.stages import (
    DOCKER,
    SONAR,
    StageOutcome,
    StageResult,
    build_stage_results,
    index_results,
    outcome_of,
)

logger = logging.getLogger(__name__)


def _log_stages(results: list[StageResult]) -> None:
    logger.info("=== Quality Gate Results ===")
    for result in results:
        logger.info("%s: %s", result.label, result.outcome.value)
        if not result.is_core and result.outcome is StageOutcome.FAILURE:
            logger.warning("%s failed (informational only - does not block pipeline)", result.label)


def run_gate(settings: ReportSettings, policy: GatePolicy) -> int:
    results = build_stage_results(settings.stage_outcomes(), policy)
    _log_stages(results)
    decision = evaluate(results, policy)
    for reason in decision.reasons:
        logger.info("%s", reason)

    if not decision.passed:
        logger.error(
            "Quality Gate FAILED - core checks must pass: %s",
            ", ".join(decision.core_failures),
        )
        return 1
    logger.info("Quality Gate PASSED - core checks successful")
    return 0


def _write_report(report: str, output: Path | None, step_summary: str | None) -> None:
    """Side outputs only; a failed write is logged and never stops publishing."""
    if output:
        try:
            output.write_text(report, encoding="utf-8")
            logger.info("Report written to %s", output)
        except OSError as e:
            logger.error("Could not write report to %s: %s", output, e)
    if step_summary:
        try:
            with open(step_summary, "a", encoding="utf-8") as f:
                f.write(report)
        except OSError as e:
            logger.warning("Could not append report to job summary %s: %s", step_summary, e)


async def _collect(
    settings: ReportSettings,
    policy: GatePolicy,
    github: GitHubClient | None,
    target: PullRequestTarget | None,
) -> tuple[list[StageResult], GateDecision]:
    outcomes = settings.stage_outcomes()
    if outcomes[DOCKER] is None and github is not None and target is not None:
        outcomes[DOCKER] = await find_job_outcome(github, target, settings.docker_job_name)
    results = build_stage_results(outcomes, policy)
    return results, evaluate(results, policy)


async def run_report(
    settings: ReportSettings,
    policy: GatePolicy,
    *,
    dry_run: bool = False,
    output: Path | None = None,
    github_transport: httpx.AsyncBaseTransport | None = None,
    sonar_transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    try:
        target = PullRequestTarget.resolve(
            settings.github_repository,
            settings.github_event_path,
            number=settings.pr_number,
            head_sha=settings.head_sha,
        )
    except PullRequestContextError as e:
        if not dry_run:
            logger.error("%s", e)
            return 1
        target = None

    if not settings.github_token and not dry_run:
        logger.error("GITHUB_TOKEN is required to publish the report")
        return 1

    github = None
    if settings.github_token:
        github = GitHubClient(
            settings.github_token,
            api_url=settings.github_api_url,
            timeout=settings.http_timeout,
            transport=github_transport,
        )

    try:
        results, decision = await _collect(settings, policy, github, target)
        project_key = settings.resolve_project_key()
        snapshot = await fetch_snapshot(
            project_key,
            settings.sonar_credentials(),
            outcome_of(index_results(results), SONAR),
            timeout=settings.http_timeout,
            transport=sonar_transport,
        )
        report = render(
            results,
            decision,
            snapshot,
            ReportOptions(
                title=settings.report_title,
                project_key=project_key,
                sonar_host_url=settings.sonar_host_url,
                policy=policy,
                max_issues=settings.max_issues,
                max_hotspots=settings.max_hotspots,
                max_coverage_files=settings.max_coverage_files,
                coverage_threshold=settings.coverage_threshold,
            ),
        )
        _write_report(report, output, settings.github_step_summary)

        if dry_run:
            print(report)
            return 0

        publisher = CommentPublisher(github, marker=settings.report_title)
        await publisher.publish(report, target)
    except PublishError as e:
        logger.error("%s", e)
        return 1
    finally:
        if github is not None:
            await github.close()

    logger.info("PR comment posted successfully")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipeline-report",
        description="Quality gate and pull request report for CI pipelines",
    )
    parser.add_argument("--policy", type=Path, help="YAML gate policy file")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("gate", help="Evaluate the quality gate; exit 1 if core checks failed")

    report = sub.add_parser("report", help="Render the report and publish it on the pull request")
    report.add_argument("--output", type=Path, help="Also write the report to this file")
    report.add_argument("--dry-run", action="store_true", help="Print the report instead of publishing")
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    args = _build_parser().parse_args(argv)
    settings = ReportSettings()

    try:
        policy = load_policy(args.policy, settings.skip_flags())
    except PolicyError as e:
        logger.error("%s", e)
        return 2

    if args.command == "gate":
        return run_gate(settings, policy)
    return asyncio.run(run_report(settings, policy, dry_run=args.dry_run, output=args.output))
