"""Look up a job's result in the workflow run for a pull request head commit."""

from __future__ import annotations

import logging

from pipeline_report.github.client import GitHubAPIError, GitHubClient
from pipeline_report.github.context import PullRequestTarget
from pipeline_report.stages import StageOutcome

logger = logging.getLogger(__name__)


async def find_job_outcome(
    client: GitHubClient,
    target: PullRequestTarget,
    job_name: str,
) -> StageOutcome:
    """Best-effort: `not_started` when the run or job cannot be found."""
    if not target.head_sha:
        return StageOutcome.NOT_STARTED
    try:
        runs = await client.list_workflow_runs(
            target.owner, target.repo, event="pull_request", head_sha=target.head_sha
        )
        if not runs:
            return StageOutcome.NOT_STARTED
        jobs = await client.list_run_jobs(target.owner, target.repo, runs[0]["id"])
        job = next((j for j in jobs if j.get("name") == job_name), None)
    except (GitHubAPIError, KeyError, ValueError, TypeError, AttributeError) as e:
        logger.warning("Could not fetch %s job status: %s", job_name, e)
        return StageOutcome.NOT_STARTED

    if job is None:
        return StageOutcome.NOT_STARTED
    return StageOutcome.parse(job.get("conclusion") or job.get("status") or "in_progress")
