"""Analysis fetcher — builds an AnalysisSnapshot from the SonarQube API.

Every section is read concurrently and independently: a failed read marks
only its own section unavailable and never cancels the others.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable

import httpx
from pydantic import ValidationError

from pipeline_report.sonar.client import SonarClient
from pipeline_report.sonar.models import (
    COVERAGE,
    DUPLICATIONS,
    HOTSPOTS,
    ISSUES,
    METRICS,
    QUALITY_GATE,
    AnalysisSnapshot,
)
from pipeline_report.stages import StageOutcome

logger = logging.getLogger(__name__)

# Snapshot field each section populates
_SECTION_FIELDS = {
    METRICS: "metrics",
    QUALITY_GATE: "quality_gate",
    ISSUES: "issues",
    HOTSPOTS: "hotspots",
    DUPLICATIONS: "duplications",
    COVERAGE: "coverage_files",
}


@dataclass(frozen=True)
class SonarCredentials:
    token: str | None = None
    host_url: str | None = None

    @property
    def complete(self) -> bool:
        return bool(self.token and self.host_url)


def _describe_error(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"API responded with status: {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return f"request timed out ({type(exc).__name__})"
    if isinstance(exc, httpx.HTTPError):
        return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
    return str(exc) or type(exc).__name__


async def _guarded(section: str, call: Awaitable[Any]) -> tuple[str, Any, str | None]:
    try:
        return section, await call, None
    except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError, ValidationError) as e:
        reason = _describe_error(e)
        logger.warning("SonarQube %s unavailable: %s", section, reason)
        return section, None, reason


async def fetch_snapshot(
    project_key: str,
    credentials: SonarCredentials,
    outcome_hint: StageOutcome | str | None,
    *,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AnalysisSnapshot:
    """Fetch the analysis snapshot for *project_key*.

    No request is made unless the analysis actually ran (hint is success or
    failure) and both token and host URL are set.
    """
    hint = StageOutcome.parse(outcome_hint)
    if hint not in (StageOutcome.SUCCESS, StageOutcome.FAILURE):
        logger.info("SonarQube analysis did not run (%s), skipping fetch", hint.value)
        return AnalysisSnapshot()
    if not credentials.complete:
        logger.info("SONAR_TOKEN or SONAR_HOST_URL not set, skipping fetch")
        return AnalysisSnapshot()

    async with SonarClient(
        credentials.host_url, credentials.token, timeout=timeout, transport=transport
    ) as client:
        outcomes = await asyncio.gather(
            _guarded(METRICS, client.get_metrics(project_key)),
            _guarded(QUALITY_GATE, client.get_quality_gate(project_key)),
            _guarded(ISSUES, client.get_issues(project_key)),
            _guarded(HOTSPOTS, client.get_hotspots(project_key)),
            _guarded(DUPLICATIONS, client.get_duplications(project_key)),
            _guarded(COVERAGE, client.get_coverage_files(project_key)),
        )

    fields: dict[str, Any] = {"attempted": True, "errors": {}}
    for section, value, error in outcomes:
        if error is not None:
            fields["errors"][section] = error
        elif value is not None:
            fields[_SECTION_FIELDS[section]] = value

    snapshot = AnalysisSnapshot(**fields)
    logger.info(
        "Fetched SonarQube snapshot for %s: %d metrics, %d issues, %d hotspots, %d errors",
        project_key,
        len(snapshot.metrics),
        len(snapshot.issues),
        len(snapshot.hotspots),
        len(snapshot.errors),
    )
    return snapshot
