"""Report configuration via environment variables (as set by the CI workflow)."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from pipeline_report.gate.policy import SkipFlags
from pipeline_report.report.renderer import REPORT_TITLE
from pipeline_report.sonar.fetcher import SonarCredentials
from pipeline_report.stages import BUILD, DOCKER, LINT, SECURITY, SONAR, TYPECHECK

logger = logging.getLogger(__name__)


class ReportSettings(BaseSettings):
    """All configuration loaded from env vars or .env file."""

    # Stage results (`needs.<job>.result`)
    lint_result: str | None = Field(
        default=None, validation_alias=AliasChoices("LINT_RESULT", "ESLINT_RESULT")
    )
    typecheck_result: str | None = Field(
        default=None, validation_alias=AliasChoices("TYPECHECK_RESULT", "TYPESCRIPT_RESULT")
    )
    build_result: str | None = None
    security_result: str | None = None
    sonar_result: str | None = None
    docker_result: str | None = None

    # Workflow inputs
    skip_sonar: bool = False
    skip_security: bool = False
    skip_docker: bool = False
    skip_build: bool = False

    # SonarQube
    project_key: str | None = None
    sonar_token: str | None = None
    sonar_host_url: str | None = None
    sonar_properties_path: str = "sonar-project.properties"

    # GitHub
    github_token: str | None = None
    github_repository: str | None = None
    github_event_path: str | None = None
    github_api_url: str = "https://api.github.com"
    github_step_summary: str | None = None
    pr_number: int | None = None
    head_sha: str | None = None
    docker_job_name: str = "Docker Build & Push"

    # Report
    report_title: str = REPORT_TITLE
    http_timeout: float = 30.0
    max_issues: int = 10
    max_hotspots: int = 5
    max_coverage_files: int = 5
    coverage_threshold: float = 80.0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "env_ignore_empty": True,
    }

    def stage_outcomes(self) -> dict[str, str | None]:
        return {
            LINT: self.lint_result,
            TYPECHECK: self.typecheck_result,
            BUILD: self.build_result,
            SECURITY: self.security_result,
            SONAR: self.sonar_result,
            DOCKER: self.docker_result,
        }

    def skip_flags(self) -> SkipFlags:
        return SkipFlags(
            skip_sonar=self.skip_sonar,
            skip_security=self.skip_security,
            skip_docker=self.skip_docker,
            skip_build=self.skip_build,
        )

    def sonar_credentials(self) -> SonarCredentials:
        return SonarCredentials(token=self.sonar_token, host_url=self.sonar_host_url)

    def resolve_project_key(self) -> str:
        """PROJECT_KEY, else sonar.projectKey from the properties file, else owner-repo."""
        if self.project_key:
            return self.project_key
        key = read_project_key(Path(self.sonar_properties_path))
        if key:
            logger.info("Found SonarQube project key: %s", key)
            return key
        key = (self.github_repository or "").replace("/", "-")
        logger.info("No sonar-project.properties key, using repository name: %s", key)
        return key


def read_project_key(path: Path) -> str | None:
    if not path.is_file():
        return None
    for line in path.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() == "sonar.projectKey":
            return value.strip() or None
    return None
