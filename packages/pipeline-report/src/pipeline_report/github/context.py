"""Pull request the report is published to."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path


class PullRequestContextError(Exception):
    """Raised when the pull request cannot be identified."""


@dataclass(frozen=True)
class PullRequestTarget:
    owner: str
    repo: str
    number: int
    head_sha: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def resolve(
        cls,
        repository: str | None,
        event_path: str | Path | None = None,
        number: int | None = None,
        head_sha: str | None = None,
    ) -> PullRequestTarget:
        """Build a target from `owner/repo` plus the event payload.

        Explicit *number*/*head_sha* override what the payload says.
        """
        if not repository or "/" not in repository:
            raise PullRequestContextError(f"Invalid repository {repository!r}, expected owner/repo")
        owner, repo = repository.split("/", 1)

        payload_pr: dict = {}
        if event_path:
            try:
                payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise PullRequestContextError(f"Cannot read event payload {event_path}: {e}") from e
            payload_pr = payload.get("pull_request") or {}

        number = number or payload_pr.get("number")
        if not number:
            raise PullRequestContextError("No pull request number in event payload or PR_NUMBER")

        head_sha = head_sha or (payload_pr.get("head") or {}).get("sha", "")
        return cls(owner=owner, repo=repo, number=int(number), head_sha=head_sha)
