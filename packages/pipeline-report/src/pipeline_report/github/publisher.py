"""Comment publisher: keeps exactly one report comment per pull request.

Publishing deletes every earlier bot comment that carries the report title,
then creates the new one. The API has no transaction, so there is a short
window with no report comment between the deletes and the create.
"""

from __future__ import annotations

import logging

from pipeline_report.github.client import GitHubAPIError, GitHubClient
from pipeline_report.github.context import PullRequestTarget

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """Raised when the report comment could not be replaced."""


def is_report_comment(comment: dict, marker: str) -> bool:
    if not isinstance(comment, dict):
        return False
    user, body = comment.get("user"), comment.get("body")
    return (
        isinstance(user, dict)
        and user.get("type") == "Bot"
        and isinstance(body, str)
        and marker in body
    )


class CommentPublisher:
    def __init__(self, client: GitHubClient, marker: str) -> None:
        self._client = client
        self.marker = marker

    async def publish(self, report: str, target: PullRequestTarget) -> dict:
        """Replace prior report comments on *target* with *report*."""
        if self.marker not in report:
            raise PublishError("Report body does not contain the report title marker")

        try:
            comments = await self._client.list_comments(target.owner, target.repo, target.number)
            stale = [c for c in comments if is_report_comment(c, self.marker)]
            for comment in stale:
                await self._client.delete_comment(target.owner, target.repo, comment["id"])
            created = await self._client.create_comment(
                target.owner, target.repo, target.number, report
            )
        except GitHubAPIError as e:
            raise PublishError(f"Failed to publish report to {target.full_name}#{target.number}: {e}") from e

        logger.info(
            "Published report comment %s on %s#%d (replaced %d)",
            created.get("id"),
            target.full_name,
            target.number,
            len(stale),
        )
        return created
