"""GitHub boundary — pull request context, REST client and comment publisher."""

from pipeline_report.github.actions import find_job_outcome
from pipeline_report.github.client import GitHubAPIError, GitHubClient
from pipeline_report.github.context import PullRequestContextError, PullRequestTarget
from pipeline_report.github.publisher import CommentPublisher, PublishError, is_report_comment

__all__ = [
    "CommentPublisher",
    "GitHubAPIError",
    "GitHubClient",
    "PublishError",
    "PullRequestContextError",
    "PullRequestTarget",
    "find_job_outcome",
    "is_report_comment",
]
