"""Tests for the GitHub boundary: PR context, comment publisher, job lookup."""

import json
import re

import httpx
import pytest

from pipeline_report.github.actions import find_job_outcome
from pipeline_report.github.client import GitHubAPIError, GitHubClient
from pipeline_report.github.context import PullRequestContextError, PullRequestTarget
from pipeline_report.github.publisher import CommentPublisher, PublishError, is_report_comment
from pipeline_report.report.renderer import REPORT_TITLE
from pipeline_report.stages import StageOutcome

TARGET = PullRequestTarget(owner="acme", repo="api", number=7, head_sha="abc123")
REPORT = f"## {REPORT_TITLE}\n\nbody\n"


class FakeGitHub:
    """In-memory issue comments + workflow jobs served through httpx.MockTransport."""

    def __init__(self, comments: list[dict] | None = None, fail_on: tuple[str, str] | None = None) -> None:
        self.comments = list(comments or [])
        self.fail_on = fail_on
        self.next_id = 1000
        self.requests: list[httpx.Request] = []
        self.runs: list[dict] = [{"id": 55}]
        self.jobs: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path
        if self.fail_on and method == self.fail_on[0] and re.fullmatch(self.fail_on[1], path):
            return httpx.Response(500, json={"message": "boom"})

        if method == "GET" and path == "/repos/acme/api/issues/7/comments":
            page = int(request.url.params.get("page", 1))
            per_page = int(request.url.params.get("per_page", 30))
            start = (page - 1) * per_page
            return httpx.Response(200, json=self.comments[start:start + per_page])
        if method == "POST" and path == "/repos/acme/api/issues/7/comments":
            body = json.loads(request.content)["body"]
            comment = {"id": self.next_id, "body": body, "user": {"login": "github-actions[bot]", "type": "Bot"}}
            self.next_id += 1
            self.comments.append(comment)
            return httpx.Response(201, json=comment)
        match = re.fullmatch(r"/repos/acme/api/issues/comments/(\d+)", path)
        if method == "DELETE" and match:
            self.comments = [c for c in self.comments if c["id"] != int(match.group(1))]
            return httpx.Response(204)
        if method == "GET" and path == "/repos/acme/api/actions/runs":
            return httpx.Response(200, json={"workflow_runs": self.runs})
        if method == "GET" and path == "/repos/acme/api/actions/runs/55/jobs":
            return httpx.Response(200, json={"jobs": self.jobs})
        return httpx.Response(404, json={"message": "Not Found"})

    def client(self) -> GitHubClient:
        return GitHubClient("gh-token", transport=httpx.MockTransport(self.handler))

    def report_comments(self) -> list[dict]:
        return [c for c in self.comments if is_report_comment(c, REPORT_TITLE)]


def _bot(id_: int, body: str) -> dict:
    return {"id": id_, "body": body, "user": {"type": "Bot"}}


def _human(id_: int, body: str) -> dict:
    return {"id": id_, "body": body, "user": {"type": "User"}}


class TestIsReportComment:

    def test_bot_with_marker(self):
        assert is_report_comment(_bot(1, REPORT), REPORT_TITLE)

    def test_human_with_marker(self):
        assert not is_report_comment(_human(1, REPORT), REPORT_TITLE)

    def test_bot_without_marker(self):
        assert not is_report_comment(_bot(1, "Deploy preview ready"), REPORT_TITLE)

    def test_missing_fields(self):
        assert not is_report_comment({"id": 1}, REPORT_TITLE)

    @pytest.mark.parametrize("comment", ["oops", None, {"user": "bot", "body": REPORT}, {"user": {"type": "Bot"}, "body": 7}])
    def test_wrong_shapes(self, comment):
        assert not is_report_comment(comment, REPORT_TITLE)


class TestCommentPublisher:

    @pytest.mark.asyncio
    async def test_creates_comment(self):
        fake = FakeGitHub()
        async with fake.client() as client:
            created = await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)
        assert created["body"] == REPORT
        assert len(fake.report_comments()) == 1

    @pytest.mark.asyncio
    async def test_replaces_previous_reports_only(self):
        fake = FakeGitHub([
            _bot(1, f"## {REPORT_TITLE}\nold"),
            _bot(2, f"## {REPORT_TITLE}\nolder"),
            _bot(3, "Deploy preview ready"),
            _human(4, f"quoting {REPORT_TITLE}"),
        ])
        async with fake.client() as client:
            await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)
        ids = {c["id"] for c in fake.comments}
        assert 1 not in ids and 2 not in ids
        assert {3, 4} <= ids
        assert [c["body"] for c in fake.report_comments()] == [REPORT]

    @pytest.mark.asyncio
    async def test_publish_twice_leaves_one_comment(self):
        fake = FakeGitHub()
        async with fake.client() as client:
            publisher = CommentPublisher(client, REPORT_TITLE)
            await publisher.publish(REPORT, TARGET)
            await publisher.publish(REPORT, TARGET)
        assert len(fake.report_comments()) == 1

    @pytest.mark.asyncio
    async def test_deletes_before_create(self):
        fake = FakeGitHub([_bot(1, REPORT)])
        async with fake.client() as client:
            await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)
        methods = [r.method for r in fake.requests]
        assert methods == ["GET", "DELETE", "POST"]

    @pytest.mark.asyncio
    async def test_reads_every_page(self):
        old = [_human(n, "lgtm") for n in range(1, 151)] + [_bot(151, REPORT)]
        fake = FakeGitHub(old)
        async with fake.client() as client:
            await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)
        assert 151 not in {c["id"] for c in fake.comments}
        assert len(fake.report_comments()) == 1

    @pytest.mark.asyncio
    async def test_api_error_raises_publish_error(self):
        fake = FakeGitHub(fail_on=("POST", r"/repos/acme/api/issues/7/comments"))
        async with fake.client() as client:
            with pytest.raises(PublishError):
                await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)

    @pytest.mark.asyncio
    async def test_list_error_deletes_nothing(self):
        fake = FakeGitHub([_bot(1, REPORT)], fail_on=("GET", r"/repos/acme/api/issues/7/comments"))
        async with fake.client() as client:
            with pytest.raises(PublishError):
                await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)
        assert [c["id"] for c in fake.comments] == [1]

    @pytest.mark.asyncio
    async def test_non_json_listing_raises_publish_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        async with GitHubClient("t", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PublishError):
                await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)

    @pytest.mark.asyncio
    async def test_non_list_listing_raises_publish_error(self):
        def handler(request):
            return httpx.Response(200, json={"message": "unexpected"})

        async with GitHubClient("t", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PublishError):
                await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)

    @pytest.mark.asyncio
    async def test_odd_comment_entries_are_kept(self):
        fake = FakeGitHub([_bot(1, REPORT)])
        fake.comments += [{"id": 2, "body": None, "user": "bot"}, {"id": 3, "body": 42, "user": {"type": "Bot"}}]
        async with fake.client() as client:
            await CommentPublisher(client, REPORT_TITLE).publish(REPORT, TARGET)
        ids = {c["id"] for c in fake.comments}
        assert 1 not in ids
        assert {2, 3} <= ids

    @pytest.mark.asyncio
    async def test_report_without_marker_rejected(self):
        fake = FakeGitHub([_bot(1, REPORT)])
        async with fake.client() as client:
            with pytest.raises(PublishError):
                await CommentPublisher(client, REPORT_TITLE).publish("no title here", TARGET)
        assert fake.requests == []


class TestGitHubClient:

    @pytest.mark.asyncio
    async def test_sends_auth_headers(self):
        fake = FakeGitHub()
        async with fake.client() as client:
            await client.list_comments("acme", "api", 7)
        request = fake.requests[0]
        assert request.headers["Authorization"] == "Bearer gh-token"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert str(request.url).startswith("https://api.github.com/")

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        async with GitHubClient("t", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(GitHubAPIError):
                await client.list_comments("acme", "api", 7)


class TestFindJobOutcome:

    @pytest.mark.asyncio
    async def test_job_conclusion(self):
        fake = FakeGitHub()
        fake.jobs = [{"name": "ESLint", "conclusion": "success"}, {"name": "Docker Build & Push", "conclusion": "failure"}]
        async with fake.client() as client:
            outcome = await find_job_outcome(client, TARGET, "Docker Build & Push")
        assert outcome is StageOutcome.FAILURE
        runs_request = fake.requests[0]
        assert runs_request.url.params["head_sha"] == "abc123"

    @pytest.mark.asyncio
    async def test_running_job_uses_status(self):
        fake = FakeGitHub()
        fake.jobs = [{"name": "Docker Build & Push", "conclusion": None, "status": "in_progress"}]
        async with fake.client() as client:
            outcome = await find_job_outcome(client, TARGET, "Docker Build & Push")
        assert outcome is StageOutcome.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_job_missing(self):
        fake = FakeGitHub()
        async with fake.client() as client:
            assert await find_job_outcome(client, TARGET, "Docker Build & Push") is StageOutcome.NOT_STARTED

    @pytest.mark.asyncio
    async def test_no_runs(self):
        fake = FakeGitHub()
        fake.runs = []
        async with fake.client() as client:
            assert await find_job_outcome(client, TARGET, "Docker Build & Push") is StageOutcome.NOT_STARTED

    @pytest.mark.asyncio
    async def test_api_error_is_not_fatal(self):
        fake = FakeGitHub(fail_on=("GET", r"/repos/acme/api/actions/runs"))
        async with fake.client() as client:
            assert await find_job_outcome(client, TARGET, "Docker Build & Push") is StageOutcome.NOT_STARTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "runs_body,jobs_body",
        [
            ([], {"jobs": []}),
            ({"workflow_runs": "oops"}, {"jobs": []}),
            ({"workflow_runs": [{"id": 55}]}, ["oops"]),
            ({"workflow_runs": [{"id": 55}]}, {"jobs": ["oops"]}),
            ({"workflow_runs": [{"id": 55}]}, "not json"),
        ],
    )
    async def test_malformed_actions_payload_is_not_fatal(self, runs_body, jobs_body):
        def handler(request: httpx.Request) -> httpx.Response:
            body = jobs_body if request.url.path.endswith("/jobs") else runs_body
            if isinstance(body, str) and body == "not json":
                return httpx.Response(200, text="<html>")
            return httpx.Response(200, json=body)

        async with GitHubClient("t", transport=httpx.MockTransport(handler)) as client:
            outcome = await find_job_outcome(client, TARGET, "Docker Build & Push")
        assert outcome is StageOutcome.NOT_STARTED

    @pytest.mark.asyncio
    async def test_no_head_sha(self):
        fake = FakeGitHub()
        target = PullRequestTarget(owner="acme", repo="api", number=7)
        async with fake.client() as client:
            assert await find_job_outcome(client, target, "Docker Build & Push") is StageOutcome.NOT_STARTED
        assert fake.requests == []


class TestPullRequestTarget:

    def test_from_event_payload(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps({"pull_request": {"number": 42, "head": {"sha": "deadbeef"}}}))
        target = PullRequestTarget.resolve("acme/api", event)
        assert target == PullRequestTarget(owner="acme", repo="api", number=42, head_sha="deadbeef")

    def test_overrides(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps({"pull_request": {"number": 42, "head": {"sha": "deadbeef"}}}))
        target = PullRequestTarget.resolve("acme/api", event, number=9, head_sha="cafe")
        assert (target.number, target.head_sha) == (9, "cafe")

    def test_number_without_payload(self):
        assert PullRequestTarget.resolve("acme/api", number=3).number == 3

    def test_bad_repository(self):
        with pytest.raises(PullRequestContextError):
            PullRequestTarget.resolve("acme", number=3)

    def test_push_event_has_no_pr(self, tmp_path):
        event = tmp_path / "event.json"
        event.write_text(json.dumps({"ref": "refs/heads/master"}))
        with pytest.raises(PullRequestContextError):
            PullRequestTarget.resolve("acme/api", event)

    def test_unreadable_payload(self, tmp_path):
        with pytest.raises(PullRequestContextError):
            PullRequestTarget.resolve("acme/api", tmp_path / "missing.json")
