from __future__ import annotations

import asyncio
import base64
import json

import httpx

from gitlab_api import GitLabClient
from models import CommitStatus

BASE = "https://gitlab.example.com/api/v4"


class FakeGitLab:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        if self.fail:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path.endswith("/repository/files/.gitlab%2Fsemantic.yml") or path.endswith(
            "/repository/files/.gitlab/semantic.yml"
        ):
            if request.url.params.get("ref") != "feature":
                return httpx.Response(404, json={"message": "404 File Not Found"})
            content = base64.b64encode(b"commitsOnly: true\n").decode("ascii")
            return httpx.Response(200, json={"file_name": "semantic.yml", "content": content})
        if path.endswith("/merge_requests/7/commits"):
            return httpx.Response(200, json=[{"message": "fix: second"}, {"message": "feat: first"}])
        if path.endswith("/merge_requests/7") and request.method == "GET":
            return httpx.Response(200, json={"iid": 7, "draft": True, "work_in_progress": True, "sha": "abc123"})
        if path.endswith("/merge_requests/7") and request.method == "PUT":
            return httpx.Response(200, json={"iid": 7, "title": json.loads(request.content)["title"]})
        if path.endswith("/statuses/abc123") and request.method == "POST":
            return httpx.Response(201, json={"id": 1, "status": json.loads(request.content)["state"]})
        return httpx.Response(404, json={"message": "404 Not Found"})


def make_client(fake: FakeGitLab) -> GitLabClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return GitLabClient(BASE + "/", "token", http_client=http_client)


def run(coro):
    return asyncio.run(coro)


def test_fetch_policy_reads_branch_file() -> None:
    fake = FakeGitLab()
    client = make_client(fake)

    assert run(client.fetch_policy(1, "feature")) == {"commitsOnly": True}
    assert run(client.fetch_policy(1, "main")) == {}
    assert fake.calls[0].headers["PRIVATE-TOKEN"] == "token"


def test_fetch_merge_request_detail_and_commits() -> None:
    client = make_client(FakeGitLab())

    detail = run(client.fetch_merge_request_detail(1, 7))
    assert detail.draft is True
    assert detail.work_in_progress is True
    assert detail.sha == "abc123"

    assert run(client.fetch_merge_request_commits(1, 7)) == ["feat: first", "fix: second"]


def test_post_status_uses_head_sha() -> None:
    fake = FakeGitLab()
    client = make_client(fake)
    status = CommitStatus(state="success", description="ready to be squashed", context="Semantic Merge Request")

    assert run(client.post_status(1, 7, status)) is True
    posted = fake.calls[-1]
    assert posted.url.path == "/api/v4/projects/1/statuses/abc123"
    assert json.loads(posted.content) == {
        "state": "success",
        "description": "ready to be squashed",
        "context": "Semantic Merge Request",
    }


def test_rename_merge_request_title() -> None:
    fake = FakeGitLab()
    client = make_client(fake)

    assert run(client.rename_merge_request_title(1, 7, "feat: x (!7)")) is True
    assert fake.calls[-1].method == "PUT"
    assert run(client.rename_merge_request_title(1, 8, "feat: x (!8)")) is False


def test_failures_degrade_to_empty_values() -> None:
    client = make_client(FakeGitLab(fail=True))
    status = CommitStatus(state="failed", description="x", context="c")

    assert run(client.fetch_policy(1, "feature")) == {}
    assert run(client.fetch_merge_request_detail(1, 7)) is None
    assert run(client.fetch_merge_request_commits(1, 7)) == []
    assert run(client.post_status(1, 7, status)) is False
    assert run(client.rename_merge_request_title(1, 7, "t")) is False


class PagedCommits:
    """150 commits, newest first, served 100 per page."""

    def __init__(self):
        newest_first = [f"fix: c{i}" for i in range(149, 0, -1)] + ["wip oldest"]
        self.pages = [newest_first[:100], newest_first[100:]]
        self.requested_pages = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        page = int(request.url.params.get("page", "1"))
        self.requested_pages.append(page)
        next_page = str(page + 1) if page < len(self.pages) else ""
        return httpx.Response(200, json=[{"message": m} for m in self.pages[page - 1]], headers={"X-Next-Page": next_page})


def test_fetch_merge_request_commits_follows_pages() -> None:
    fake = PagedCommits()
    client = GitLabClient(BASE, "token", http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake)))

    commits = run(client.fetch_merge_request_commits(1, 7))

    assert fake.requested_pages == [1, 2]
    assert len(commits) == 150
    assert commits[0] == "wip oldest"
    assert commits[-1] == "fix: c149"
