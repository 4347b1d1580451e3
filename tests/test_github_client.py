"""Tests for pr_helper.github_client module."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
import respx

from pr_helper.github_client import (
    FILES_PER_PAGE,
    GITHUB_API,
    CommentContext,
    FileChange,
    GitHubClient,
)
from pr_helper.labels import LabelDiff, reconcile_size_label

REPO = "owner/repo"
BASE = f"{GITHUB_API}/repos/{REPO}"


@pytest.fixture()
def client() -> GitHubClient:
    gh = GitHubClient("ghp_test", REPO)
    yield gh
    gh.close()


def _files_page(start: int, count: int) -> list[dict[str, Any]]:
    return [
        {
            "filename": f"src/file_{i}.py",
            "status": "modified",
            "additions": 1,
            "deletions": 0,
            "changes": 1,
        }
        for i in range(start, start + count)
    ]


class TestFileChange:
    """Tests for FileChange.from_api()."""

    def test_from_api(self, mock_pr_files: list[dict[str, Any]]) -> None:
        change = FileChange.from_api(mock_pr_files[1])
        assert change.filename == "tests/test_feature_a.py"
        assert change.status == "renamed"
        assert change.changes == 15
        assert change.previous_filename == "tests/test_a.py"
        assert change.patch is None

    def test_missing_counts_default_to_zero(self) -> None:
        change = FileChange.from_api({"filename": "README.md"})
        assert change.additions == 0
        assert change.deletions == 0
        assert change.changes == 0
        assert change.status == "modified"


class TestGetPullRequest:
    """Tests for GitHubClient.get_pull_request()."""

    @respx.mock
    def test_details_and_files(
        self,
        client: GitHubClient,
        mock_pr_detail: dict[str, Any],
        mock_pr_files: list[dict[str, Any]],
    ) -> None:
        respx.get(f"{BASE}/pulls/7").mock(
            return_value=httpx.Response(200, json=mock_pr_detail)
        )
        respx.get(f"{BASE}/pulls/7/files").mock(
            return_value=httpx.Response(200, json=mock_pr_files)
        )

        pr = client.get_pull_request(7)

        assert pr.number == 7
        assert pr.title == "Add feature A"
        assert pr.draft is False
        assert pr.additions == 50
        assert pr.deletions == 5
        assert pr.labels == ["enhancement", "size:xl"]
        assert pr.author == "alice"
        assert pr.base_ref == "main"
        assert pr.head_ref == "feature-a"
        assert pr.url == "https://github.com/owner/repo/pull/7"
        assert [f.filename for f in pr.files] == [
            "src/feature_a.py",
            "tests/test_feature_a.py",
        ]

    @respx.mock
    def test_null_body(self, client: GitHubClient, mock_pr_detail: dict[str, Any]) -> None:
        mock_pr_detail["body"] = None
        respx.get(f"{BASE}/pulls/7").mock(
            return_value=httpx.Response(200, json=mock_pr_detail)
        )
        respx.get(f"{BASE}/pulls/7/files").mock(return_value=httpx.Response(200, json=[]))

        pr = client.get_pull_request(7)
        assert pr.body == ""
        assert pr.files == []

    @respx.mock
    def test_not_found_raises(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/pulls/404").mock(return_value=httpx.Response(404))
        with pytest.raises(httpx.HTTPStatusError):
            client.get_pull_request(404)

    @respx.mock
    def test_auth_header(self, client: GitHubClient, mock_pr_detail: dict[str, Any]) -> None:
        route = respx.get(f"{BASE}/pulls/7").mock(
            return_value=httpx.Response(200, json=mock_pr_detail)
        )
        respx.get(f"{BASE}/pulls/7/files").mock(return_value=httpx.Response(200, json=[]))

        client.get_pull_request(7)
        assert route.calls[0].request.headers["Authorization"] == "Bearer ghp_test"


class TestGetPrFiles:
    """Tests for file-list pagination."""

    @respx.mock
    def test_follows_pages_until_short_batch(self, client: GitHubClient) -> None:
        route = respx.get(f"{BASE}/pulls/9/files").mock(
            side_effect=[
                httpx.Response(200, json=_files_page(0, FILES_PER_PAGE)),
                httpx.Response(200, json=_files_page(FILES_PER_PAGE, 30)),
            ]
        )

        files = client.get_pr_files(9)

        assert len(files) == FILES_PER_PAGE + 30
        assert route.call_count == 2
        assert route.calls[1].request.url.params["page"] == "2"

    @respx.mock
    def test_exact_page_boundary_fetches_empty_page(self, client: GitHubClient) -> None:
        route = respx.get(f"{BASE}/pulls/9/files").mock(
            side_effect=[
                httpx.Response(200, json=_files_page(0, FILES_PER_PAGE)),
                httpx.Response(200, json=[]),
            ]
        )

        assert len(client.get_pr_files(9)) == FILES_PER_PAGE
        assert route.call_count == 2


class TestLabels:
    """Tests for label operations."""

    @respx.mock
    def test_list_labels(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/issues/7/labels").mock(
            return_value=httpx.Response(200, json=[{"name": "bug"}, {"name": "size:s"}])
        )
        assert client.list_labels(7) == ["bug", "size:s"]

    @respx.mock
    def test_list_labels_follows_pages(self, client: GitHubClient) -> None:
        route = respx.get(f"{BASE}/issues/7/labels").mock(
            side_effect=[
                httpx.Response(200, json=[{"name": f"topic-{i}"} for i in range(100)]),
                httpx.Response(200, json=[{"name": "size:s"}]),
            ]
        )

        labels = client.list_labels(7)

        assert len(labels) == 101
        assert labels[-1] == "size:s"
        assert route.calls[1].request.url.params["page"] == "2"

    @respx.mock
    def test_add_labels(self, client: GitHubClient) -> None:
        route = respx.post(f"{BASE}/issues/7/labels").mock(
            return_value=httpx.Response(200, json=[])
        )
        client.add_labels(7, ["size:m"])
        assert json.loads(route.calls[0].request.content) == {"labels": ["size:m"]}

    @respx.mock
    def test_add_nothing_makes_no_call(self, client: GitHubClient) -> None:
        route = respx.post(f"{BASE}/issues/7/labels")
        client.add_labels(7, [])
        assert not route.called

    @respx.mock
    def test_remove_label(self, client: GitHubClient) -> None:
        respx.delete(f"{BASE}/issues/7/labels/size%3Axs").mock(
            return_value=httpx.Response(200, json=[])
        )
        assert client.remove_label(7, "size:xs") is True

    @respx.mock
    def test_remove_missing_label_is_not_an_error(self, client: GitHubClient) -> None:
        respx.delete(f"{BASE}/issues/7/labels/size%3Axs").mock(
            return_value=httpx.Response(404, json={"message": "Label does not exist"})
        )
        assert client.remove_label(7, "size:xs") is False

    @respx.mock
    def test_remove_label_server_error_raises(self, client: GitHubClient) -> None:
        respx.delete(f"{BASE}/issues/7/labels/size%3Axs").mock(
            return_value=httpx.Response(500)
        )
        with pytest.raises(httpx.HTTPStatusError):
            client.remove_label(7, "size:xs")

    @respx.mock
    def test_apply_label_diff_removes_then_adds(self, client: GitHubClient) -> None:
        calls: list[str] = []

        def _record(request: httpx.Request) -> httpx.Response:
            calls.append(request.method)
            return httpx.Response(404 if request.method == "DELETE" else 200, json=[])

        respx.delete(url__startswith=f"{BASE}/issues/7/labels/").mock(side_effect=_record)
        add = respx.post(f"{BASE}/issues/7/labels").mock(side_effect=_record)

        diff = LabelDiff(
            to_remove=frozenset({"size:xl", "size:m"}),
            to_add=frozenset({"size:m"}),
        )
        client.apply_label_diff(7, diff)

        assert calls == ["DELETE", "DELETE", "POST"]
        assert json.loads(add.calls[0].request.content) == {"labels": ["size:m"]}

    @respx.mock
    def test_apply_label_diff_adds_after_failed_removal(self, client: GitHubClient) -> None:
        respx.delete(f"{BASE}/issues/7/labels/size%3Al").mock(
            return_value=httpx.Response(200, json=[])
        )
        respx.delete(f"{BASE}/issues/7/labels/size%3Am").mock(
            return_value=httpx.Response(502)
        )
        add = respx.post(f"{BASE}/issues/7/labels").mock(
            return_value=httpx.Response(200, json=[])
        )

        diff = reconcile_size_label(["size:l", "size:m"], 600)
        client.apply_label_diff(7, diff)

        assert add.call_count == 1
        assert json.loads(add.calls[0].request.content) == {"labels": ["size:l"]}

    @respx.mock
    def test_ensure_labels_creates_missing_only(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/labels").mock(
            return_value=httpx.Response(200, json=[{"name": "Size:XS"}])
        )
        create = respx.post(f"{BASE}/labels").mock(
            return_value=httpx.Response(201, json={})
        )

        created = client.ensure_labels(
            [
                {"name": "size:xs", "color": "3CBF00", "description": ""},
                {"name": "size:s", "color": "5D9801", "description": ""},
            ]
        )

        assert created == ["size:s"]
        assert create.call_count == 1

    @respx.mock
    def test_ensure_labels_tolerates_race(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/labels").mock(return_value=httpx.Response(200, json=[]))
        respx.post(f"{BASE}/labels").mock(return_value=httpx.Response(422, json={}))

        assert client.ensure_labels([{"name": "size:xs", "color": "3CBF00"}]) == []


class TestComments:
    """Tests for comment upsert."""

    @respx.mock
    def test_upsert_posts_new_comment_with_marker(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/issues/7/comments").mock(
            return_value=httpx.Response(200, json=[{"id": 1, "body": "LGTM"}])
        )
        post = respx.post(f"{BASE}/issues/7/comments").mock(
            return_value=httpx.Response(201, json={"id": 55})
        )

        comment_id = client.upsert_comment(7, "pr-helper:test", "Hello")

        assert comment_id == 55
        body = json.loads(post.calls[0].request.content)["body"]
        assert body == "<!-- pr-helper:test -->\nHello"

    @respx.mock
    def test_upsert_updates_existing_comment(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/issues/7/comments").mock(
            return_value=httpx.Response(
                200,
                json=[
                    {"id": 1, "body": None},
                    {"id": 2, "body": "<!-- pr-helper:test -->\nold"},
                ],
            )
        )
        patch_route = respx.patch(f"{BASE}/issues/comments/2").mock(
            return_value=httpx.Response(200, json={"id": 2})
        )
        post = respx.post(f"{BASE}/issues/7/comments")

        comment_id = client.upsert_comment(7, "pr-helper:test", "<!-- pr-helper:test -->\nnew")

        assert comment_id == 2
        assert not post.called
        assert json.loads(patch_route.calls[0].request.content)["body"].endswith("new")

    @respx.mock
    def test_find_comment_none(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/issues/7/comments").mock(return_value=httpx.Response(200, json=[]))
        assert client.find_comment(7, "pr-helper:test") is None

    @respx.mock
    def test_upsert_finds_marker_on_second_page(self, client: GitHubClient) -> None:
        chatter = [{"id": i, "body": f"comment {i}"} for i in range(1, 101)]
        respx.get(f"{BASE}/issues/7/comments").mock(
            side_effect=[
                httpx.Response(200, json=chatter),
                httpx.Response(
                    200, json=[{"id": 999, "body": "<!-- pr-helper:test -->\nold"}]
                ),
            ]
        )
        patch_route = respx.patch(f"{BASE}/issues/comments/999").mock(
            return_value=httpx.Response(200, json={"id": 999})
        )
        post = respx.post(f"{BASE}/issues/7/comments")

        comment_id = client.upsert_comment(7, "pr-helper:test", "new")

        assert comment_id == 999
        assert patch_route.called
        assert not post.called


class TestReviewComments:
    """Tests for comment lookup and threaded replies."""

    @respx.mock
    def test_get_line_comment(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/pulls/comments/5").mock(
            return_value=httpx.Response(
                200,
                json={
                    "id": 5,
                    "body": "why?",
                    "user": {"login": "reviewer"},
                    "path": "src/app.py",
                    "line": None,
                    "original_line": 12,
                    "diff_hunk": "@@ -1 +1 @@",
                },
            )
        )

        comment = client.get_comment(7, 5)

        assert comment == CommentContext(
            comment_id=5,
            body="why?",
            user="reviewer",
            pr_number=7,
            path="src/app.py",
            line=12,
            diff_hunk="@@ -1 +1 @@",
            is_review_comment=True,
        )

    @respx.mock
    def test_falls_back_to_conversation_comment(self, client: GitHubClient) -> None:
        respx.get(f"{BASE}/pulls/comments/6").mock(return_value=httpx.Response(404))
        respx.get(f"{BASE}/issues/comments/6").mock(
            return_value=httpx.Response(
                200, json={"id": 6, "body": "help", "user": {"login": "dev"}}
            )
        )

        comment = client.get_comment(7, 6)

        assert comment.is_review_comment is False
        assert comment.path is None
        assert comment.user == "dev"

    @respx.mock
    def test_reply_to_review_comment(self, client: GitHubClient) -> None:
        route = respx.post(f"{BASE}/pulls/7/comments/5/replies").mock(
            return_value=httpx.Response(201, json={"id": 77})
        )

        assert client.reply_to_review_comment(7, 5, "Because") == 77
        assert json.loads(route.calls[0].request.content) == {"body": "Because"}
