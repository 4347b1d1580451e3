"""GitHub API client for PR data, labels and comments."""

from __future__ import annotations

import logging
from urllib.parse import quote
from dataclasses import dataclass, asdict, field
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .labels import LabelDiff

GITHUB_API = "https://api.github.com"
FILES_PER_PAGE = 100

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileChange:
    """One file touched by a pull request."""

    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None
    previous_filename: str | None = None

    @classmethod
    def from_api(cls, item: dict) -> "FileChange":
        return cls(
            filename=item["filename"],
            status=item.get("status", "modified"),
            additions=item.get("additions", 0),
            deletions=item.get("deletions", 0),
            changes=item.get("changes", 0),
            patch=item.get("patch"),
            previous_filename=item.get("previous_filename"),
        )


@dataclass
class PRDetails:
    """Pull request metadata plus its fully paginated file list."""

    number: int
    title: str
    body: str
    draft: bool
    state: str
    additions: int
    deletions: int
    changed_files: int
    files: list[FileChange] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    author: str = "unknown"
    base_ref: str = ""
    head_ref: str = ""
    url: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CommentContext:
    """A reviewer comment on a PR, with its code location for line comments."""

    comment_id: int
    body: str
    user: str
    pr_number: int
    path: str | None = None
    line: int | None = None
    diff_hunk: str | None = None
    is_review_comment: bool = False

    @classmethod
    def from_api(cls, item: dict, pr_number: int, review: bool = False) -> "CommentContext":
        return cls(
            comment_id=item["id"],
            body=item.get("body") or "",
            user=(item.get("user") or {}).get("login", "unknown"),
            pr_number=pr_number,
            path=item.get("path"),
            line=item.get("line") or item.get("original_line"),
            diff_hunk=item.get("diff_hunk"),
            is_review_comment=review,
        )


class GitHubClient:
    """Thin synchronous wrapper over the GitHub REST API for one repository.

    Construct one per repository/token and pass it where it is needed; it
    owns an ``httpx.Client`` and should be closed (or used as a context
    manager) when done.
    """

    def __init__(
        self,
        token: str,
        repo: str,
        client: httpx.Client | None = None,
    ) -> None:
        self.repo = repo
        self._client = client or httpx.Client(
            base_url=GITHUB_API,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=30.0,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return f"/repos/{self.repo}{path}"

    def _get_all(self, path: str, per_page: int = 100) -> list[dict]:
        """GET every page of a list endpoint.

        Stops at the first page shorter than ``per_page``.
        """
        items: list[dict] = []
        page = 1
        while True:
            resp = self._client.get(
                self._url(path), params={"per_page": per_page, "page": page}
            )
            resp.raise_for_status()
            batch = resp.json()
            items.extend(batch)
            if len(batch) < per_page:
                break
            page += 1
        return items

    # -- Pull requests -----------------------------------------------------

    def get_pull_request(self, pr_number: int) -> PRDetails:
        """Fetch PR detail and every changed file."""
        resp = self._client.get(self._url(f"/pulls/{pr_number}"))
        resp.raise_for_status()
        detail = resp.json()

        return PRDetails(
            number=detail["number"],
            title=detail.get("title", ""),
            body=detail.get("body") or "",
            draft=bool(detail.get("draft", False)),
            state=detail.get("state", "open"),
            additions=detail.get("additions", 0),
            deletions=detail.get("deletions", 0),
            changed_files=detail.get("changed_files", 0),
            files=self.get_pr_files(pr_number),
            labels=[lbl.get("name", "") for lbl in detail.get("labels", [])],
            author=(detail.get("user") or {}).get("login", "unknown"),
            base_ref=(detail.get("base") or {}).get("ref", ""),
            head_ref=(detail.get("head") or {}).get("ref", ""),
            url=detail.get("html_url", ""),
        )

    def get_pr_files(self, pr_number: int) -> list[FileChange]:
        """List all files in a PR, following pagination."""
        return [
            FileChange.from_api(item)
            for item in self._get_all(f"/pulls/{pr_number}/files", FILES_PER_PAGE)
        ]

    # -- Labels ------------------------------------------------------------

    def list_labels(self, pr_number: int) -> list[str]:
        """Current label names on a PR, read fresh from the API."""
        return [lbl["name"] for lbl in self._get_all(f"/issues/{pr_number}/labels")]

    def add_labels(self, pr_number: int, labels: list[str]) -> None:
        if not labels:
            return
        resp = self._client.post(
            self._url(f"/issues/{pr_number}/labels"),
            json={"labels": labels},
        )
        resp.raise_for_status()

    def remove_label(self, pr_number: int, label: str) -> bool:
        """Remove a label from a PR.

        A label that is not on the PR is the common case, not an error.

        Returns:
            True if the label was removed, False if it was not present.

        Raises:
            httpx.HTTPStatusError: On any other failed response.
        """
        resp = self._client.delete(
            self._url(f"/issues/{pr_number}/labels/{quote(label, safe='')}")
        )
        if resp.status_code == 404:
            logger.debug("Label %r not present on #%d", label, pr_number)
            return False
        resp.raise_for_status()
        return True

    def apply_label_diff(self, pr_number: int, diff: "LabelDiff") -> None:
        """Apply a LabelDiff: every removal first, then the additions.

        Removals are best effort. A failed removal is logged and skipped so
        the add step always runs; otherwise clear-and-reset could strip the
        correct size label and never put it back.
        """
        for label in sorted(diff.to_remove):
            try:
                self.remove_label(pr_number, label)
            except httpx.HTTPError as e:
                logger.warning("Could not remove %r from #%d: %s", label, pr_number, e)
        self.add_labels(pr_number, sorted(diff.to_add))

    def list_repo_labels(self) -> list[str]:
        return [lbl["name"] for lbl in self._get_all("/labels")]

    def ensure_labels(self, definitions: list[dict[str, str]]) -> list[str]:
        """Create any labels from ``definitions`` missing in the repository.

        Returns:
            Names of the labels that were created.
        """
        existing = {name.lower() for name in self.list_repo_labels()}
        created = []
        for definition in definitions:
            if definition["name"].lower() in existing:
                continue
            resp = self._client.post(self._url("/labels"), json=definition)
            if resp.status_code == 422:
                # Created concurrently by another run
                logger.debug("Label %r already exists", definition["name"])
                continue
            resp.raise_for_status()
            created.append(definition["name"])
        return created

    # -- Comments ----------------------------------------------------------

    def list_comments(self, pr_number: int) -> list[dict]:
        """Every conversation comment on a PR, oldest first."""
        return self._get_all(f"/issues/{pr_number}/comments")

    def post_comment(self, pr_number: int, body: str) -> int:
        resp = self._client.post(
            self._url(f"/issues/{pr_number}/comments"),
            json={"body": body},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def update_comment(self, comment_id: int, body: str) -> None:
        resp = self._client.patch(
            self._url(f"/issues/comments/{comment_id}"),
            json={"body": body},
        )
        resp.raise_for_status()

    def find_comment(self, pr_number: int, marker: str) -> int | None:
        """Return the id of the first comment containing ``marker``."""
        for comment in self.list_comments(pr_number):
            if marker in (comment.get("body") or ""):
                return comment["id"]
        return None

    def upsert_comment(self, pr_number: int, marker: str, body: str) -> int:
        """Update the comment carrying ``marker`` or post a new one.

        The marker is prepended as an HTML comment when the body lacks it.

        Returns:
            The comment id.
        """
        if marker not in body:
            body = f"<!-- {marker} -->\n{body}"
        existing_id = self.find_comment(pr_number, marker)
        if existing_id is not None:
            self.update_comment(existing_id, body)
            return existing_id
        return self.post_comment(pr_number, body)

    def get_comment(self, pr_number: int, comment_id: int) -> CommentContext:
        """Look up a comment by id.

        Line comments from a review live under ``/pulls/comments``; anything
        else is a conversation comment, fetched from ``/issues/comments``.
        """
        resp = self._client.get(self._url(f"/pulls/comments/{comment_id}"))
        if resp.status_code == 404:
            resp = self._client.get(self._url(f"/issues/comments/{comment_id}"))
            resp.raise_for_status()
            return CommentContext.from_api(resp.json(), pr_number)
        resp.raise_for_status()
        return CommentContext.from_api(resp.json(), pr_number, review=True)

    def reply_to_review_comment(self, pr_number: int, comment_id: int, body: str) -> int:
        """Reply in the thread of a line comment. Returns the new comment id."""
        resp = self._client.post(
            self._url(f"/pulls/{pr_number}/comments/{comment_id}/replies"),
            json={"body": body},
        )
        resp.raise_for_status()
        return resp.json()["id"]
