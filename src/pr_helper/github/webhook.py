"""Webhook receiver for pull_request and PR comment events (FastAPI)."""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Request, Response

from .app import GitHubApp

logger = logging.getLogger(__name__)

HANDLED_ACTIONS = {
    "opened",
    "synchronize",
    "reopened",
    "ready_for_review",
    "converted_to_draft",
}
COMMENT_EVENTS = {"issue_comment", "pull_request_review_comment"}


def verify_signature(payload: bytes, signature: str, secret: str) -> bool:
    """Check an X-Hub-Signature-256 header (``sha256=<hex>``) against the body."""
    if not signature.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(
        secret.encode(), payload, hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(expected, signature)


@dataclass(frozen=True)
class PREvent:
    """A pull_request webhook delivery that should trigger a size check."""

    action: str
    repo: str
    pr_number: int
    installation_id: int
    draft: bool = False


@dataclass(frozen=True)
class CommentEvent:
    """A new comment on a pull request, which may be a question for the bot."""

    repo: str
    pr_number: int
    installation_id: int
    comment_id: int


def _comment_event(event_type: str, payload: dict[str, Any], repo: str) -> CommentEvent | None:
    """Build a CommentEvent, or None for edits, deletions and plain issues."""
    if payload.get("action") != "created":
        return None
    if event_type == "issue_comment":
        issue = payload.get("issue") or {}
        # issue_comment fires for issues too; only PRs carry a pull_request key
        if "pull_request" not in issue:
            return None
        pr_number = issue.get("number", 0)
    else:
        pr_number = (payload.get("pull_request") or {}).get("number", 0)

    return CommentEvent(
        repo=repo,
        pr_number=pr_number,
        installation_id=(payload.get("installation") or {}).get("id", 0),
        comment_id=(payload.get("comment") or {}).get("id", 0),
    )


def create_app(
    github_app: GitHubApp,
    handler: Callable[[PREvent], Any] | None = None,
    allowed_repos: list[str] | None = None,
    comment_handler: Callable[[CommentEvent], Any] | None = None,
) -> FastAPI:
    """Create the webhook application.

    Accepted events are handed to their handler as a background task, so
    the delivery is acknowledged before the size check or reply runs.

    Args:
        github_app: Supplies the webhook secret.
        handler: Called with each accepted PREvent. None only acknowledges.
        allowed_repos: Optional allow-list of ``owner/name`` repositories.
        comment_handler: Called with each new PR comment. When None,
            comment events are ignored.

    Returns:
        A FastAPI application with ``/health`` and ``/webhook``.
    """
    app = FastAPI(title="pr-helper webhook")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/webhook")
    async def webhook(request: Request, background: BackgroundTasks) -> Response:
        body = await request.body()

        signature = request.headers.get("X-Hub-Signature-256", "")
        if not signature or not verify_signature(body, signature, github_app.webhook_secret):
            logger.warning("Rejected webhook delivery with bad signature")
            return Response(content="Invalid signature", status_code=403)

        try:
            payload: dict[str, Any] = json.loads(body)
        except json.JSONDecodeError:
            return Response(content="Invalid JSON", status_code=400)

        event_type = request.headers.get("X-GitHub-Event", "")
        action = payload.get("action", "")
        repo = (payload.get("repository") or {}).get("full_name", "")
        if allowed_repos and repo not in allowed_repos:
            return Response(content="ignored", status_code=200)

        if event_type in COMMENT_EVENTS and comment_handler is not None:
            comment = _comment_event(event_type, payload, repo)
            if comment is None:
                return Response(content="ignored", status_code=200)
            background.add_task(comment_handler, comment)
            logger.info("Accepted comment %d on %s#%d", comment.comment_id, repo, comment.pr_number)
            return Response(content="accepted", status_code=200)

        if event_type != "pull_request" or action not in HANDLED_ACTIONS:
            return Response(content="ignored", status_code=200)

        pr = payload.get("pull_request") or {}
        event = PREvent(
            action=action,
            repo=repo,
            pr_number=pr.get("number", 0),
            installation_id=(payload.get("installation") or {}).get("id", 0),
            draft=bool(pr.get("draft", False)),
        )
        if handler is not None:
            background.add_task(handler, event)
        logger.info("Accepted %s for %s#%d", action, repo, event.pr_number)
        return Response(content="accepted", status_code=200)

    return app
