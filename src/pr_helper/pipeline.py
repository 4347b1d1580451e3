"""PR pipelines: the size check plus the model-backed summary and reply flows."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from .analyzer import PRSummary, analyze_pr
from .estimator import (
    Recommendation,
    SizeEstimate,
    SizePolicy,
    SplitPlan,
    estimate_pr,
    suggest_splits,
)
from .github.commenter import SizeCommenter
from .github_client import GitHubClient, PRDetails
from .labels import SIZE_PREFIX, LabelDiff, needs_split_diff, reconcile_size_label
from .llm import LLMClient
from .responder import process_comment

if TYPE_CHECKING:
    from .config import Config
    from .github.app import GitHubApp
    from .github.webhook import CommentEvent, PREvent

logger = logging.getLogger(__name__)


@dataclass
class SizeCheckResult:
    """What a size check found and what it changed on GitHub."""

    pr: PRDetails
    estimate: SizeEstimate
    label_diff: LabelDiff | None = None
    splits: list[SplitPlan] = field(default_factory=list)
    comment_id: int | None = None

    @property
    def size_label(self) -> str | None:
        if self.label_diff is None:
            return None
        return next(
            (lbl for lbl in sorted(self.label_diff.to_add) if lbl.startswith(SIZE_PREFIX)),
            None,
        )

    def to_dict(self) -> dict:
        return {
            "pr_number": self.pr.number,
            "title": self.pr.title,
            "estimate": self.estimate.to_dict(),
            "size_label": self.size_label,
            "splits": [s.name for s in self.splits],
            "comment_id": self.comment_id,
        }


def _label_changes(current: list[str], estimate: SizeEstimate) -> LabelDiff:
    size = reconcile_size_label(current, estimate.total_lines)
    split = needs_split_diff(
        current, estimate.recommendation == Recommendation.SPLIT_REQUIRED
    )
    return LabelDiff(
        to_remove=size.to_remove | split.to_remove,
        to_add=size.to_add | split.to_add,
    )


def _fetch_splits(
    pr: PRDetails, estimate: SizeEstimate, llm: LLMClient
) -> list[SplitPlan]:
    async def _run() -> list[SplitPlan]:
        async with llm:
            return await suggest_splits(pr, estimate, llm)

    try:
        return asyncio.run(_run())
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Split suggestion failed for #%d: %s", pr.number, e)
        return []


def run_size_check(
    github: GitHubClient,
    pr_number: int,
    policy: SizePolicy,
    llm: LLMClient | None = None,
    comment: bool = True,
    label: bool = True,
) -> SizeCheckResult:
    """Run the full size check for one PR.

    Args:
        github: Client for the PR's repository
        pr_number: Pull request number
        policy: Size thresholds and tunables
        llm: Optional model client; split suggestions are only requested
            when given and the PR is not an easy "ok"
        comment: Post or update the size-check comment
        label: Reconcile the size and needs-split labels

    Returns:
        SizeCheckResult describing the estimate and the changes made
    """
    pr = github.get_pull_request(pr_number)
    estimate = estimate_pr(pr, policy)
    result = SizeCheckResult(pr=pr, estimate=estimate)
    logger.info(
        "#%d: %d lines, %d files, ~%d min, %s",
        pr.number,
        estimate.total_lines,
        estimate.file_count,
        estimate.estimated_read_time_minutes,
        estimate.recommendation.value,
    )

    if label:
        # Labels may have moved since the PR was fetched; a concurrent run
        # or a human can change them while files are paginated
        current = github.list_labels(pr.number)
        result.label_diff = _label_changes(current, estimate)
        github.apply_label_diff(pr.number, result.label_diff)

    if llm is not None and estimate.recommendation != Recommendation.OK:
        result.splits = _fetch_splits(pr, estimate, llm)

    if comment:
        result.comment_id = SizeCommenter(github).post_size_check(
            pr.number, estimate, result.splits
        )

    return result


class SizeCheckHandler:
    """Webhook callback that runs a size check for each accepted PR event.

    Runs as a FastAPI background task in a worker thread; failures are
    logged rather than raised since there is no caller left to report to.
    """

    def __init__(
        self,
        github_app: "GitHubApp",
        config: "Config",
        suggest_splits: bool = False,
    ) -> None:
        self.github_app = github_app
        self.config = config
        self.suggest_splits = suggest_splits

    def __call__(self, event: "PREvent") -> SizeCheckResult | None:
        if self.config.mode == "draft-only" and not event.draft:
            logger.info("Skipping #%d: not a draft", event.pr_number)
            return None

        llm = LLMClient(self.config) if self.suggest_splits and self.config.has_llm else None
        try:
            with self.github_app.client_for(event.installation_id, event.repo) as github:
                return run_size_check(
                    github, event.pr_number, self.config.size_policy(), llm=llm
                )
        except httpx.HTTPError:
            logger.exception("Size check failed for %s#%d", event.repo, event.pr_number)
            return None


def run_summary(
    github: GitHubClient,
    pr_number: int,
    llm: LLMClient,
    comment: bool = True,
) -> tuple[PRSummary, int | None]:
    """Group a PR's changes by intent and post the summary comment.

    Returns:
        The summary and the id of the summary comment (None when
        ``comment`` is False).

    Raises:
        httpx.HTTPError: If a GitHub or model request fails.
        ValueError: If the model reply has no usable groups.
    """
    pr = github.get_pull_request(pr_number)

    async def _run() -> PRSummary:
        async with llm:
            return await analyze_pr(pr, llm)

    summary = asyncio.run(_run())
    logger.info("#%d: %d intent groups", pr.number, summary.total_changes)

    comment_id = None
    if comment:
        comment_id = SizeCommenter(github).post_summary(pr.number, summary)
    return summary, comment_id


class CommentReplyHandler:
    """Webhook callback that answers reviewer questions on PRs."""

    def __init__(self, github_app: "GitHubApp", config: "Config") -> None:
        self.github_app = github_app
        self.config = config

    def __call__(self, event: "CommentEvent") -> int | None:
        llm = LLMClient(self.config) if self.config.has_llm else None
        try:
            with self.github_app.client_for(event.installation_id, event.repo) as github:
                return process_comment(
                    github,
                    event.pr_number,
                    event.comment_id,
                    llm,
                    self.config.bot_username,
                )
        except httpx.HTTPError:
            logger.exception(
                "Reply to comment %d on %s#%d failed",
                event.comment_id,
                event.repo,
                event.pr_number,
            )
            return None
