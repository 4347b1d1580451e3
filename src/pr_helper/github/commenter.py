"""Markdown comment rendering and posting for size checks, splits and summaries."""
from __future__ import annotations

from pathlib import Path

import jinja2

from ..analyzer import PRSummary
from ..estimator import Recommendation, SizeEstimate, SplitPlan
from ..github_client import GitHubClient
from ..labels import SplitSuggestion, order_splits

SIZE_COMMENT_MARKER = "pr-helper:size-check"
SPLIT_COMMENT_MARKER = "pr-helper:split-closed"
SUMMARY_COMMENT_MARKER = "pr-helper:summary"

_STATUS = {
    Recommendation.OK: ("✅", "Good size for review"),
    Recommendation.WARNING: ("⚠️", "Consider splitting before review"),
    Recommendation.SPLIT_REQUIRED: ("🚨", "Split before marking Ready for review"),
}


# Checked in order; the first keyword hit picks the emoji
_GROUP_EMOJI: tuple[tuple[tuple[str, ...], str], ...] = (
    (("auth",), "🔐"),
    (("api", "endpoint"), "🔌"),
    (("ui", "component"), "🎨"),
    (("test",), "🧪"),
    (("config", "setup"), "⚙️"),
    (("error", "handling"), "🛡️"),
    (("cache", "performance"), "⚡"),
    (("database", "db"), "🗄️"),
    (("log",), "📝"),
    (("security",), "🔒"),
    (("refactor",), "♻️"),
    (("fix", "bug"), "🐛"),
    (("feature",), "✨"),
    (("docs",), "📚"),
)
DEFAULT_GROUP_EMOJI = "📦"


def emoji_for_group(name: str) -> str:
    lower = name.lower()
    for keywords, emoji in _GROUP_EMOJI:
        if any(k in lower for k in keywords):
            return emoji
    return DEFAULT_GROUP_EMOJI


def _environment() -> jinja2.Environment:
    template_dir = Path(__file__).resolve().parent.parent / "templates"
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(template_dir)),
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def format_size_comment(
    estimate: SizeEstimate,
    splits: list[SplitPlan] | None,
    pr_number: int,
) -> str:
    """Render the size-check comment.

    Args:
        estimate: The PR's size estimate.
        splits: Optional split plans from the language model.
        pr_number: The PR the comment is posted on.

    Returns:
        Markdown comment body including the hidden marker.
    """
    emoji, status = _STATUS[estimate.recommendation]
    return _environment().get_template("size_comment.md.j2").render(
        marker=SIZE_COMMENT_MARKER,
        estimate=estimate,
        emoji=emoji,
        status=status,
        splits=splits or [],
        pr_number=pr_number,
    )


def format_split_closed_comment(
    original_pr: int,
    splits: list[SplitSuggestion],
) -> str:
    """Render the comment left on a PR that was split into smaller ones."""
    ordered = order_splits(splits)
    return _environment().get_template("split_closed.md.j2").render(
        marker=SPLIT_COMMENT_MARKER,
        original_pr=original_pr,
        splits=ordered,
        review_order=" → ".join(f"#{s.number}" for s in ordered),
    )


def format_summary_comment(summary: PRSummary, pr_number: int) -> str:
    """Render the intent-grouped summary with a linked navigation index.

    Each group becomes a collapsible section whose anchor is the group id.
    """
    return _environment().get_template("summary_comment.md.j2").render(
        marker=SUMMARY_COMMENT_MARKER,
        summary=summary,
        pr_number=pr_number,
        emoji_for=emoji_for_group,
    )


class SizeCommenter:
    """Posts pr-helper's comments, updating the previous one of each kind in place."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def post_size_check(
        self,
        pr_number: int,
        estimate: SizeEstimate,
        splits: list[SplitPlan] | None = None,
    ) -> int:
        body = format_size_comment(estimate, splits, pr_number)
        return self.github.upsert_comment(pr_number, SIZE_COMMENT_MARKER, body)

    def post_split_closed(
        self,
        original_pr: int,
        splits: list[SplitSuggestion],
    ) -> int:
        body = format_split_closed_comment(original_pr, splits)
        return self.github.upsert_comment(original_pr, SPLIT_COMMENT_MARKER, body)

    def post_summary(self, pr_number: int, summary: PRSummary) -> int:
        body = format_summary_comment(summary, pr_number)
        return self.github.upsert_comment(pr_number, SUMMARY_COMMENT_MARKER, body)
