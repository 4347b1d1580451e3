"""Tests for size-check, split and summary comment rendering."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pr_helper.analyzer import IntentGroup, PRSummary
from pr_helper.estimator import (
    CognitiveComplexity,
    Recommendation,
    SizeEstimate,
    SplitPlan,
)
from pr_helper.github.commenter import (
    DEFAULT_GROUP_EMOJI,
    SIZE_COMMENT_MARKER,
    SPLIT_COMMENT_MARKER,
    SUMMARY_COMMENT_MARKER,
    SizeCommenter,
    emoji_for_group,
    format_size_comment,
    format_split_closed_comment,
    format_summary_comment,
)
from pr_helper.labels import SplitSuggestion


def _estimate(recommendation: Recommendation = Recommendation.OK, **overrides) -> SizeEstimate:
    fields = {
        "total_lines": 150,
        "additions": 100,
        "deletions": 50,
        "file_count": 2,
        "estimated_read_time_minutes": 4,
        "cognitive_complexity": CognitiveComplexity.LOW,
        "is_too_large": recommendation != Recommendation.OK,
        "recommendation": recommendation,
    }
    fields.update(overrides)
    return SizeEstimate(**fields)


def _splits() -> list[SplitPlan]:
    return [
        SplitPlan(
            name="Authentication Flow",
            description="Implements OAuth login",
            files=["auth.ts", "login.tsx"],
            estimated_read_time_minutes=4,
            bullet_points=["OAuth implementation", "Token refresh logic"],
        ),
        SplitPlan(
            name="Caching",
            description="Adds the cache layer",
            files=["cache.ts"],
            estimated_read_time_minutes=3,
        ),
    ]


class TestFormatSizeComment:
    """Tests for format_size_comment()."""

    def test_metrics(self) -> None:
        body = format_size_comment(_estimate(), None, 42)

        assert body.startswith(f"<!-- {SIZE_COMMENT_MARKER} -->")
        assert "**150 lines** changed across **2 files**" in body
        assert "| Additions | +100 |" in body
        assert "| Deletions | -50 |" in body
        assert "| Est. Read Time | ~4 min |" in body
        assert "| Cognitive Load | low |" in body
        assert "PR Helper | Size check" in body

    @pytest.mark.parametrize(
        "recommendation, emoji, status",
        [
            (Recommendation.OK, "✅", "Good size for review"),
            (Recommendation.WARNING, "⚠️", "Consider splitting before review"),
            (Recommendation.SPLIT_REQUIRED, "🚨", "Split before marking Ready for review"),
        ],
    )
    def test_status(self, recommendation: Recommendation, emoji: str, status: str) -> None:
        body = format_size_comment(_estimate(recommendation), [], 42)
        assert f"## {emoji} PR Size Check" in body
        assert f"**Status:** {status}" in body

    def test_no_splits_section_without_splits(self) -> None:
        body = format_size_comment(_estimate(), [], 42)
        assert "Suggested Splits" not in body
        assert "split-from" not in body

    def test_splits_section(self) -> None:
        body = format_size_comment(_estimate(Recommendation.SPLIT_REQUIRED), _splits(), 42)

        assert "### 📦 Suggested Splits" in body
        assert "#### 1. **Authentication Flow** (~4 min)" in body
        assert "#### 2. **Caching** (~3 min)" in body
        assert "- `login.tsx`" in body
        assert "- Token refresh logic" in body
        assert "split-from: #42" in body
        assert "review-order: 1/2, 2/2, etc." in body

    def test_very_high_complexity_label(self) -> None:
        body = format_size_comment(
            _estimate(cognitive_complexity=CognitiveComplexity.VERY_HIGH), [], 1
        )
        assert "| Cognitive Load | very-high |" in body


class TestFormatSplitClosedComment:
    """Tests for format_split_closed_comment()."""

    def test_lists_splits_in_review_order(self) -> None:
        body = format_split_closed_comment(
            12,
            [
                SplitSuggestion(order=3, number=103, title="UI"),
                SplitSuggestion(order=1, number=101, title="Schema"),
                SplitSuggestion(order=2, number=102, title="API"),
            ],
        )

        assert body.startswith(f"<!-- {SPLIT_COMMENT_MARKER} -->")
        assert "## ⚠️ PR #12 split into 3 smaller PRs" in body
        assert "- #101 - Schema (review first)" in body
        assert "- #102 - API (review #2)" in body
        assert "- #103 - UI (review last)" in body
        assert "**Review order:** #101 → #102 → #103" in body
        assert body.index("#101 - Schema") < body.index("#103 - UI")


def _summary() -> PRSummary:
    return PRSummary(
        groups=[
            IntentGroup(
                id="auth-flow",
                name="Authentication Flow",
                summary="Adds OAuth login",
                reason="Sessions are deprecated",
                files=["auth.ts", "login.tsx"],
                line_start=1,
                line_end=155,
                details="Redirects to the provider.",
                watch_out_for=["Token refresh runs in the background"],
                diagram="Login\n  ↓\nCallback",
            ),
            IntentGroup(id="misc", name="Misc", summary="Renames a helper", files=["util.ts"]),
        ],
        estimated_read_time_minutes=8,
    )


class TestFormatSummaryComment:
    """Tests for format_summary_comment()."""

    def test_header_and_navigation(self) -> None:
        body = format_summary_comment(_summary(), 42)

        assert body.startswith(f"<!-- {SUMMARY_COMMENT_MARKER} -->")
        assert "## 📋 PR Summary (2 changes, ~8 min)" in body
        assert "1. [**Authentication Flow**](#auth-flow) (lines 1-155)\n" in body
        assert "2. [**Misc**](#misc)\n" in body
        assert "   - Files: `auth.ts`, `login.tsx`" in body

    def test_detail_sections(self) -> None:
        body = format_summary_comment(_summary(), 42)

        assert '<details id="auth-flow">' in body
        assert "<summary><strong>🔐 Authentication Flow</strong></summary>" in body
        assert "#### Why\nSessions are deprecated" in body
        assert "```\nLogin\n  ↓\nCallback\n```" in body
        assert "- Token refresh runs in the background" in body

    def test_optional_sections_omitted(self) -> None:
        body = format_summary_comment(_summary(), 42)
        misc = body[body.index('<details id="misc">'):]
        assert "#### Flow" not in misc
        assert "Watch out for" not in misc
        assert f"{DEFAULT_GROUP_EMOJI} Misc" in misc


class TestEmojiForGroup:
    """The first matching keyword rule picks the emoji."""

    @pytest.mark.parametrize(
        "name, emoji",
        [
            ("Auth middleware", "🔐"),
            ("API endpoints", "🔌"),
            ("Button component", "🎨"),
            ("Test fixtures", "🧪"),
            ("Database migrations", "🗄️"),
            ("Fix race in cache", "⚡"),
            ("Bug fix", "🐛"),
            ("Docs", "📚"),
            ("Something else", DEFAULT_GROUP_EMOJI),
        ],
    )
    def test_emoji(self, name: str, emoji: str) -> None:
        assert emoji_for_group(name) == emoji


class TestSizeCommenter:
    """Tests for SizeCommenter posting through the client."""

    def test_post_size_check_upserts(self) -> None:
        github = MagicMock()
        github.upsert_comment.return_value = 77

        comment_id = SizeCommenter(github).post_size_check(42, _estimate(), _splits())

        assert comment_id == 77
        pr_number, marker, body = github.upsert_comment.call_args.args
        assert pr_number == 42
        assert marker == SIZE_COMMENT_MARKER
        assert "Authentication Flow" in body

    def test_post_split_closed_upserts(self) -> None:
        github = MagicMock()
        github.upsert_comment.return_value = 5

        comment_id = SizeCommenter(github).post_split_closed(
            12, [SplitSuggestion(order=1, number=101, title="Schema")]
        )

        assert comment_id == 5
        pr_number, marker, _body = github.upsert_comment.call_args.args
        assert pr_number == 12
        assert marker == SPLIT_COMMENT_MARKER

    def test_post_summary_upserts(self) -> None:
        github = MagicMock()
        github.upsert_comment.return_value = 9

        assert SizeCommenter(github).post_summary(42, _summary()) == 9
        pr_number, marker, body = github.upsert_comment.call_args.args
        assert (pr_number, marker) == (42, SUMMARY_COMMENT_MARKER)
        assert "Authentication Flow" in body
