"""Answers reviewer questions left as PR comments.

A reviewer comments "help", "why this change?", "what does this do?" and so
on, either on the conversation or on a line of the diff. The comment is
classified by keyword, and anything but a help request or an unrecognised
comment is answered by the language model with the PR, its intent summary
and the code around the comment as context.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from .github_client import CommentContext, GitHubClient, PRDetails

if TYPE_CHECKING:
    from .analyzer import PRSummary
    from .llm import LLMClient

MAX_FILE_PATCH_CHARS = 5_000
SHORT_QUESTION_CHARS = 50

logger = logging.getLogger(__name__)


class ReplyIntent(str, Enum):
    HELP = "help"
    EXPLAIN = "explain"
    WHY = "why"
    SUGGEST = "suggest"
    TESTS = "tests"
    UNKNOWN = "unknown"


def _mentions(*phrases: str) -> Callable[[str], bool]:
    return lambda text: any(p in text for p in phrases)


def _is_help(text: str) -> bool:
    return text in ("help", "?") or "what can you" in text


def _is_short_question(text: str) -> bool:
    return text.endswith("?") and len(text) < SHORT_QUESTION_CHARS


# Evaluated top to bottom against the lowercased, stripped comment; the
# first rule that matches decides. "why is this better?" is a WHY question.
INTENT_RULES: tuple[tuple[ReplyIntent, Callable[[str], bool]], ...] = (
    (ReplyIntent.HELP, _is_help),
    (ReplyIntent.EXPLAIN, _mentions("what does", "what is", "explain")),
    (ReplyIntent.WHY, _mentions("why", "reason", "purpose")),
    (ReplyIntent.SUGGEST, _mentions("suggest", "better", "alternative")),
    (ReplyIntent.TESTS, _mentions("test", "spec")),
    (ReplyIntent.EXPLAIN, _is_short_question),
)

_TRIGGER_WORDS = ("what", "why", "how", "explain", "suggest", "test")


def detect_intent(body: str) -> ReplyIntent:
    """Classify what a comment is asking for."""
    text = body.lower().strip()
    for intent, matches in INTENT_RULES:
        if matches(text):
            return intent
    return ReplyIntent.UNKNOWN


def should_respond(comment: CommentContext, bot_username: str) -> bool:
    """Decide whether a comment is addressed to the bot at all.

    The bot's own comments and empty comments are ignored. Anything that
    reads as a question, a help request, or mentions one of the trigger
    words gets an answer.
    """
    if comment.user == bot_username:
        return False
    text = comment.body.lower().strip()
    if not text:
        return False
    return (
        text.endswith("?")
        or _is_help(text)
        or any(word in text for word in _TRIGGER_WORDS)
    )


HELP_MESSAGE = """Hey! I'm here to help you review this PR. Here's what I can do:

| Command | What it does |
|---------|-------------|
| **"what does this do?"** | Explain the specific code |
| **"why this change?"** | Show intent and context |
| **"suggest better approach"** | Alternative implementations |
| **"show me tests"** | Find related test files |
| **"help"** | Show this message |

Just comment on any line and ask! 🦞"""

REPLY_SYSTEM_PROMPT = """You are a helpful code reviewer assistant. Your job is to explain code clearly and concisely.

Guidelines:
- Be direct and helpful
- Use code snippets and ASCII diagrams when helpful
- Reference line numbers when relevant
- Keep explanations focused and actionable
- Use markdown formatting
- Be conversational but professional
"""

_INSTRUCTIONS = {
    ReplyIntent.EXPLAIN: """Please explain what this code does. Be specific and reference the actual code.
Format:
1. Quick summary (1-2 sentences)
2. Step-by-step breakdown if complex
3. Why it matters in context of the PR""",
    ReplyIntent.WHY: """Explain WHY this change was made. Consider:
1. What problem does it solve?
2. What was the previous behavior (if apparent)?
3. How does it fit into the larger PR context?""",
    ReplyIntent.SUGGEST: """The user wants suggestions for improvement. Consider:
1. Are there better patterns or approaches?
2. Any potential issues or edge cases?
3. Performance or readability improvements?

Be constructive and specific. Show code examples.""",
    ReplyIntent.TESTS: """Help the user find or understand tests for this code. Consider:
1. Are there existing tests in the PR?
2. What test files might be related?
3. What should be tested here?""",
}


def _build_reply_prompt(
    context: CommentContext,
    pr: PRDetails,
    summary: "PRSummary | None",
    intent: ReplyIntent,
) -> str:
    sections = [f"# Context\n\n## PR #{pr.number}: {pr.title}\n{pr.body}"]
    if summary is not None:
        groups = "\n".join(f"- **{g.name}**: {g.summary}" for g in summary.groups)
        sections.append(f"## PR Summary\n{groups}")
    sections.append(f'## User\'s Question\n"{context.body}"')

    if context.path and context.diff_hunk:
        sections.append(
            f"## Code Location\nFile: `{context.path}`\n"
            f"Line: {context.line if context.line is not None else 'N/A'}\n\n"
            f"```diff\n{context.diff_hunk}\n```"
        )

    file = next((f for f in pr.files if f.filename == context.path), None)
    if file is not None and file.patch:
        sections.append(
            f"## Full File Diff\n```diff\n{file.patch[:MAX_FILE_PATCH_CHARS]}\n```"
        )

    sections.append(_INSTRUCTIONS[intent])
    return "\n\n".join(sections) + "\n"


async def handle_comment(
    context: CommentContext,
    pr: PRDetails,
    summary: "PRSummary | None",
    llm: "LLMClient",
) -> str:
    """Write the reply to a comment.

    Returns:
        The reply body, or an empty string when the comment asks for
        nothing the bot recognises.

    Raises:
        httpx.HTTPError: If the model request fails after retries.
    """
    intent = detect_intent(context.body)
    if intent == ReplyIntent.HELP:
        return HELP_MESSAGE
    if intent == ReplyIntent.UNKNOWN:
        return ""

    return await llm.complete(
        REPLY_SYSTEM_PROMPT,
        _build_reply_prompt(context, pr, summary, intent),
        temperature=0.3,
        max_tokens=1500,
    )


def process_comment(
    github: GitHubClient,
    pr_number: int,
    comment_id: int,
    llm: "LLMClient | None",
    bot_username: str,
    summary: "PRSummary | None" = None,
) -> int | None:
    """Answer one comment on a PR if it is addressed to the bot.

    Line comments are answered in their review thread, conversation
    comments with a new conversation comment. Help requests are answered
    without a model; other questions are skipped when ``llm`` is None.

    Returns:
        The id of the reply, or None if nothing was posted.

    Raises:
        httpx.HTTPError: If a GitHub or model request fails.
    """
    context = github.get_comment(pr_number, comment_id)
    if not should_respond(context, bot_username):
        logger.debug("Comment %d on #%d is not for us", comment_id, pr_number)
        return None

    intent = detect_intent(context.body)
    if intent == ReplyIntent.UNKNOWN:
        return None
    if intent != ReplyIntent.HELP and llm is None:
        logger.info("No model configured, not answering comment %d", comment_id)
        return None

    if intent == ReplyIntent.HELP:
        reply = HELP_MESSAGE
    else:
        pr = github.get_pull_request(pr_number)

        async def _run() -> str:
            async with llm:
                return await handle_comment(context, pr, summary, llm)

        reply = asyncio.run(_run())

    if not reply.strip():
        return None
    if context.is_review_comment and context.path and context.line:
        return github.reply_to_review_comment(pr_number, context.comment_id, reply)
    return github.post_comment(pr_number, reply)
