"""Intent-grouped PR summaries written by the language model."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .github_client import PRDetails

if TYPE_CHECKING:
    from .llm import LLMClient

MAX_DIFF_CHARS = 30_000

_ID_UNSAFE = re.compile(r"[^a-z0-9]+")


def _slug(name: str) -> str:
    return _ID_UNSAFE.sub("-", name.lower()).strip("-") or "group"


@dataclass(frozen=True)
class IntentGroup:
    """Changes in a PR that serve one purpose, possibly across many files."""

    id: str
    name: str
    summary: str
    reason: str = ""
    files: list[str] = field(default_factory=list)
    line_start: int | None = None
    line_end: int | None = None
    details: str = ""
    watch_out_for: list[str] = field(default_factory=list)
    diagram: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "IntentGroup":
        name = str(data.get("name", "Other changes"))
        line_range = data.get("lineRange") or data.get("line_range") or {}
        return cls(
            id=_slug(str(data.get("id") or name)),
            name=name,
            summary=str(data.get("summary", "")),
            reason=str(data.get("reason", "")),
            files=[str(f) for f in data.get("files", [])],
            line_start=line_range.get("start"),
            line_end=line_range.get("end"),
            details=str(data.get("details", "")),
            watch_out_for=[
                str(w) for w in data.get("watchOutFor", data.get("watch_out_for", []))
            ],
            diagram=data.get("diagram") or None,
        )


@dataclass
class PRSummary:
    """A reviewer's map of a PR: its changes grouped by intent."""

    groups: list[IntentGroup]
    estimated_read_time_minutes: int = 0

    @property
    def total_changes(self) -> int:
        return len(self.groups)

    def to_dict(self) -> dict:
        return {
            "total_changes": self.total_changes,
            "estimated_read_time_minutes": self.estimated_read_time_minutes,
            "groups": [g.name for g in self.groups],
        }


ANALYZE_SYSTEM_PROMPT = """You are a senior code reviewer creating a navigable summary of a PR.

Your job is to:
1. Group changes by INTENT (what they accomplish, not file type)
2. Create clear, scannable summaries
3. Highlight things reviewers should watch out for
4. Draw small ASCII flow diagrams where they help

Each group should be understandable on its own and help the reviewer find
their way around the PR.

Respond ONLY with a JSON object (no markdown fences):
{
    "groups": [
        {
            "id": "auth-flow",
            "name": "Authentication Flow",
            "summary": "Adds OAuth login with Google",
            "reason": "Replace deprecated session-based auth",
            "files": ["auth.ts", "login.tsx"],
            "lineRange": {"start": 1, "end": 155},
            "details": "What this code does, step by step",
            "watchOutFor": ["Token refresh runs in the background"],
            "diagram": "User clicks Login\\n  ↓\\nOAuth redirect"
        }
    ],
    "estimatedReadTimeMinutes": 8
}
"""


def _build_analyze_prompt(pr: PRDetails) -> str:
    """Build user prompt for the intent breakdown."""
    file_list = "\n".join(
        f"- {f.filename} (+{f.additions}/-{f.deletions}): {f.status}" for f in pr.files
    )
    patches = "\n\n".join(
        f"### {f.filename}\n```diff\n{f.patch}\n```" for f in pr.files if f.patch
    )

    return f"""# PR #{pr.number}: {pr.title}

## PR Description
{pr.body or 'No description provided'}

## Files Changed ({len(pr.files)} files, +{pr.additions}/-{pr.deletions})
{file_list}

## Full Diff
{patches[:MAX_DIFF_CHARS]}

---

Group the changes in this PR by their INTENT (not by file type). Give each
group a lowercase-hyphenated id, a clear name, a one-sentence summary, the
reason for the change, its files, and specific things to watch out for.

- Aim for 2-5 groups (don't over-fragment)
- If a group would be >200 lines, consider splitting it
- Make summaries actionable ("Adds X" not "Changes to X")
- Watch-outs should be specific, not generic
"""


async def analyze_pr(pr: PRDetails, llm: "LLMClient") -> PRSummary:
    """Ask the language model to group a PR's changes by intent.

    Raises:
        ValueError: If the model response is not a JSON object with a
            ``groups`` list.
        httpx.HTTPError: If the model request fails after retries.
    """
    data = await llm.complete_json(
        ANALYZE_SYSTEM_PROMPT,
        _build_analyze_prompt(pr),
        max_tokens=4096,
    )
    groups = data.get("groups") if isinstance(data, dict) else None
    if not isinstance(groups, list):
        raise ValueError("Model response did not contain a 'groups' list")

    read_time = data.get(
        "estimatedReadTimeMinutes", data.get("estimated_read_time_minutes", 0)
    )
    return PRSummary(
        groups=[IntentGroup.from_dict(g) for g in groups if isinstance(g, dict)],
        estimated_read_time_minutes=int(read_time or 0),
    )
