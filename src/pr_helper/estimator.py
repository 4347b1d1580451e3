"""PR size and review-effort estimation.

Turns a PR's file list and line totals into a SizeEstimate: weighted line
count, estimated read time, a coarse cognitive-complexity rating and a
three-way recommendation (ok / warning / split-required).

Everything up to ``suggest_splits`` is pure and synchronous. Inputs are
assumed well formed; negative line counts are a caller error and are not
clamped.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING

from .github_client import FileChange, PRDetails
from .weights import LANGUAGE_COMPLEXITY, complexity_weight

if TYPE_CHECKING:
    from .llm import LLMClient


class CognitiveComplexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class Recommendation(str, Enum):
    OK = "ok"
    WARNING = "warning"
    SPLIT_REQUIRED = "split-required"


# (exclusive lower bound, points); first match wins
LINE_BUCKETS = ((800, 3), (500, 2), (200, 1))
FILE_COUNT_BUCKETS = ((20, 3), (10, 2), (5, 1))
WEIGHT_BUCKETS = ((1.4, 2), (1.1, 1))
AVG_LINES_BUCKETS = ((100, 2), (50, 1))

# (inclusive lower bound, rating); first match wins
COMPLEXITY_BANDS = (
    (7, CognitiveComplexity.VERY_HIGH),
    (5, CognitiveComplexity.HIGH),
    (3, CognitiveComplexity.MEDIUM),
)

SPLIT_REQUIRED_FACTOR = 1.5


@dataclass(frozen=True)
class SizePolicy:
    """Thresholds and tunables for size estimation."""

    max_lines: int = 500
    max_read_time_minutes: int = 10
    reading_speed: float = 50.0  # weighted lines a reviewer reads per minute
    per_file_overhead: float = 0.5  # minutes of context switching per file
    weights: Mapping[str, float] = field(
        default_factory=lambda: dict(LANGUAGE_COMPLEXITY), hash=False
    )

    def __post_init__(self) -> None:
        # Read-only view over a private copy; callers keep their own dict
        object.__setattr__(self, "weights", MappingProxyType(dict(self.weights)))


@dataclass(frozen=True)
class SizeEstimate:
    """Review-effort estimate for a single PR."""

    total_lines: int
    additions: int
    deletions: int
    file_count: int
    estimated_read_time_minutes: int
    cognitive_complexity: CognitiveComplexity
    is_too_large: bool
    recommendation: Recommendation

    def to_dict(self) -> dict:
        return {
            "total_lines": self.total_lines,
            "additions": self.additions,
            "deletions": self.deletions,
            "file_count": self.file_count,
            "estimated_read_time_minutes": self.estimated_read_time_minutes,
            "cognitive_complexity": self.cognitive_complexity.value,
            "is_too_large": self.is_too_large,
            "recommendation": self.recommendation.value,
        }


@dataclass
class SplitPlan:
    """One proposed sub-PR returned by the language model."""

    name: str
    description: str
    files: list[str]
    line_start: int | None = None
    line_end: int | None = None
    estimated_read_time_minutes: int = 0
    bullet_points: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "SplitPlan":
        line_range = data.get("lineRange") or data.get("line_range") or {}
        read_time = data.get(
            "estimatedReadTimeMinutes", data.get("estimated_read_time_minutes", 0)
        )
        return cls(
            name=str(data.get("name", "Unnamed split")),
            description=str(data.get("description", "")),
            files=[str(f) for f in data.get("files", [])],
            line_start=line_range.get("start"),
            line_end=line_range.get("end"),
            estimated_read_time_minutes=int(read_time or 0),
            bullet_points=[
                str(b)
                for b in data.get("bulletPoints", data.get("bullet_points", []))
            ],
        )


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _bucket(value: float, buckets: Sequence[tuple[float, int]]) -> int:
    for threshold, points in buckets:
        if value > threshold:
            return points
    return 0


def calculate_weighted_lines(
    files: Sequence[FileChange],
    weights: Mapping[str, float] | None = None,
) -> int:
    """Sum of per-file ``changes`` scaled by language weight, rounded."""
    total = sum(f.changes * complexity_weight(f.filename, weights) for f in files)
    return round_half_up(total)


def estimate_read_time(files: Sequence[FileChange], policy: SizePolicy) -> int:
    """Estimate review time in whole minutes.

    Reading time for the weighted lines plus a fixed context-switch cost for
    every file touched.
    """
    weighted = calculate_weighted_lines(files, policy.weights)
    reading = round_half_up(weighted / policy.reading_speed)
    switching = round_half_up(len(files) * policy.per_file_overhead)
    return reading + switching


def complexity_score(
    files: Sequence[FileChange],
    total_lines: int,
    weights: Mapping[str, float] | None = None,
) -> int:
    """Accumulate the bucketed cognitive-load score.

    The score is uncapped; banding in determine_cognitive_complexity is
    open-ended at the top.
    """
    file_count = len(files)
    avg_lines_per_file = total_lines / max(file_count, 1)
    max_weight = max(
        (complexity_weight(f.filename, weights) for f in files), default=0.0
    )

    return (
        _bucket(total_lines, LINE_BUCKETS)
        + _bucket(file_count, FILE_COUNT_BUCKETS)
        + _bucket(max_weight, WEIGHT_BUCKETS)
        + _bucket(avg_lines_per_file, AVG_LINES_BUCKETS)
    )


def rate_complexity(score: int) -> CognitiveComplexity:
    """Map a complexity score onto its rating band."""
    for minimum, rating in COMPLEXITY_BANDS:
        if score >= minimum:
            return rating
    return CognitiveComplexity.LOW


def determine_cognitive_complexity(
    files: Sequence[FileChange],
    total_lines: int,
    weights: Mapping[str, float] | None = None,
) -> CognitiveComplexity:
    return rate_complexity(complexity_score(files, total_lines, weights))


def classify_recommendation(
    total_lines: int,
    read_time: int,
    policy: SizePolicy,
) -> tuple[bool, Recommendation]:
    """Decide whether a PR is too large and what to recommend.

    Returns:
        Tuple of (is_too_large, recommendation). Stateless: the same inputs
        always produce the same answer.
    """
    is_too_large = (
        total_lines > policy.max_lines or read_time > policy.max_read_time_minutes
    )
    if not is_too_large:
        return False, Recommendation.OK
    if total_lines > policy.max_lines * SPLIT_REQUIRED_FACTOR:
        return True, Recommendation.SPLIT_REQUIRED
    return True, Recommendation.WARNING


def estimate_size(
    files: Sequence[FileChange],
    total_additions: int,
    total_deletions: int,
    policy: SizePolicy | None = None,
) -> SizeEstimate:
    """Estimate PR size and review complexity.

    ``total_lines`` comes from the PR-level totals, not from the file list:
    the file list may be truncated or filtered, the totals are authoritative.

    Args:
        files: Changed files (only filename and changes are used)
        total_additions: PR-level additions
        total_deletions: PR-level deletions
        policy: Thresholds and tunables; defaults to SizePolicy()

    Returns:
        SizeEstimate for the PR
    """
    policy = policy or SizePolicy()
    total_lines = total_additions + total_deletions
    read_time = estimate_read_time(files, policy)
    complexity = determine_cognitive_complexity(files, total_lines, policy.weights)
    is_too_large, recommendation = classify_recommendation(
        total_lines, read_time, policy
    )

    return SizeEstimate(
        total_lines=total_lines,
        additions=total_additions,
        deletions=total_deletions,
        file_count=len(files),
        estimated_read_time_minutes=read_time,
        cognitive_complexity=complexity,
        is_too_large=is_too_large,
        recommendation=recommendation,
    )


def estimate_pr(pr: PRDetails, policy: SizePolicy | None = None) -> SizeEstimate:
    return estimate_size(pr.files, pr.additions, pr.deletions, policy)


SPLIT_SYSTEM_PROMPT = """You are a senior engineer helping split a large PR into smaller, reviewable chunks.

Your job is to analyze the PR diff and suggest logical splits based on:
1. INTENT - group changes by what they accomplish (auth, caching, UI, etc.)
2. DEPENDENCIES - ensure each split can be reviewed independently
3. SIZE - aim for 150-300 lines per split
4. REVIEWABILITY - each split should tell a coherent story

Respond ONLY with a JSON object (no markdown fences):
{
    "splits": [
        {
            "name": "Authentication Flow",
            "description": "Implements OAuth login with Google",
            "files": ["auth.ts", "login.tsx"],
            "lineRange": {"start": 1, "end": 200},
            "estimatedReadTimeMinutes": 4,
            "bulletPoints": ["OAuth implementation", "Token refresh logic"]
        }
    ]
}
"""

MAX_PATCH_CHARS = 2_000
MAX_PATCHES_CHARS = 15_000


def _build_split_prompt(pr: PRDetails, estimate: SizeEstimate) -> str:
    """Build user prompt for split suggestion."""
    file_list = "\n".join(
        f"- {f.filename} (+{f.additions}/-{f.deletions})" for f in pr.files
    )
    patches = "\n\n".join(
        f"### {f.filename}\n```diff\n{f.patch[:MAX_PATCH_CHARS]}\n```"
        for f in pr.files
        if f.patch
    )

    return f"""# PR #{pr.number}: {pr.title}

## Stats
- Total lines: {estimate.total_lines}
- Files: {estimate.file_count}
- Estimated read time: {estimate.estimated_read_time_minutes} min

## PR Description
{pr.body or 'No description provided'}

## Files Changed
{file_list}

## Diff Samples (truncated)
{patches[:MAX_PATCHES_CHARS]}

---

Suggest how to split this PR into 2-5 smaller PRs. Each split needs a clear
name and purpose, the files that belong to it, its line range and read time,
and 2-4 bullet points describing what's in it.
"""


async def suggest_splits(
    pr: PRDetails,
    estimate: SizeEstimate,
    llm: "LLMClient",
) -> list[SplitPlan]:
    """Ask the language model how to break a large PR apart.

    The estimate is only used as prompt context; nothing in the estimate
    depends on the answer.

    Raises:
        ValueError: If the model response is not a JSON object with a
            ``splits`` list.
        httpx.HTTPError: If the model request fails after retries.
    """
    data = await llm.complete_json(
        SPLIT_SYSTEM_PROMPT,
        _build_split_prompt(pr, estimate),
        max_tokens=2048,
    )
    splits = data.get("splits") if isinstance(data, dict) else None
    if not isinstance(splits, list):
        raise ValueError("Model response did not contain a 'splits' list")
    return [SplitPlan.from_dict(s) for s in splits if isinstance(s, dict)]
