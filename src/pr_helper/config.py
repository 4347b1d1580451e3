"""Configuration and environment management."""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

from .estimator import SizePolicy
from .weights import LANGUAGE_COMPLEXITY, parse_weight_overrides

load_dotenv()

DEFAULT_MODEL = "claude-sonnet-4-20250514"

MODES = {
    "auto": "Check every PR event (drafts and ready PRs).",
    "draft-only": "Only check draft PRs, before review is requested.",
}


@dataclass
class Config:
    """Application configuration loaded from environment."""

    # GitHub
    github_token: str = field(default_factory=lambda: os.getenv("GITHUB_TOKEN", ""))
    target_repo: str = field(default_factory=lambda: os.getenv("TARGET_REPO", ""))

    # Anthropic
    anthropic_api_key: str = field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", "")
    )
    model: str = field(default_factory=lambda: os.getenv("MODEL", DEFAULT_MODEL))

    mode: str = field(default_factory=lambda: os.getenv("MODE", "auto"))
    # Comments from this login are never answered
    bot_username: str = field(
        default_factory=lambda: os.getenv("BOT_USERNAME", "github-actions[bot]")
    )

    # Size policy
    max_lines: int = field(default_factory=lambda: int(os.getenv("MAX_LINES", "500")))
    max_read_time_minutes: int = field(
        default_factory=lambda: int(os.getenv("MAX_READ_TIME_MINUTES", "10"))
    )
    reading_speed: float = field(
        default_factory=lambda: float(os.getenv("READING_SPEED", "50"))
    )
    per_file_overhead: float = field(
        default_factory=lambda: float(os.getenv("PER_FILE_OVERHEAD", "0.5"))
    )
    complexity_weights: dict[str, float] = field(
        default_factory=lambda: _parse_weights()
    )

    @property
    def has_llm(self) -> bool:
        return bool(self.anthropic_api_key)

    def size_policy(self) -> SizePolicy:
        return SizePolicy(
            max_lines=self.max_lines,
            max_read_time_minutes=self.max_read_time_minutes,
            reading_speed=self.reading_speed,
            per_file_overhead=self.per_file_overhead,
            weights=dict(self.complexity_weights),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of issues."""
        issues = []
        if not self.github_token:
            issues.append("GITHUB_TOKEN is required for API access")
        if not self.target_repo or "/" not in self.target_repo:
            issues.append(
                f"TARGET_REPO must be in owner/name format, got '{self.target_repo}'"
            )
        if self.mode not in MODES:
            issues.append(
                f"Unknown MODE '{self.mode}'. Available: {', '.join(MODES)}"
            )
        if self.max_lines <= 0:
            issues.append(f"MAX_LINES must be positive, got {self.max_lines}")
        if self.max_read_time_minutes <= 0:
            issues.append(
                "MAX_READ_TIME_MINUTES must be positive, "
                f"got {self.max_read_time_minutes}"
            )
        if self.reading_speed <= 0:
            issues.append(f"READING_SPEED must be positive, got {self.reading_speed}")
        if self.per_file_overhead < 0:
            issues.append(
                f"PER_FILE_OVERHEAD cannot be negative, got {self.per_file_overhead}"
            )
        return issues


def _parse_weights() -> dict[str, float]:
    """Default weight table with COMPLEXITY_WEIGHTS overrides merged in."""
    weights = dict(LANGUAGE_COMPLEXITY)
    raw = os.getenv("COMPLEXITY_WEIGHTS", "")
    if raw.strip():
        weights.update(parse_weight_overrides(raw))
    return weights
