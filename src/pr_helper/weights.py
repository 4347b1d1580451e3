"""Per-language reading difficulty weights.

A weight scales a file's changed lines before read-time estimation: 1.0 is
"ordinary application code", lower values are easy to skim (docs, data),
higher values need slower reading (systems languages, dense syntax).
"""

from __future__ import annotations

from collections.abc import Mapping

DEFAULT_COMPLEXITY = 1.0

LANGUAGE_COMPLEXITY: dict[str, float] = {
    # Systems / dense
    "rs": 1.5,
    "c": 1.4,
    "h": 1.3,
    "cpp": 1.5,
    "cc": 1.5,
    "hpp": 1.4,
    "hs": 1.5,
    "scala": 1.4,
    "go": 1.2,
    "swift": 1.2,
    "kt": 1.2,
    "java": 1.2,
    "cs": 1.2,
    "sql": 1.2,
    # Application code
    "ts": 1.0,
    "tsx": 1.1,
    "js": 1.0,
    "jsx": 1.1,
    "py": 1.0,
    "rb": 1.0,
    "php": 1.0,
    "sh": 1.1,
    # Markup / styles
    "html": 0.7,
    "css": 0.6,
    "scss": 0.7,
    "vue": 1.0,
    "svelte": 1.0,
    # Config / data / docs
    "json": 0.5,
    "yaml": 0.5,
    "yml": 0.5,
    "toml": 0.5,
    "xml": 0.6,
    "md": 0.3,
    "mdx": 0.4,
    "txt": 0.3,
    "lock": 0.1,
}


def get_extension(filename: str) -> str:
    """Return the lowercase text after the last dot, or "" if there is none."""
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot else ""


def complexity_weight(
    filename: str,
    weights: Mapping[str, float] | None = None,
) -> float:
    """Look up the reading weight for a file.

    Args:
        filename: Path or bare name of the changed file.
        weights: Extension table to use. Defaults to LANGUAGE_COMPLEXITY.

    Returns:
        The table weight, or DEFAULT_COMPLEXITY for unknown/missing extensions.
    """
    table = LANGUAGE_COMPLEXITY if weights is None else weights
    return table.get(get_extension(filename), DEFAULT_COMPLEXITY)


def parse_weight_overrides(raw: str) -> dict[str, float]:
    """Parse ``"rs=1.6,md=0.2"`` style overrides.

    Raises:
        ValueError: If an entry is not ``ext=number``.
    """
    overrides: dict[str, float] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        ext, sep, value = entry.partition("=")
        if not sep or not ext.strip():
            raise ValueError(
                f"Invalid complexity weight '{entry}'. Expected ext=weight"
            )
        try:
            overrides[ext.strip().lstrip(".").lower()] = float(value)
        except ValueError:
            raise ValueError(
                f"Invalid complexity weight '{entry}': '{value}' is not a number"
            ) from None
    return overrides
