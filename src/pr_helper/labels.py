"""Size labels, split-tracking labels and split review ordering.

Size labels are mutually exclusive: after every run a PR must carry exactly
one ``size:*`` label matching its current line count. Reconciliation is
expressed as a pure LabelDiff so the network side can be swapped or mocked.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

SIZE_PREFIX = "size:"
SPLIT_FROM_PREFIX = "split-from:"
REVIEW_ORDER_PREFIX = "review-order:"
NEEDS_SPLIT_LABEL = "needs-split"

# (inclusive upper bound, suffix); anything above the last bound is xl
SIZE_THRESHOLDS = (
    (100, "xs"),
    (250, "s"),
    (500, "m"),
    (800, "l"),
)
SIZE_LABELS = tuple(f"{SIZE_PREFIX}{s}" for s in ("xs", "s", "m", "l", "xl"))

LABEL_DEFINITIONS: list[dict[str, str]] = [
    {"name": "size:xs", "color": "00ff00", "description": "Extra small PR (≤100 lines)"},
    {"name": "size:s", "color": "88ff00", "description": "Small PR (101-250 lines)"},
    {"name": "size:m", "color": "ffff00", "description": "Medium PR (251-500 lines)"},
    {"name": "size:l", "color": "ff8800", "description": "Large PR (501-800 lines)"},
    {"name": "size:xl", "color": "ff0000", "description": "Extra large PR (>800 lines)"},
    {
        "name": NEEDS_SPLIT_LABEL,
        "color": "ff0000",
        "description": "PR is too large and needs to be split",
    },
]


@dataclass(frozen=True)
class LabelDiff:
    """Labels to remove, then labels to add."""

    to_remove: frozenset[str]
    to_add: frozenset[str]

    def apply(self, labels: Iterable[str]) -> set[str]:
        """Return the label set that results from applying this diff."""
        return (set(labels) - self.to_remove) | self.to_add


@dataclass(frozen=True)
class SplitSuggestion:
    """A sub-PR created from a split, with its place in the review order."""

    order: int
    number: int
    title: str


@dataclass(frozen=True)
class OrderedSplit:
    order: int
    number: int
    title: str
    position: str  # "first", "last" or "#<order>"


def get_size_label(lines: int) -> str:
    """Map a total changed-line count to its size label."""
    for upper, suffix in SIZE_THRESHOLDS:
        if lines <= upper:
            return f"{SIZE_PREFIX}{suffix}"
    return f"{SIZE_PREFIX}xl"


def reconcile_size_label(current_labels: Iterable[str], total_lines: int) -> LabelDiff:
    """Compute the label changes that leave exactly one correct size label.

    Every size label present is removed, including the correct one, and the
    correct one is re-added. This converges from any starting state
    (zero, one, or several size labels left by racing runs) and is safe to
    repeat.

    Args:
        current_labels: Labels currently on the PR
        total_lines: PR additions + deletions

    Returns:
        LabelDiff to apply, removals first
    """
    present = set(current_labels)
    return LabelDiff(
        to_remove=frozenset(label for label in SIZE_LABELS if label in present),
        to_add=frozenset({get_size_label(total_lines)}),
    )


def minimal_label_diff(current_labels: Iterable[str], total_lines: int) -> LabelDiff:
    """Like reconcile_size_label, but skips calls that would change nothing.

    Converges to the same label set while avoiding redundant API calls for
    rate-limited callers.
    """
    present = set(current_labels)
    selected = get_size_label(total_lines)
    return LabelDiff(
        to_remove=frozenset(
            label for label in SIZE_LABELS if label in present and label != selected
        ),
        to_add=frozenset() if selected in present else frozenset({selected}),
    )


def needs_split_diff(current_labels: Iterable[str], split_required: bool) -> LabelDiff:
    """Add or drop the needs-split marker to match the recommendation."""
    present = set(current_labels)
    if split_required:
        return LabelDiff(frozenset(), frozenset({NEEDS_SPLIT_LABEL}))
    if NEEDS_SPLIT_LABEL in present:
        return LabelDiff(frozenset({NEEDS_SPLIT_LABEL}), frozenset())
    return LabelDiff(frozenset(), frozenset())


def split_labels(original_pr: int, order: int, total: int) -> list[str]:
    """Tracking labels for one PR carved out of ``original_pr``."""
    return [
        f"{SPLIT_FROM_PREFIX}#{original_pr}",
        f"{REVIEW_ORDER_PREFIX}{order}/{total}",
    ]


def _position(order: int, total: int) -> str:
    if order == 1:
        return "first"
    if order == total:
        return "last"
    return f"#{order}"


def order_splits(splits: Sequence[SplitSuggestion]) -> list[OrderedSplit]:
    """Sort splits into review order and mark first/last.

    The sort is stable and does not touch the input. ``order`` values are
    expected to be unique; with duplicates the relative order of the tied
    entries is unspecified.
    """
    total = len(splits)
    return [
        OrderedSplit(
            order=s.order,
            number=s.number,
            title=s.title,
            position=_position(s.order, total),
        )
        for s in sorted(splits, key=lambda s: s.order)
    ]


def parse_split_spec(raw: str) -> SplitSuggestion:
    """Parse ``ORDER:NUMBER:TITLE`` (NUMBER may carry a leading ``#``).

    Raises:
        ValueError: If the text is not in that form.
    """
    parts = raw.split(":", 2)
    if len(parts) != 3:
        raise ValueError(f"Invalid split '{raw}'. Expected ORDER:NUMBER:TITLE")
    order, number, title = parts
    try:
        return SplitSuggestion(
            order=int(order),
            number=int(number.strip().lstrip("#")),
            title=title.strip(),
        )
    except ValueError:
        raise ValueError(
            f"Invalid split '{raw}': ORDER and NUMBER must be integers"
        ) from None
