"""pr-helper: PR size checks, size labels and split suggestions for GitHub."""

__version__ = "0.1.0"

# Core types and operations
from .github_client import FileChange, PRDetails
from .estimator import SizeEstimate, SizePolicy, estimate_size
from .labels import LabelDiff, order_splits, reconcile_size_label

__all__ = [
    "FileChange",
    "PRDetails",
    "SizeEstimate",
    "SizePolicy",
    "estimate_size",
    "LabelDiff",
    "order_splits",
    "reconcile_size_label",
    "__version__",
]
