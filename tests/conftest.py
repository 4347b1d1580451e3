"""Shared pytest fixtures for pr-helper test suite."""

from __future__ import annotations

from typing import Any

import pytest

from pr_helper.estimator import SizePolicy
from pr_helper.github_client import FileChange, PRDetails


def _file(filename: str, changes: int, **overrides: Any) -> FileChange:
    """FileChange with additions == changes unless overridden."""
    fields: dict[str, Any] = {
        "filename": filename,
        "status": "modified",
        "additions": changes,
        "deletions": 0,
        "changes": changes,
    }
    fields.update(overrides)
    return FileChange(**fields)


@pytest.fixture()
def file_change() -> callable:
    """Factory fixture for FileChange; additions default to changes."""
    return _file


@pytest.fixture()
def policy() -> SizePolicy:
    """Reference policy: 500 lines, 10 minutes."""
    return SizePolicy(max_lines=500, max_read_time_minutes=10)


@pytest.fixture()
def sample_pr() -> callable:
    """Factory fixture that returns PRDetails objects with configurable fields."""

    def _factory(**overrides: Any) -> PRDetails:
        defaults: dict[str, Any] = {
            "number": 42,
            "title": "Add caching layer",
            "body": "Adds an in-memory cache in front of the user service.",
            "draft": True,
            "state": "open",
            "additions": 100,
            "deletions": 50,
            "changed_files": 2,
            "files": [
                _file("src/index.ts", 75, additions=50, deletions=25),
                _file("src/utils.ts", 75, status="added", additions=50, deletions=25),
            ],
            "labels": [],
            "author": "contributor123",
            "base_ref": "main",
            "head_ref": "feature/cache",
            "url": "https://github.com/owner/repo/pull/42",
        }
        defaults.update(overrides)
        return PRDetails(**defaults)

    return _factory


@pytest.fixture()
def mock_pr_detail() -> dict[str, Any]:
    """Mock GitHub API response for a single PR detail."""
    return {
        "number": 7,
        "title": "Add feature A",
        "body": "Implements feature A with tests.",
        "draft": False,
        "state": "open",
        "user": {"login": "alice"},
        "labels": [{"name": "enhancement"}, {"name": "size:xl"}],
        "additions": 50,
        "deletions": 5,
        "changed_files": 2,
        "base": {"ref": "main", "sha": "abc123"},
        "head": {"ref": "feature-a", "sha": "def456"},
        "html_url": "https://github.com/owner/repo/pull/7",
    }


@pytest.fixture()
def mock_pr_files() -> list[dict[str, Any]]:
    """Mock GitHub API response for PR files."""
    return [
        {
            "filename": "src/feature_a.py",
            "status": "added",
            "additions": 40,
            "deletions": 0,
            "changes": 40,
            "patch": "@@ -0,0 +1,40 @@\n+class FeatureA:\n+    pass",
        },
        {
            "filename": "tests/test_feature_a.py",
            "status": "renamed",
            "additions": 10,
            "deletions": 5,
            "changes": 15,
            "previous_filename": "tests/test_a.py",
        },
    ]
