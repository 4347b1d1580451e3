"""GitHub integration: App auth, webhooks, Actions support and PR comments."""
from __future__ import annotations

from .app import GitHubApp
from .webhook import PREvent, create_app, verify_signature
from .commenter import SizeCommenter, format_size_comment, format_split_closed_comment
from .actions import ActionContext, generate_workflow, parse_action_context, save_workflow

__all__ = [
    "GitHubApp",
    "PREvent",
    "create_app",
    "verify_signature",
    "SizeCommenter",
    "format_size_comment",
    "format_split_closed_comment",
    "ActionContext",
    "generate_workflow",
    "parse_action_context",
    "save_workflow",
]
