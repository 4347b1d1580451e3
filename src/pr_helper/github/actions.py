"""GitHub Actions support: event context parsing and workflow generation."""
from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import jinja2

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


@dataclass(frozen=True)
class ActionContext:
    """The parts of a GitHub Actions event that pr-helper acts on."""

    event_name: str
    action: str
    repo: str
    pr_number: int | None
    draft: bool = False
    comment_id: int | None = None

    @property
    def is_comment(self) -> bool:
        """True for a new PR comment the bot might answer."""
        return self.comment_id is not None and self.event_name in (
            "issue_comment",
            "pull_request_review_comment",
        )


def parse_action_context(env: Mapping[str, str] | None = None) -> ActionContext:
    """Build an ActionContext from the runner environment.

    Reads GITHUB_EVENT_NAME, GITHUB_REPOSITORY and the JSON payload at
    GITHUB_EVENT_PATH.

    Args:
        env: Environment mapping; defaults to ``os.environ``.

    Raises:
        ValueError: If GITHUB_EVENT_PATH or GITHUB_REPOSITORY is not set.
        FileNotFoundError: If the event payload file does not exist.
    """
    env = os.environ if env is None else env
    event_path = env.get("GITHUB_EVENT_PATH", "")
    repo = env.get("GITHUB_REPOSITORY", "")
    if not event_path or not repo:
        raise ValueError(
            "GITHUB_EVENT_PATH and GITHUB_REPOSITORY must be set "
            "(are you running inside GitHub Actions?)"
        )

    payload = json.loads(Path(event_path).read_text())
    pull_request = payload.get("pull_request") or {}
    issue = payload.get("issue") or {}
    # issue_comment also fires on plain issues, which carry no pull_request key
    issue_pr = issue.get("number") if "pull_request" in issue else None
    comment = payload.get("comment") or {}

    return ActionContext(
        event_name=env.get("GITHUB_EVENT_NAME", ""),
        action=payload.get("action", ""),
        repo=repo,
        pr_number=pull_request.get("number") or issue_pr,
        draft=bool(pull_request.get("draft", False)),
        comment_id=comment.get("id"),
    )


def _load_template() -> jinja2.Template:
    """Load the Actions workflow Jinja2 template."""
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(_TEMPLATE_DIR)),
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    return env.get_template("actions_workflow.yml.j2")


def generate_workflow(
    max_lines: int = 500,
    max_read_time_minutes: int = 10,
    mode: str = "auto",
    suggest_splits: bool = False,
    respond: bool = False,
    install_spec: str = ".",
) -> str:
    """Generate YAML content for a GitHub Actions workflow.

    Args:
        max_lines: Line threshold passed to the size check.
        max_read_time_minutes: Read-time threshold passed to the size check.
        mode: "auto" or "draft-only".
        suggest_splits: Ask the model for split suggestions on large PRs.
        respond: Also run on new PR comments so the bot can answer
            reviewer questions.
        install_spec: What the job passes to ``pip install``. The default
            installs pr-helper from the checked-out repository; pass a
            requirement such as ``pr-helper==0.1.0`` or a git URL to pin a
            release instead.

    Returns:
        The YAML workflow content as a string.
    """
    extra_flags = " --suggest-splits" if suggest_splits else ""
    return _load_template().render(
        max_lines=max_lines,
        max_read_time_minutes=max_read_time_minutes,
        mode=mode,
        extra_flags=extra_flags,
        respond=respond,
        install_spec=install_spec,
    )


def save_workflow(output_dir: str, **options) -> str:
    """Write the workflow to ``<output_dir>/.github/workflows/pr-helper.yml``.

    Args:
        output_dir: Root directory of the target repository.
        **options: Passed through to generate_workflow.

    Returns:
        The absolute path to the written workflow file.
    """
    content = generate_workflow(**options)
    workflow_path = Path(output_dir) / ".github" / "workflows" / "pr-helper.yml"
    workflow_path.parent.mkdir(parents=True, exist_ok=True)
    workflow_path.write_text(content)
    return str(workflow_path.resolve())
