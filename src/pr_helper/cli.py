"""CLI entry point for pr-helper.

Commands:
- size: run the size check on one PR (estimate, label, comment)
- estimate: offline estimate from line counts, no API calls
- summarize: post an intent-grouped summary of a PR (needs ANTHROPIC_API_KEY)
- action: run inside GitHub Actions from the triggering event; PR events get
  a size check, new PR comments get an answer when they ask the bot something
- serve: run the webhook server for GitHub App installs
- init-labels / announce-split / workflow / check: repository housekeeping
"""

import json
import sys

import click
import httpx
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Config
from .estimator import Recommendation, SizeEstimate, estimate_size
from .github.actions import parse_action_context, save_workflow
from .github.commenter import SizeCommenter
from .github_client import FileChange, GitHubClient
from .labels import LABEL_DEFINITIONS, get_size_label, parse_split_spec, split_labels
from .llm import LLMClient
from .logging_setup import setup_logging
from .pipeline import SizeCheckResult, run_size_check, run_summary
from .responder import process_comment

console = Console()

_STATUS_STYLE = {
    Recommendation.OK: "green",
    Recommendation.WARNING: "yellow",
    Recommendation.SPLIT_REQUIRED: "red",
}


def _load_config(repo: str | None = None) -> Config:
    """Load config, apply overrides and exit with the issues if invalid."""
    config = Config()
    if repo:
        config.target_repo = repo

    issues = config.validate()
    if issues:
        for issue in issues:
            console.print(f"[red]✗ {issue}")
        console.print("\n[yellow]Copy .env.example to .env and fill in your settings.")
        sys.exit(1)
    return config


def _llm_for(config: Config, requested: bool) -> LLMClient | None:
    if not requested:
        return None
    if not config.has_llm:
        console.print("[yellow]ANTHROPIC_API_KEY not set — skipping split suggestions")
        return None
    return LLMClient(config)


def _print_estimate(estimate: SizeEstimate, title: str) -> None:
    style = _STATUS_STYLE[estimate.recommendation]
    table = Table(title=title, border_style="cyan", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total lines", str(estimate.total_lines))
    table.add_row("Additions", f"+{estimate.additions}")
    table.add_row("Deletions", f"-{estimate.deletions}")
    table.add_row("Files", str(estimate.file_count))
    table.add_row("Est. read time", f"~{estimate.estimated_read_time_minutes} min")
    table.add_row("Cognitive load", estimate.cognitive_complexity.value)
    table.add_row("Size label", get_size_label(estimate.total_lines))
    table.add_row("Recommendation", f"[{style}]{estimate.recommendation.value}")
    console.print(table)


def _print_result(result: SizeCheckResult) -> None:
    _print_estimate(result.estimate, f"#{result.pr.number}: {result.pr.title}")
    if result.label_diff is not None:
        console.print(f"[green]✓ Labels: +{', '.join(sorted(result.label_diff.to_add))}")
    for i, split in enumerate(result.splits, 1):
        console.print(f"  [blue]{i}. {split.name}[/blue] — {', '.join(split.files)}")
    if result.comment_id is not None:
        console.print(f"[green]✓ Size comment {result.comment_id} up to date")


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity (stderr).",
)
def cli(log_level):
    """🦞 pr-helper — PR size checks, size labels and split suggestions."""
    setup_logging(log_level)


@cli.command()
@click.argument("pr_number", type=int)
@click.option("--repo", default=None, help="Repository (owner/name). Default: from .env")
@click.option("--no-comment", is_flag=True, help="Do not post the size comment")
@click.option("--no-label", is_flag=True, help="Do not touch PR labels")
@click.option(
    "--suggest-splits",
    is_flag=True,
    help="Ask the model for split suggestions when the PR is too large",
)
@click.option("--dry-run", is_flag=True, help="Estimate only, change nothing on GitHub")
@click.option("--json-output", is_flag=True, help="Print the result as JSON")
def size(pr_number, repo, no_comment, no_label, suggest_splits, dry_run, json_output):
    """Check the size of a pull request."""
    config = _load_config(repo)
    llm = None if dry_run else _llm_for(config, suggest_splits)

    try:
        with GitHubClient(config.github_token, config.target_repo) as github:
            result = run_size_check(
                github,
                pr_number,
                config.size_policy(),
                llm=llm,
                comment=not (no_comment or dry_run),
                label=not (no_label or dry_run),
            )
    except httpx.HTTPError as e:
        console.print(f"[red]✗ GitHub request failed: {e}")
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)


def _parse_file_option(raw: str) -> FileChange:
    name, sep, changes = raw.rpartition(":")
    if not sep or not name:
        raise click.BadParameter(f"'{raw}' is not NAME:CHANGES", param_hint="--file")
    try:
        count = int(changes)
    except ValueError:
        raise click.BadParameter(
            f"'{changes}' is not an integer", param_hint="--file"
        ) from None
    return FileChange(filename=name, changes=count, additions=count)


@cli.command()
@click.option("--additions", type=int, required=True, help="PR-level additions")
@click.option("--deletions", type=int, default=0, help="PR-level deletions")
@click.option(
    "--file",
    "files",
    multiple=True,
    help="Changed file as NAME:CHANGES (repeatable)",
)
@click.option("--max-lines", type=int, default=None, help="Override MAX_LINES")
@click.option("--max-read-time", type=int, default=None, help="Override MAX_READ_TIME_MINUTES")
def estimate(additions, deletions, files, max_lines, max_read_time):
    """Estimate review effort offline, without calling any API."""
    config = Config()
    if max_lines is not None:
        config.max_lines = max_lines
    if max_read_time is not None:
        config.max_read_time_minutes = max_read_time

    changes = [_parse_file_option(f) for f in files]
    result = estimate_size(changes, additions, deletions, config.size_policy())
    _print_estimate(result, "Size estimate")


@cli.command()
@click.argument("pr_number", type=int)
@click.option("--repo", default=None, help="Repository (owner/name). Default: from .env")
@click.option("--no-comment", is_flag=True, help="Print the summary without posting it")
def summarize(pr_number, repo, no_comment):
    """Group a PR's changes by intent and post a navigable summary."""
    config = _load_config(repo)
    if not config.has_llm:
        console.print("[red]✗ ANTHROPIC_API_KEY is required for summaries")
        sys.exit(1)

    try:
        with GitHubClient(config.github_token, config.target_repo) as github:
            summary, comment_id = run_summary(
                github, pr_number, LLMClient(config), comment=not no_comment
            )
    except httpx.HTTPError as e:
        console.print(f"[red]✗ Request failed: {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[red]✗ Could not read the model's summary: {e}")
        sys.exit(1)

    table = Table(
        title=f"#{pr_number}: {summary.total_changes} changes, ~{summary.estimated_read_time_minutes} min",
        border_style="cyan",
    )
    table.add_column("Change", style="bold")
    table.add_column("Summary")
    table.add_column("Files", justify="right")
    for group in summary.groups:
        table.add_row(group.name, group.summary, str(len(group.files)))
    console.print(table)
    if comment_id is not None:
        console.print(f"[green]✓ Summary comment {comment_id} up to date")


def _answer_comment(context) -> None:
    config = _load_config(context.repo)
    llm = LLMClient(config) if config.has_llm else None
    try:
        with GitHubClient(config.github_token, config.target_repo) as github:
            reply_id = process_comment(
                github,
                context.pr_number,
                context.comment_id,
                llm,
                config.bot_username,
            )
    except httpx.HTTPError as e:
        console.print(f"[red]✗ Reply failed: {e}")
        sys.exit(1)

    if reply_id is None:
        console.print(f"[yellow]Comment {context.comment_id} needs no answer")
    else:
        console.print(f"[green]✓ Replied to comment {context.comment_id} ({reply_id})")


@cli.command()
@click.option("--suggest-splits", is_flag=True, help="Ask the model for split suggestions")
def action(suggest_splits):
    """Handle the event that triggered this GitHub Actions job."""
    try:
        context = parse_action_context()
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]✗ {e}")
        sys.exit(1)

    if context.pr_number is None:
        console.print(f"[yellow]No pull request in '{context.event_name}' event — nothing to do")
        return

    if context.is_comment:
        _answer_comment(context)
        return

    config = _load_config(context.repo)
    if config.mode == "draft-only" and not context.draft:
        console.print(f"[yellow]#{context.pr_number} is not a draft — skipping (MODE=draft-only)")
        return

    try:
        with GitHubClient(config.github_token, config.target_repo) as github:
            result = run_size_check(
                github,
                context.pr_number,
                config.size_policy(),
                llm=_llm_for(config, suggest_splits),
            )
    except httpx.HTTPError as e:
        console.print(f"[red]✗ GitHub request failed: {e}")
        sys.exit(1)
    _print_result(result)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.option("--allowed-repo", "allowed_repos", multiple=True, help="Only accept events from these repos")
@click.option("--suggest-splits", is_flag=True, help="Ask the model for split suggestions")
def serve(host, port, allowed_repos, suggest_splits):
    """Run the webhook server for a GitHub App installation."""
    import uvicorn

    from .github.app import GitHubApp
    from .github.webhook import create_app
    from .pipeline import CommentReplyHandler, SizeCheckHandler

    config = Config()
    github_app = GitHubApp()
    issues = github_app.validate()
    if issues:
        for issue in issues:
            console.print(f"[red]✗ {issue}")
        sys.exit(1)

    handler = SizeCheckHandler(github_app, config, suggest_splits=suggest_splits)
    app = create_app(
        github_app,
        handler=handler,
        allowed_repos=list(allowed_repos) or None,
        comment_handler=CommentReplyHandler(github_app, config),
    )
    console.print(Panel(f"[bold cyan]🦞 pr-helper webhook[/bold cyan]\nListening on {host}:{port}", border_style="cyan"))
    uvicorn.run(app, host=host, port=port)


@cli.command("init-labels")
@click.option("--repo", default=None, help="Repository (owner/name). Default: from .env")
def init_labels(repo):
    """Create the size and needs-split labels if they are missing."""
    config = _load_config(repo)
    with GitHubClient(config.github_token, config.target_repo) as github:
        created = github.ensure_labels(LABEL_DEFINITIONS)

    if created:
        for name in created:
            console.print(f"[green]✓ Created label {name}")
    else:
        console.print("[green]✓ All labels already exist")


@cli.command("announce-split")
@click.argument("original_pr", type=int)
@click.option(
    "--split",
    "splits",
    multiple=True,
    required=True,
    help="Split PR as ORDER:NUMBER:TITLE (repeatable)",
)
@click.option("--repo", default=None, help="Repository (owner/name). Default: from .env")
@click.option(
    "--label-splits/--no-label-splits",
    default=True,
    help="Add split-from and review-order labels to each split PR.",
)
def announce_split(original_pr, splits, repo, label_splits):
    """Comment on ORIGINAL_PR with the PRs it was split into, in review order."""
    try:
        suggestions = [parse_split_spec(s) for s in splits]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--split") from None

    config = _load_config(repo)
    with GitHubClient(config.github_token, config.target_repo) as github:
        comment_id = SizeCommenter(github).post_split_closed(original_pr, suggestions)
        if label_splits:
            for s in suggestions:
                github.add_labels(s.number, split_labels(original_pr, s.order, len(suggestions)))

    console.print(f"[green]✓ Split comment {comment_id} posted on #{original_pr}")


@cli.command()
@click.option("--output-dir", default=".", help="Repository root to write into")
@click.option("--suggest-splits", is_flag=True, help="Enable split suggestions in the workflow")
@click.option("--respond", is_flag=True, help="Also answer reviewer questions left as PR comments")
@click.option(
    "--install",
    "install_spec",
    default=".",
    show_default=True,
    help="What the job passes to pip install",
)
def workflow(output_dir, suggest_splits, respond, install_spec):
    """Write a GitHub Actions workflow that runs the size check."""
    config = Config()
    path = save_workflow(
        output_dir,
        max_lines=config.max_lines,
        max_read_time_minutes=config.max_read_time_minutes,
        mode=config.mode,
        suggest_splits=suggest_splits,
        respond=respond,
        install_spec=install_spec,
    )
    console.print(f"[green]✓ Workflow written to {path}")


@cli.command()
def check():
    """Verify configuration and API access."""
    config = Config()
    issues = config.validate()

    if issues:
        console.print("[bold red]Configuration issues found:\n")
        for issue in issues:
            console.print(f"  [red]✗ {issue}")
        console.print("\n[yellow]Copy .env.example to .env and fill in your settings.")
        sys.exit(1)

    console.print("[bold green]✓ Configuration looks good!")
    console.print(f"  Repository: {config.target_repo}")
    console.print(f"  Mode: {config.mode}")
    console.print(f"  Max lines: {config.max_lines}")
    console.print(f"  Max read time: {config.max_read_time_minutes} min")
    console.print(f"  Model: {config.model if config.has_llm else '(no ANTHROPIC_API_KEY)'}")

    try:
        resp = httpx.get(
            f"https://api.github.com/repos/{config.target_repo}",
            headers={
                "Authorization": f"Bearer {config.github_token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=10,
        )
        resp.raise_for_status()
        repo_data = resp.json()
        console.print(
            f"  [green]✓ GitHub access verified — "
            f"{repo_data.get('open_issues_count', '?')} open issues/PRs"
        )
    except httpx.HTTPError as e:
        console.print(f"  [red]✗ GitHub access failed: {e}")
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
