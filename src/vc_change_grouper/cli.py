"""
Command line interface for the vc_change_grouper tool.

This module defines the ``main`` click group used as the entry point of
the ``changegroup`` command. Each subcommand maps onto one named tool
from :mod:`vc_change_grouper.tools`, prints the tool's content as JSON on
stdout and reports failures on stderr with a distinct exit code. The
``serve`` subcommand answers JSON-lines tool requests on stdin instead.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from vc_change_grouper import __version__
from vc_change_grouper.errors import (
    ChangeGrouperError,
    ConfigError,
    EmbeddingError,
    GitError,
    GitNotFoundError,
)
from vc_change_grouper.tools import run_tool, serve as serve_tools
from vc_change_grouper.vcs.git_client import GitClient

# Module loggers attach a null handler and disable propagation so that
# library use stays silent. ``--verbose`` turns propagation back on.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_EMBEDDING_FAILURE = 7
EXIT_TOOL_ERROR = 9


PACKAGE_LOGGER = "vc_change_grouper"


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------
def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def print_json(content: Dict[str, Any]) -> None:
    click.echo(json.dumps(content, indent=2))


def exit_code_for(exc: ChangeGrouperError) -> int:
    """Map a raised error onto the command's exit code."""
    if isinstance(exc, ConfigError):
        return EXIT_CONFIG_ERROR
    if isinstance(exc, GitError):
        return EXIT_VCS_FAILURE
    if isinstance(exc, EmbeddingError):
        return EXIT_EMBEDDING_FAILURE
    return EXIT_TOOL_ERROR


def _enable_package_logging() -> None:
    for name, candidate in logging.root.manager.loggerDict.items():
        if name.startswith(PACKAGE_LOGGER) and isinstance(candidate, logging.Logger):
            candidate.propagate = True


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------
def resolve_repo(path: Path) -> Path:
    """Resolve the repository root containing ``path``.

    Raises
    ------
    click.exceptions.Exit
        With ``EXIT_CONFIG_ERROR`` if git is missing, or ``EXIT_NO_REPO``
        if ``path`` is not inside a Git repository.
    """
    try:
        return GitClient.resolve_repo_root(path)
    except GitNotFoundError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    except GitError as exc:
        print_error(f"{exc}: {path}")
        raise click.exceptions.Exit(EXIT_NO_REPO)


def try_resolve_repo(path: Path) -> Optional[Path]:
    """Like :func:`resolve_repo`, but return None outside a repository."""
    try:
        return GitClient.resolve_repo_root(path)
    except GitNotFoundError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    except GitError as exc:
        logger.debug("No repository at startup (%s): %s", exc, path)
        return None


def run_and_print(ctx: click.Context, name: str, arguments: Dict[str, Any]) -> None:
    """Run tool ``name`` against the selected repository and print its content."""
    repo_root = resolve_repo(ctx.obj["repo"])
    logger.debug("Running %s in %s", name, repo_root)
    try:
        content = run_tool(name, arguments, repo_root)
    except ChangeGrouperError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(exit_code_for(exc))
    except Exception as exc:
        logger.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
    print_json(content)


def _drop_none(**values: Any) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@click.group()
@click.option(
    "--repo",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Path inside the Git repository to work on.",
)
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="changegroup")
@click.pass_context
def main(ctx: click.Context, repo: Path, verbose: bool) -> None:
    """Group uncommitted changes by intent and turn them into commits.

    Every command prints JSON on stdout. Commit plans are recomputed
    from the working tree on each call, so IDs stay valid only while
    the uncommitted changes stay the same.
    """
    # force=True reconfigures handlers on repeated invocations (tests).
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    if verbose:
        _enable_package_logging()
    ctx.ensure_object(dict)
    ctx.obj["repo"] = repo


@main.command("changes")
@click.pass_context
def changes_cmd(ctx: click.Context) -> None:
    """List uncommitted changes, one per file."""
    run_and_print(ctx, "list_changes", {})


@main.command("group")
@click.argument("change_ids", nargs=-1, required=True)
@click.pass_context
def group_cmd(ctx: click.Context, change_ids: Tuple[str, ...]) -> None:
    """Group CHANGE_IDS by embedding similarity."""
    run_and_print(ctx, "group_changes", {"change_ids": list(change_ids)})


@main.command("plan")
@click.argument("group_ids", nargs=-1, required=True)
@click.pass_context
def plan_cmd(ctx: click.Context, group_ids: Tuple[str, ...]) -> None:
    """Propose one commit per group in GROUP_IDS."""
    run_and_print(ctx, "propose_commits", {"group_ids": list(group_ids)})


@main.command("apply")
@click.argument("commit_id")
@click.option("--confirm", is_flag=True, help="Required to apply the commit.")
@click.option("--no-dry-run", "no_dry_run", is_flag=True, help="Actually stage and commit.")
@click.option("--expected-head", "expected_head", help="Fail if HEAD is no longer this SHA.")
@click.option("--message", "message", help="Commit title replacing the generated message.")
@click.option("--allow-staged", is_flag=True, help="Allow staged changes outside this commit.")
@click.pass_context
def apply_cmd(
    ctx: click.Context,
    commit_id: str,
    confirm: bool,
    no_dry_run: bool,
    expected_head: Optional[str],
    message: Optional[str],
    allow_staged: bool,
) -> None:
    """Apply commit plan COMMIT_ID (a dry run unless --no-dry-run)."""
    arguments = _drop_none(
        commit_id=commit_id,
        confirm=confirm,
        dry_run=not no_dry_run,
        expected_head_sha=expected_head,
        message_override=message,
        allow_staged=allow_staged,
    )
    run_and_print(ctx, "apply_commit", arguments)


@main.command("draft-pr")
@click.argument("shas", nargs=-1, required=True)
@click.pass_context
def draft_pr_cmd(ctx: click.Context, shas: Tuple[str, ...]) -> None:
    """Draft a pull request title and description from commit SHAS."""
    run_and_print(ctx, "generate_pr", {"commit_shas": list(shas)})


@main.command("status")
@click.pass_context
def status_cmd(ctx: click.Context) -> None:
    """Show branch, HEAD and file states."""
    run_and_print(ctx, "repo_status", {})


@main.command("log")
@click.option("--limit", type=int, default=20, show_default=True)
@click.option("--ref", default="HEAD", show_default=True)
@click.option("--path", "path", help="Only commits touching this path.")
@click.option("--since", help="Only commits after this date.")
@click.option("--until", help="Only commits before this date.")
@click.option("--include-merges", is_flag=True)
@click.pass_context
def log_cmd(
    ctx: click.Context,
    limit: int,
    ref: str,
    path: Optional[str],
    since: Optional[str],
    until: Optional[str],
    include_merges: bool,
) -> None:
    """Show commit history."""
    arguments = _drop_none(
        limit=limit, ref=ref, path=path, since=since, until=until, include_merges=include_merges
    )
    run_and_print(ctx, "log", arguments)


@main.command("show")
@click.argument("sha")
@click.pass_context
def show_cmd(ctx: click.Context, sha: str) -> None:
    """Show metadata, files and diff of commit SHA."""
    run_and_print(ctx, "show_commit", {"sha": sha})


@main.command("diff")
@click.argument("base")
@click.argument("head")
@click.option("--path", "path", help="Restrict the diff to this path.")
@click.option("--unified", type=int, default=3, show_default=True)
@click.pass_context
def diff_cmd(ctx: click.Context, base: str, head: str, path: Optional[str], unified: int) -> None:
    """Show the structured diff between BASE and HEAD."""
    run_and_print(ctx, "diff_between_refs", _drop_none(base=base, head=head, path=path, unified=unified))


@main.command("blame")
@click.argument("path")
@click.option("--ref", default="HEAD", show_default=True)
@click.option("--start", "start_line", type=int, help="First line (1-indexed).")
@click.option("--end", "end_line", type=int, help="Last line (1-indexed, inclusive).")
@click.option("--ignore-whitespace", is_flag=True)
@click.option("--detect-moves", is_flag=True, help="Follow lines moved or copied across files.")
@click.pass_context
def blame_cmd(
    ctx: click.Context,
    path: str,
    ref: str,
    start_line: Optional[int],
    end_line: Optional[int],
    ignore_whitespace: bool,
    detect_moves: bool,
) -> None:
    """Show which commit last touched each line of PATH."""
    arguments = _drop_none(
        path=path,
        ref=ref,
        start_line=start_line,
        end_line=end_line,
        ignore_whitespace=ignore_whitespace,
        detect_moves=detect_moves,
    )
    run_and_print(ctx, "blame", arguments)


@main.command("serve")
@click.pass_context
def serve_cmd(ctx: click.Context) -> None:
    """Answer JSON-lines tool requests on stdin until EOF.

    Outside a repository the server still starts; requests then fail
    until a ``set_repo_root`` request selects one.
    """
    repo_root = try_resolve_repo(ctx.obj["repo"])
    handled = serve_tools(
        click.get_text_stream("stdin"),
        click.get_text_stream("stdout"),
        repo_root,
    )
    logger.debug("Served %d request(s)", handled)
