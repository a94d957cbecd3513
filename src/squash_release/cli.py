"""
Command line interface for the squash_release tool.

This module defines the ``main`` function which is used as the entry
point when executing the ``squash-release`` command. It orchestrates
repository detection, configuration loading, retrieval of the release
window, the release decision, the changelog update, committing and
tagging the release, and the optional release notification. Exit codes
are defined below.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import date
from pathlib import Path
from typing import List, Optional

import click

from squash_release import __version__
from squash_release.changelog.document import read_changelog, write_changelog
from squash_release.changelog.synthesizer import ChangelogError, render_section
from squash_release.config.loader import ConfigError, ReleaseConfig, load_config
from squash_release.notify.mattermost import MattermostNotifier, NotifierError
from squash_release.pipeline import ReleaseError, ReleasePlan, apply_plan, collect_window, plan_release
from squash_release.vcs.git_client import GitError, LocalGitSource
from squash_release.vcs.github_client import GitHubSource
from squash_release.vcs.source import RepositoryError, RepositorySource

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests). When logging is configured by
# the CLI, root handlers will be added and messages will propagate.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_RELEASE = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_RELEASE_FAILURE = 7
EXIT_CHANGELOG_FAILURE = 8
EXIT_NOTIFY_FAILURE = 9


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"⠋ {self.message}...", nl=False)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        if exc_type is None:
            click.echo(f"\r✓ {self.message} (took {elapsed:.1f}s)")
        else:
            click.echo(f"\r✗ {self.message}")
        return False


def print_step(step_num: int, total_steps: int, message: str):
    """Print a step indicator."""
    click.echo(f"\n{'='*60}")
    click.echo(f"Step {step_num}/{total_steps}: {message}")
    click.echo(f"{'='*60}")


def print_info(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}")


def print_warning(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}")


def print_error(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def build_source(config: ReleaseConfig, repo_root: Path, provider: Optional[str] = None) -> RepositorySource:
    """Create the repository source selected by configuration or ``--provider``."""
    selected = provider or config.repository.provider
    if selected == "github":
        if not (config.repository.owner and config.repository.repo):
            raise ConfigError("The github provider needs 'repository.owner' and 'repository.repo'")
        return GitHubSource(
            owner=config.repository.owner,
            repo=config.repository.repo,
            token=os.environ.get("GITHUB_TOKEN"),
            api_url=config.repository.api_url,
            branch=config.branch,
            request_timeout=config.request_timeout,
        )
    return LocalGitSource(repo_root, tag_prefix=config.tag_prefix)


def publish(git: LocalGitSource, plan: ReleasePlan, changelog: Path, changed: bool, push: bool) -> None:
    """Commit the changelog, tag the release and push both."""
    if changed:
        git.stage_files([str(changelog)])
        git.commit(plan.commit_message)
    if not git.tag_exists(plan.tag):
        git.create_tag(plan.tag, plan.commit_message)
    if push:
        git.push(tag=plan.tag)


def show_plan(plan: ReleasePlan) -> None:
    classified = [item for item in plan.classified if item.rule is not None]
    print_info(f"Release type: {click.style(plan.severity.label, fg='cyan', bold=True)}", indent=1)
    print_info(f"Classified commits: {len(classified)}/{len(plan.classified)}", indent=1)
    print_info(f"Version: {plan.current_version or 'none'} → {plan.version}", indent=1)


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (defaults to .squash_release.json in the repository root).",
)
@click.option("--provider", type=click.Choice(["git", "github"]), help="Override the repository provider.")
@click.option(
    "--date",
    "release_date",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    help="Release date written to the changelog (defaults to today).",
)
@click.option("--dry-run", is_flag=True, help="Compute the release and print the changelog section only.")
@click.option("--no-push", is_flag=True, help="Commit and tag locally without pushing.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="squash-release")
def main(
    config_path: Optional[Path],
    provider: Optional[str],
    release_date,
    dry_run: bool,
    no_push: bool,
    verbose: bool,
) -> None:
    """Compute the next release from squashed pull requests and update the changelog."""
    # Use force=True so handlers are reconfigured on every invocation (tests).
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )

    click.echo("\n" + "="*60)
    click.echo("📦 Squash Release".center(60))
    click.echo("="*60)

    ctx = click.get_current_context(silent=True)
    total_steps = 6
    released_on = release_date.date() if release_date is not None else date.today()

    try:
        # Step 1: Detect repository
        print_step(1, total_steps, "Detecting Repository")
        repo_root = LocalGitSource.find_repo_root(Path.cwd())
        if repo_root is None:
            print_error("No Git repository found in current directory or parent directories.")
            raise click.exceptions.Exit(EXIT_NO_REPO)
        print_success(f"Found Git repository at: {repo_root}")

        # Step 2: Load configuration
        print_step(2, total_steps, "Loading Configuration")
        try:
            config = load_config(repo_root, config_path)
            source = build_source(config, repo_root, provider)
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        print_success("Configuration loaded successfully")
        print_info(f"Release rules: {len(config.grammar)}", indent=1)
        print_info(f"Provider: {provider or config.repository.provider}", indent=1)
        print_info(f"Changelog: {config.changelog_path}", indent=1)

        # Step 3: Retrieve the release window
        print_step(3, total_steps, "Retrieving Commits")
        try:
            with ProgressIndicator("Looking up the last release tag"):
                last_tag = source.latest_tag()
            print_info(f"Last release: {last_tag or 'none'}", indent=1)
            with ProgressIndicator("Collecting squashed and inner commits"):
                window = collect_window(source, last_tag)
        except RepositoryError as exc:
            print_error(f"Repository error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        print_success(
            f"Found {len(window.squashed)} squashed commit{'s' if len(window.squashed) != 1 else ''} "
            f"with {len(window.commits)} inner commit{'s' if len(window.commits) != 1 else ''}"
        )

        # Step 4: Release decision
        print_step(4, total_steps, "Computing Release")
        try:
            plan = plan_release(window, config, released_on)
        except ReleaseError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_RELEASE_FAILURE)
        if plan is None:
            print_warning(f"No release due for window {window.label}.")
            raise click.exceptions.Exit(EXIT_NO_RELEASE)
        print_success(f"Next release: {plan.tag}")
        show_plan(plan)

        # Step 5: Changelog
        print_step(5, total_steps, "Updating Changelog")
        changelog = repo_root / config.changelog_path
        try:
            existing = read_changelog(changelog)
            updated = apply_plan(plan, existing)
        except ReleaseError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_CHANGELOG_FAILURE)
        except ChangelogError as exc:
            print_error(f"Changelog error: {exc}")
            raise click.exceptions.Exit(EXIT_CHANGELOG_FAILURE)
        changed = updated != existing

        if dry_run:
            click.echo("")
            click.echo(render_section(plan.section))
            print_info("Dry run: nothing written, committed or pushed")
            raise click.exceptions.Exit(EXIT_SUCCESS)

        if changed:
            try:
                write_changelog(changelog, updated)
            except ChangelogError as exc:
                print_error(f"Changelog error: {exc}")
                raise click.exceptions.Exit(EXIT_CHANGELOG_FAILURE)
            print_success(f"Added {plan.tag} to {config.changelog_path}")
        else:
            print_info(f"{config.changelog_path} already lists {plan.tag}")

        # Step 6: Commit, tag and announce
        print_step(6, total_steps, "Publishing Release")
        git = LocalGitSource(repo_root, tag_prefix=config.tag_prefix)
        try:
            with ProgressIndicator(f"Committing and tagging {plan.tag}"):
                publish(git, plan, Path(config.changelog_path), changed, push=not no_push)
        except GitError as exc:
            print_error(f"Failed to commit/tag/push release: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        print_success(f"Tagged {plan.tag}" + ("" if no_push else " and pushed"))

        if config.notifier is not None:
            notifier = MattermostNotifier(
                url=config.notifier.url,
                channel_id=config.notifier.channel_id,
                token=os.environ.get("MATTERMOST_TOKEN"),
                request_timeout=config.request_timeout,
            )
            try:
                notifier.notify_release(plan.tag, config.notifier.message)
            except NotifierError as exc:
                print_error(f"Release notification failed: {exc}")
                raise click.exceptions.Exit(EXIT_NOTIFY_FAILURE)
            print_success("Release announced on Mattermost")

        summary: List[str] = [
            f"✓ Release: {plan.tag} ({plan.severity.label})",
            f"✓ Changelog entries: {plan.section.entry_count}",
        ]
        click.echo("")
        for item in summary:
            click.echo(f"  {item}")
        click.echo("")

        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
