"""Command-line interface.

Commands:
  linear: workspace collections, local snapshots, key lookup and sync
  github: pull requests, review status and commits of a repository
  figma: rendered image URLs for design nodes
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import click
from dotenv import load_dotenv

from .config import Settings
from .context import ServiceContext
from .errors import TrackerSyncError, ValidationError
from .figma import parse_node_id
from .models import IssueSearchFilters, RepositoryConfig
from .output import build_default_output_path, normalize_format, print_payload, write_payload
from .reviewers import filter_ready_review_entries
from .time_window import (
    convert_local_datetime_to_utc,
    format_utc,
    parse_local_datetime_input,
    resolve_commit_window,
    resolve_time_zone,
)


def configure_logging(level: str = 'INFO'):
    """Configure root logging at the given level name (INFO when unknown)."""
    level = (level or 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%m/%d/%Y %I:%M:%S %p',
        stream=sys.stderr,
    )


def output_options(func):
    """Attach the --format/--all-fields/--output options shared by data commands."""
    func = click.option('--output', 'output', is_flag=False, flag_value='', default=None,
                        help='Save to PATH (or a timestamped file under storage/exports).')(func)
    func = click.option('--all-fields', 'all_fields', is_flag=True,
                        help='Keep every field instead of the analytics whitelist.')(func)
    func = click.option('--format', 'fmt', default='json', show_default=True,
                        help='Output format: json or csv.')(func)
    return func


def emit(payload: Any, fmt: str, collection_key: Optional[str], all_fields: bool,
         output: Optional[str], command_key: str):
    """Print the payload, or save it when --output was given."""
    fmt = normalize_format(fmt)
    if output is None:
        print_payload(payload, fmt, collection_key, skip_analytics_filter=all_fields)
        return

    target = output or build_default_output_path(command_key, fmt)
    saved = run_or_exit(
        "Failed to save output.",
        lambda: write_payload(payload, fmt, target, collection_key, skip_analytics_filter=all_fields),
    )
    click.echo(f"Saved output to {saved}")


def run_or_exit(failure_message: str, action: Callable[[], Any]) -> Any:
    """Run a command body, turning core errors into one message and exit 1."""
    try:
        return action()
    except TrackerSyncError as e:
        logging.debug(f"{failure_message}: {e!r}")
        click.echo(failure_message, err=True)
        click.echo(str(e), err=True)
        sys.exit(1)


def parse_timestamp_option(value: Optional[str], flag: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError as e:
        raise ValidationError(f"Invalid ISO timestamp for --{flag}: {value}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_repository_override(owner: Optional[str], repo: Optional[str]) -> Optional[RepositoryConfig]:
    if not owner and not repo:
        return None
    if not owner or not repo:
        raise ValidationError("Both --owner and --repo must be provided together.")
    return RepositoryConfig(owner=owner, repo=repo)


@click.group()
@click.pass_context
def main(ctx: click.Context):
    """Aggregate Linear, GitHub and Figma data from the command line."""
    if ctx.obj is None:
        ctx.obj = ServiceContext(Settings.from_env())


# ---------------------------------------------------------------- linear

@main.group()
def linear():
    """Linear workspace data (served from local snapshots unless --remote)."""


def _linear_collection(services: ServiceContext, name: str, remote: bool, fetch_fn,
                       full: Optional[bool] = None) -> dict:
    dataset = services.orchestrator.get_dataset(name, remote, fetch_fn)
    payload = {
        'workspaceId': services.settings.workspace_label,
        'fetchedAt': dataset.fetched_at,
        'source': dataset.source,
    }
    if remote and full is not None:
        payload['full'] = full
    payload['count'] = len(dataset.items)
    payload[name] = dataset.items
    return payload


def _collection_command(name: str, has_full: bool, help_text: str):
    @click.option('--remote', is_flag=True, help='Fetch from Linear and overwrite the local snapshot.')
    @output_options
    @click.pass_obj
    def command(services: ServiceContext, remote: bool, fmt: str, all_fields: bool,
                output: Optional[str], full: bool = False):
        def fetch():
            fetcher = getattr(services.linear, f"fetch_workspace_{name}")
            return fetcher(full=full) if has_full else fetcher()

        payload = run_or_exit(
            f"Failed to execute linear {name}.",
            lambda: _linear_collection(services, name, remote, fetch, full if has_full else None),
        )
        emit(payload, fmt, name, all_fields, output, f"linear-{name}")

    command.__doc__ = help_text
    if has_full:
        command = click.option('--full', is_flag=True, help='Fetch full records instead of summaries.')(command)
    return linear.command(name)(command)


_collection_command('projects', True, 'List workspace projects.')
_collection_command('teams', True, 'List workspace teams.')
_collection_command('issues', False, 'List workspace issues.')
_collection_command('users', False, 'List workspace users.')
_collection_command('labels', False, 'List issue labels.')
_collection_command('cycles', False, 'List cycles.')


@linear.command('issue')
@click.argument('issue_key')
@output_options
@click.pass_obj
def linear_issue(services: ServiceContext, issue_key: str, fmt: str, all_fields: bool, output: Optional[str]):
    """Look up a stored issue by its TEAM-NUMBER key."""
    def lookup():
        result = services.store.find_issue_by_key(issue_key)
        return {'workspaceId': services.settings.workspace_label, **result.to_dict()}

    payload = run_or_exit("Failed to execute linear issue.", lookup)
    emit(payload, fmt, 'issue', all_fields, output, 'linear-issue')


@linear.command('search-issues')
@click.option('--project', 'project_id', help='Project id.')
@click.option('--label', 'label_id', help='Label id.')
@click.option('--cycle', 'cycle_id', help='Cycle id.')
@output_options
@click.pass_obj
def linear_search_issues(services: ServiceContext, project_id: Optional[str], label_id: Optional[str],
                         cycle_id: Optional[str], fmt: str, all_fields: bool, output: Optional[str]):
    """Filter the local issues snapshot."""
    filters = IssueSearchFilters(project_id=project_id, label_id=label_id, cycle_id=cycle_id)

    def search():
        result = services.store.search_issues(filters)
        return {'workspaceId': services.settings.workspace_label, 'source': 'local', **result.to_dict()}

    payload = run_or_exit("Failed to execute linear search-issues.", search)
    emit(payload, fmt, 'issues', all_fields, output, 'linear-search-issues')


@linear.command('sync')
@output_options
@click.pass_obj
def linear_sync(services: ServiceContext, fmt: str, all_fields: bool, output: Optional[str]):
    """Fetch every collection from Linear and overwrite the local snapshots."""
    def sync():
        logging.info("Fetching latest data from Linear...")
        result = services.orchestrator.sync_all(services.linear.master_fetchers())
        return {'workspaceId': services.settings.workspace_label, **result.to_dict()}

    payload = run_or_exit("Failed to execute linear sync.", sync)
    emit(payload, fmt, None, all_fields, output, 'linear-sync')


# ---------------------------------------------------------------- github

@main.group()
def github():
    """GitHub pull requests, review status and commits."""


@github.command('prs')
@click.option('--state', type=click.Choice(['open', 'closed', 'all'], case_sensitive=False), default='open',
              show_default=True)
@click.option('--limit', type=click.IntRange(min=1), default=20, show_default=True)
@click.option('--created-after', help='ISO timestamp.')
@click.option('--created-before', help='ISO timestamp.')
@click.option('--updated-after', help='ISO timestamp.')
@click.option('--updated-before', help='ISO timestamp.')
@click.option('--owner', help='Repository owner (with --repo).')
@click.option('--repo', help='Repository name (with --owner).')
@output_options
@click.pass_obj
def github_prs(services: ServiceContext, state: str, limit: int, created_after: Optional[str],
               created_before: Optional[str], updated_after: Optional[str], updated_before: Optional[str],
               owner: Optional[str], repo: Optional[str], fmt: str, all_fields: bool, output: Optional[str]):
    """List pull requests with reviewer state."""
    def fetch():
        options = {
            'created_after': parse_timestamp_option(created_after, 'created-after'),
            'created_before': parse_timestamp_option(created_before, 'created-before'),
            'updated_after': parse_timestamp_option(updated_after, 'updated-after'),
            'updated_before': parse_timestamp_option(updated_before, 'updated-before'),
            'repository': parse_repository_override(owner, repo),
        }
        return services.github.fetch_repository_pull_requests(
            state=state.lower(), limit=min(limit, 200), **options
        )

    payload = run_or_exit("Failed to list GitHub pull requests.", fetch)
    emit(payload, fmt, 'pullRequests', all_fields, output, 'github-prs')


@github.command('review-status')
@click.option('--limit', type=click.IntRange(min=1), default=50, show_default=True)
@click.option('--days', type=click.IntRange(min=1), default=7, show_default=True,
              help='Only pull requests updated in the last N days.')
@click.option('--ready-only', is_flag=True, help='Skip drafts and WIP titles.')
@click.option('--owner', help='Repository owner (with --repo).')
@click.option('--repo', help='Repository name (with --owner).')
@output_options
@click.pass_obj
def github_review_status(services: ServiceContext, limit: int, days: int, ready_only: bool,
                         owner: Optional[str], repo: Optional[str], fmt: str, all_fields: bool,
                         output: Optional[str]):
    """Show who still has to review recently updated open pull requests."""
    def fetch():
        repository = parse_repository_override(owner, repo)
        result = services.github.fetch_recent_review_status(
            window_days=days, limit=min(limit, 200), repository=repository
        )
        if ready_only:
            result.entries = filter_ready_review_entries(result.entries)
        return result

    payload = run_or_exit("Failed to list GitHub review status.", fetch)
    emit(payload, fmt, 'reviewStatus', all_fields, output, 'github-review-status')


@github.command('commits')
@click.option('--user', required=True, help='GitHub login of the commit author.')
@click.option('--limit', type=click.IntRange(min=1), default=40, show_default=True)
@click.option('--days', type=click.IntRange(min=1), default=7, show_default=True)
@click.option('--owner', help='Repository owner (with --repo).')
@click.option('--repo', help='Repository name (with --owner).')
@click.option('--exclude-merges', is_flag=True)
@click.option('--timezone', 'time_zone', help='IANA zone, +HHMM offset or "local".')
@click.option('--window-boundary', help='Window end as YYYYMMDD or YYYYMMDDHHMM in --timezone.')
@output_options
@click.pass_obj
def github_commits(services: ServiceContext, user: str, limit: int, days: int, owner: Optional[str],
                   repo: Optional[str], exclude_merges: bool, time_zone: Optional[str],
                   window_boundary: Optional[str], fmt: str, all_fields: bool, output: Optional[str]):
    """List a user's commits inside a day-aligned window."""
    def fetch():
        repository = parse_repository_override(owner, repo)
        spec, label = resolve_time_zone(time_zone)
        boundary = None
        if window_boundary:
            boundary = convert_local_datetime_to_utc(parse_local_datetime_input(window_boundary), spec)
        since, until = resolve_commit_window(days, boundary)

        result = services.github.fetch_user_commits(
            author=user,
            limit=min(limit, 200),
            since=since,
            until=until,
            repository=repository,
            exclude_merges=exclude_merges,
        )
        payload = result.to_dict()
        payload['windowDays'] = days
        if boundary:
            payload['windowBoundary'] = format_utc(boundary)
        payload['timeZone'] = label
        return payload

    payload = run_or_exit("Failed to list GitHub commits.", fetch)
    emit(payload, fmt, 'commits', all_fields, output, 'github-commits')


# ---------------------------------------------------------------- figma

@main.group()
def figma():
    """Figma design files."""


@figma.command('images')
@click.option('--file-key', required=True, help='Key of the Figma file.')
@click.option('--node', 'nodes', multiple=True, required=True, help='Node id (12:34 or 12-34); repeatable.')
@click.option('--image-format', type=click.Choice(['png', 'jpg']), default='png', show_default=True)
@click.option('--scale', type=click.IntRange(1, 4), default=1, show_default=True)
@output_options
@click.pass_obj
def figma_images(services: ServiceContext, file_key: str, nodes: tuple, image_format: str, scale: int,
                 fmt: str, all_fields: bool, output: Optional[str]):
    """Print short-lived download URLs for rendered nodes."""
    def fetch():
        node_ids = [parse_node_id(node) for node in nodes]
        images = services.figma.fetch_image_urls(file_key, node_ids, image_format, scale)
        return {
            'fileKey': file_key,
            'format': image_format,
            'scale': scale,
            'images': [{'nodeId': node_id, 'url': images.get(node_id)} for node_id in node_ids],
        }

    payload = run_or_exit("Failed to fetch Figma images.", fetch)
    emit(payload, fmt, 'images', all_fields, output, 'figma-images')


def run():
    """Console entry point: load .env, configure logging, dispatch."""
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    settings.warn_incomplete()
    main(obj=ServiceContext(settings))


if __name__ == '__main__':
    run()
