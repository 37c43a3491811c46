"""GitHub repository client: pull requests, review status and commits."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from .api_client import APIClient
from .errors import ConfigurationError, ValidationError
from .models import (
    CommitListResult,
    CommitSummary,
    PullRequestListResult,
    PullRequestSummary,
    RepositoryConfig,
    ReviewStatusResult,
)
from .pagination import iter_connection, paginate_connection
from .reviewers import aggregate_reviewers, build_review_status_entries, build_review_summary
from .time_window import format_utc

GITHUB_API_URL = 'https://api.github.com'
MAX_PER_PAGE = 100
MAX_COMMIT_LIMIT = 200
MAX_ENRICH_WORKERS = 10


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def matches_date_filters(pr: Dict, created_after: datetime = None, created_before: datetime = None,
                         updated_after: datetime = None, updated_before: datetime = None) -> bool:
    """Check a raw pull request against inclusive created/updated bounds."""
    created_at = _parse_timestamp(pr['created_at'])
    updated_at = _parse_timestamp(pr['updated_at'])

    if created_after and created_at < _as_utc(created_after):
        return False
    if created_before and created_at > _as_utc(created_before):
        return False
    if updated_after and updated_at < _as_utc(updated_after):
        return False
    if updated_before and updated_at > _as_utc(updated_before):
        return False

    return True


def extract_label_names(labels: List) -> List[str]:
    names = []
    for label in labels or []:
        if isinstance(label, str):
            names.append(label)
        elif label and label.get('name'):
            names.append(label['name'])
    return names


def is_merge_commit(commit: Dict) -> bool:
    return len(commit.get('parents') or []) > 1


def map_commit_to_summary(commit: Dict, repository: RepositoryConfig) -> CommitSummary:
    """Project a REST commit into a CommitSummary."""
    details = commit.get('commit') or {}
    git_author = details.get('author') or {}
    git_committer = details.get('committer') or {}
    author = commit.get('author') or {}
    message = details.get('message') or ''

    return CommitSummary(
        owner=repository.owner,
        repo=repository.repo,
        sha=commit['sha'],
        short_message=message.split('\n')[0],
        message=message,
        url=commit.get('html_url') or '',
        author_login=author.get('login'),
        author_name=git_author.get('name') or author.get('login'),
        author_email=git_author.get('email'),
        author_avatar_url=author.get('avatar_url'),
        committed_at=git_author.get('date') or git_committer.get('date'),
        parents=[parent['sha'] for parent in commit.get('parents') or [] if parent and parent.get('sha')],
        verified=bool((details.get('verification') or {}).get('verified')),
    )


class GitHubService:
    """Fetches pull requests, reviews and commits for one repository."""

    def __init__(self, token: str, default_repository: RepositoryConfig = None,
                 api_client: APIClient = None):
        """Initialize the GitHub service.

        Args:
            token: GitHub personal access token
            default_repository: Repository used when a call doesn't name one
            api_client: Optional pre-built transport (tests)
        """
        if not token and api_client is None:
            raise ConfigurationError("GitHub is not configured. Set GITHUB_TOKEN.")

        self.default_repository = default_repository
        self.api_client = api_client or APIClient(
            GITHUB_API_URL,
            headers={
                'Authorization': f'token {token}',
                'Accept': 'application/vnd.github.v3+json',
            },
            name='GitHub',
        )
        logging.info("Initialized GitHub API client with token")

    def resolve_repository(self, repository: RepositoryConfig = None) -> RepositoryConfig:
        resolved = repository or self.default_repository
        if resolved is None:
            raise ConfigurationError(
                "Missing repository configuration. Set GITHUB_OWNER and GITHUB_REPO "
                "or a combined GITHUB_REPOSITORY value."
            )
        return resolved

    def _enrich_pull_request(self, pr: Dict, repository: RepositoryConfig) -> PullRequestSummary:
        """Attach reviewers and the review summary to a raw pull request.

        Requested reviewers and submitted reviews are fetched concurrently.
        """
        base = f"repos/{repository.owner}/{repository.repo}/pulls/{pr['number']}"

        with ThreadPoolExecutor(max_workers=2) as executor:
            future_requests = executor.submit(
                self.api_client.get_json, f"{base}/requested_reviewers", {'per_page': MAX_PER_PAGE}
            )
            future_reviews = executor.submit(
                paginate_connection,
                self.api_client.page_fetcher(f"{base}/reviews", {'per_page': MAX_PER_PAGE}),
            )
            review_requests = future_requests.result() or {}
            reviews = future_reviews.result()

        reviewers = aggregate_reviewers(
            review_requests.get('users') or [],
            review_requests.get('teams') or [],
            reviews,
        )

        return PullRequestSummary(
            number=pr['number'],
            title=pr.get('title') or '',
            url=pr.get('html_url') or '',
            state=pr.get('state') or '',
            draft=bool(pr.get('draft')),
            author=(pr.get('user') or {}).get('login'),
            created_at=pr.get('created_at'),
            updated_at=pr.get('updated_at'),
            merged_at=pr.get('merged_at'),
            head_ref=(pr.get('head') or {}).get('ref') or '',
            base_ref=(pr.get('base') or {}).get('ref') or '',
            labels=extract_label_names(pr.get('labels')),
            reviewers=reviewers,
            review_summary=build_review_summary(reviewers),
        )

    def fetch_repository_pull_requests(
        self,
        state: str = 'open',
        limit: int = 20,
        created_after: datetime = None,
        created_before: datetime = None,
        updated_after: datetime = None,
        updated_before: datetime = None,
        repository: RepositoryConfig = None,
    ) -> PullRequestListResult:
        """List pull requests, most recently updated first, with reviewer state.

        Args:
            state: 'open', 'closed' or 'all'
            limit: Maximum number of pull requests to return (at least 1)
            created_after: Inclusive lower bound on creation time
            created_before: Inclusive upper bound on creation time
            updated_after: Inclusive lower bound on update time
            updated_before: Inclusive upper bound on update time
            repository: Overrides the default repository

        Returns:
            PullRequestListResult with enriched pull requests
        """
        if state not in ('open', 'closed', 'all'):
            raise ValidationError('Invalid --state value. Use "open", "closed", or "all".')

        repository = self.resolve_repository(repository)
        limit = max(1, limit or 20)
        per_page = min(limit, MAX_PER_PAGE)

        fetch_page = self.api_client.page_fetcher(
            f"repos/{repository.owner}/{repository.repo}/pulls",
            {'state': state, 'per_page': per_page, 'sort': 'updated', 'direction': 'desc'},
        )

        base_prs = []
        for pr in iter_connection(fetch_page):
            if not matches_date_filters(pr, created_after, created_before, updated_after, updated_before):
                continue
            base_prs.append(pr)
            if len(base_prs) >= limit:
                break

        logging.info(f"Enriching {len(base_prs)} pull requests from {repository.full_name}")

        pull_requests = []
        if base_prs:
            with ThreadPoolExecutor(max_workers=min(MAX_ENRICH_WORKERS, len(base_prs))) as executor:
                # map() keeps upstream order and re-raises the first failure
                pull_requests = list(executor.map(
                    lambda pr: self._enrich_pull_request(pr, repository), base_prs
                ))

        return PullRequestListResult(
            repository=repository.full_name,
            fetched_at=format_utc(datetime.now(timezone.utc)),
            pull_requests=pull_requests,
        )

    def fetch_recent_review_status(self, window_days: int = 7, limit: int = 50,
                                   repository: RepositoryConfig = None,
                                   now: datetime = None) -> ReviewStatusResult:
        """Review state of open pull requests updated within the last N days."""
        updated_after = (now or datetime.now(timezone.utc)) - timedelta(days=window_days)

        base = self.fetch_repository_pull_requests(
            state='open',
            limit=limit,
            updated_after=updated_after,
            repository=repository,
        )

        return ReviewStatusResult(
            repository=base.repository,
            fetched_at=base.fetched_at,
            window_start=format_utc(updated_after),
            entries=build_review_status_entries(base.pull_requests),
        )

    def fetch_user_commits(
        self,
        author: str,
        limit: int = 50,
        since: datetime = None,
        until: datetime = None,
        repository: RepositoryConfig = None,
        exclude_merges: bool = False,
    ) -> CommitListResult:
        """List commits by one author inside an optional time window.

        Args:
            author: GitHub login of the commit author
            limit: Maximum commits to return, clamped to 1..200
            since: Inclusive window start
            until: Window end
            repository: Overrides the default repository
            exclude_merges: Skip commits with more than one parent

        Returns:
            CommitListResult
        """
        if not author:
            raise ValidationError("Author login is required to fetch commits.")

        repository = self.resolve_repository(repository)
        limit = max(1, min(limit or 50, MAX_COMMIT_LIMIT))
        since_iso = format_utc(since) if since else None
        until_iso = format_utc(until) if until else None

        params = {'author': author, 'per_page': min(limit, MAX_PER_PAGE)}
        if since_iso:
            params['since'] = since_iso
        if until_iso:
            params['until'] = until_iso

        fetch_page = self.api_client.page_fetcher(f"repos/{repository.owner}/{repository.repo}/commits", params)

        commits = []
        for commit in iter_connection(fetch_page):
            if exclude_merges and is_merge_commit(commit):
                continue
            commits.append(commit)
            if len(commits) >= limit:
                break

        logging.info(f"Fetched {len(commits)} commits by {author} from {repository.full_name}")

        return CommitListResult(
            owner=repository.owner,
            repo=repository.repo,
            author=author,
            fetched_at=format_utc(datetime.now(timezone.utc)),
            since=since_iso,
            until=until_iso,
            commits=[map_commit_to_summary(commit, repository) for commit in commits],
        )
