"""tracker-sync - Linear, GitHub and Figma data from the command line."""

from .errors import (
    ConfigurationError,
    DatasetNotFoundError,
    InvalidTimeZoneError,
    TimeZoneResolutionError,
    TrackerSyncError,
    UpstreamFetchError,
    ValidationError,
)
from .models import Snapshot, ReviewerSummary, ReviewSummary, PullRequestSummary, TimeZoneSpec, LocalDateTime
from .pagination import Connection, PageInfo, iter_connection, paginate_connection
from .time_window import resolve_time_zone, parse_local_datetime_input, convert_local_datetime_to_utc
from .reviewers import aggregate_reviewers, build_review_summary, filter_ready_review_entries
from .storage import SnapshotStore
from .sync import SyncOrchestrator
from .linear import LinearService
from .github import GitHubService
from .figma import FigmaService
from .output import render_payload, print_payload, write_payload

__all__ = [
    'ConfigurationError',
    'DatasetNotFoundError',
    'InvalidTimeZoneError',
    'TimeZoneResolutionError',
    'TrackerSyncError',
    'UpstreamFetchError',
    'ValidationError',
    'Snapshot',
    'ReviewerSummary',
    'ReviewSummary',
    'PullRequestSummary',
    'TimeZoneSpec',
    'LocalDateTime',
    'Connection',
    'PageInfo',
    'iter_connection',
    'paginate_connection',
    'resolve_time_zone',
    'parse_local_datetime_input',
    'convert_local_datetime_to_utc',
    'aggregate_reviewers',
    'build_review_summary',
    'filter_ready_review_entries',
    'SnapshotStore',
    'SyncOrchestrator',
    'LinearService',
    'GitHubService',
    'FigmaService',
    'render_payload',
    'print_payload',
    'write_payload',
]
