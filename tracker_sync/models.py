"""Data models for synced tracker, repository and review data."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


Record = Dict[str, Any]


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None so optional fields stay absent."""
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class Snapshot:
    """Full contents of one named collection as stored on disk."""
    fetched_at: str
    items: List[Record] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {'fetchedAt': self.fetched_at, 'count': self.count, 'items': self.items}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snapshot':
        return cls(fetched_at=data.get('fetchedAt', ''), items=list(data.get('items') or []))


@dataclass
class DatasetResult:
    """A collection served either from the live API or from a snapshot."""
    fetched_at: str
    items: List[Record]
    source: str  # 'remote' or 'local'


@dataclass(frozen=True)
class TimeZoneSpec:
    """Either an IANA zone (kind='iana') or a fixed UTC offset (kind='offset')."""
    kind: str
    identifier: Optional[str] = None
    minutes: Optional[int] = None

    @classmethod
    def iana(cls, identifier: str) -> 'TimeZoneSpec':
        return cls(kind='iana', identifier=identifier)

    @classmethod
    def offset(cls, minutes: int) -> 'TimeZoneSpec':
        return cls(kind='offset', minutes=minutes)


@dataclass(frozen=True)
class LocalDateTime:
    """Wall-clock date and time without a zone."""
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0


@dataclass(frozen=True)
class RepositoryConfig:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class ReviewerSummary:
    """Latest known review state of one user or team on a pull request."""
    type: str  # 'USER' or 'TEAM'
    login: str
    state: str
    name: Optional[str] = None
    submitted_at: Optional[str] = None
    avatar_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'type': self.type,
            'login': self.login,
            'name': self.name,
            'state': self.state,
            'submittedAt': self.submitted_at,
            'avatarUrl': self.avatar_url,
        })


@dataclass
class ReviewSummary:
    """Disposition tally derived from a pull request's reviewers."""
    approved: int = 0
    changes_requested: int = 0
    commented: int = 0
    dismissed: int = 0
    pending: int = 0
    overall_status: str = 'no_reviews'

    @property
    def total(self) -> int:
        return self.approved + self.changes_requested + self.commented + self.dismissed + self.pending

    def to_dict(self) -> Dict[str, Any]:
        return {
            'approved': self.approved,
            'changesRequested': self.changes_requested,
            'commented': self.commented,
            'dismissed': self.dismissed,
            'pending': self.pending,
            'total': self.total,
            'overallStatus': self.overall_status,
        }


@dataclass
class PullRequestSummary:
    number: int
    title: str
    url: str
    state: str
    draft: bool
    created_at: str
    updated_at: str
    head_ref: str
    base_ref: str
    author: Optional[str] = None
    merged_at: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    reviewers: List[ReviewerSummary] = field(default_factory=list)
    review_summary: ReviewSummary = field(default_factory=ReviewSummary)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'number': self.number,
            'title': self.title,
            'url': self.url,
            'state': self.state,
            'draft': self.draft,
            'author': self.author,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
            'mergedAt': self.merged_at,
            'headRef': self.head_ref,
            'baseRef': self.base_ref,
            'labels': list(self.labels),
            'reviewers': [reviewer.to_dict() for reviewer in self.reviewers],
            'reviewSummary': self.review_summary.to_dict(),
        })


@dataclass
class ReviewStatusEntry:
    number: int
    title: str
    title_includes_wip: bool
    draft: bool
    updated_at: str
    author: Optional[str] = None
    reviewers: Dict[str, str] = field(default_factory=dict)
    labels: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'number': self.number,
            'title': self.title,
            'titleIncludesWip': self.title_includes_wip,
            'draft': self.draft,
            'author': self.author,
            'reviewers': dict(self.reviewers),
            'updatedAt': self.updated_at,
            'labels': list(self.labels),
        })


@dataclass
class CommitSummary:
    owner: str
    repo: str
    sha: str
    short_message: str
    message: str
    url: str
    author_login: Optional[str] = None
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    author_avatar_url: Optional[str] = None
    committed_at: Optional[str] = None
    parents: List[str] = field(default_factory=list)
    verified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'owner': self.owner,
            'repo': self.repo,
            'sha': self.sha,
            'shortMessage': self.short_message,
            'message': self.message,
            'url': self.url,
            'authorLogin': self.author_login,
            'authorName': self.author_name,
            'authorEmail': self.author_email,
            'authorAvatarUrl': self.author_avatar_url,
            'committedAt': self.committed_at,
            'parents': list(self.parents),
            'verified': self.verified,
        })


@dataclass
class PullRequestListResult:
    repository: str
    fetched_at: str
    pull_requests: List[PullRequestSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repository': self.repository,
            'fetchedAt': self.fetched_at,
            'count': len(self.pull_requests),
            'pullRequests': [pr.to_dict() for pr in self.pull_requests],
        }


@dataclass
class ReviewStatusResult:
    repository: str
    fetched_at: str
    window_start: str
    entries: List[ReviewStatusEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repository': self.repository,
            'fetchedAt': self.fetched_at,
            'windowStart': self.window_start,
            'count': len(self.entries),
            'reviewStatus': [entry.to_dict() for entry in self.entries],
        }


@dataclass
class CommitListResult:
    owner: str
    repo: str
    author: str
    fetched_at: str
    since: Optional[str] = None
    until: Optional[str] = None
    commits: List[CommitSummary] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            'repository': f"{self.owner}/{self.repo}",
            'owner': self.owner,
            'repo': self.repo,
            'author': self.author,
            'fetchedAt': self.fetched_at,
            'since': self.since,
            'until': self.until,
            'count': len(self.commits),
            'commits': [commit.to_dict() for commit in self.commits],
        })


@dataclass(frozen=True)
class IssueSearchFilters:
    """Filters for stored issues. None means no constraint."""
    project_id: Optional[str] = None
    label_id: Optional[str] = None
    cycle_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({'projectId': self.project_id, 'labelId': self.label_id, 'cycleId': self.cycle_id})


@dataclass
class IssueSearchResult:
    fetched_at: str
    filters: IssueSearchFilters
    issues: List[Record] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fetchedAt': self.fetched_at,
            'filters': self.filters.to_dict(),
            'count': self.count,
            'issues': self.issues,
        }


@dataclass
class IssueLookupResult:
    """Outcome of a key lookup. A missing issue is a normal result."""
    issue_key: str
    fetched_at: str
    issue: Optional[Record] = None

    @property
    def found(self) -> bool:
        return self.issue is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'issueKey': self.issue_key,
            'fetchedAt': self.fetched_at,
            'found': self.found,
            'issue': self.issue,
        }


@dataclass
class SyncedFile:
    name: str
    file_path: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'filePath': self.file_path, 'count': self.count}


@dataclass
class SyncResult:
    fetched_at: str
    files: List[SyncedFile] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': 'remote',
            'fetchedAt': self.fetched_at,
            'files': [synced.to_dict() for synced in self.files],
        }
