"""Local snapshot storage for synced Linear collections.

Each collection lives in its own JSON file under `<root>/linear/`, shaped
`{fetchedAt, count, items}` and overwritten as a whole on every sync.
"""

import json
import logging
import os
import tempfile
from typing import Dict, Optional, Tuple

from .errors import DatasetNotFoundError, StorageError, ValidationError
from .models import IssueLookupResult, IssueSearchFilters, IssueSearchResult, Record, Snapshot


def _nested_id(record: Record, key: str) -> Optional[str]:
    value = record.get(key)
    if isinstance(value, dict):
        return value.get('id')
    return None


def resolve_project_id(issue: Record) -> Optional[str]:
    return issue.get('projectId') or _nested_id(issue, '_project') or _nested_id(issue, 'project')


def resolve_cycle_id(issue: Record) -> Optional[str]:
    return issue.get('cycleId') or _nested_id(issue, '_cycle') or _nested_id(issue, 'cycle')


def resolve_label_ids(issue: Record) -> list:
    return issue.get('labelIds') or []


def parse_issue_key(issue_key: str) -> Tuple[str, int]:
    """Split "TEAM-123" into ("TEAM", 123).

    Raises:
        ValidationError: If the prefix is missing or the suffix isn't a number
    """
    team_key, _, number_part = (issue_key or '').partition('-')
    if not team_key or not number_part.isdecimal():
        raise ValidationError(f"Invalid issue key: {issue_key}. Expected format TEAM-123.")
    return team_key, int(number_part)


class SnapshotStore:
    """Reads and writes one JSON snapshot per named collection."""

    def __init__(self, root_dir: str):
        """Initialize the snapshot store.

        Args:
            root_dir: Storage root; snapshots go to `<root_dir>/linear`
        """
        self.root_dir = root_dir
        self.storage_dir = os.path.join(root_dir, 'linear')

    def path_for(self, name: str) -> str:
        return os.path.join(self.storage_dir, f"{name}.json")

    def write(self, name: str, snapshot: Snapshot) -> str:
        """Replace the snapshot file for a collection.

        The file is written to a temporary sibling first and moved into
        place, so readers never see a half-written snapshot.

        Returns:
            Path of the written file
        """
        target = self.path_for(name)
        try:
            os.makedirs(self.storage_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, prefix=f".{name}.", suffix='.tmp')
        except OSError as e:
            raise StorageError(target, f"Could not write snapshot {target}: {e}") from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, target)
        except BaseException as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            if isinstance(e, OSError):
                raise StorageError(target, f"Could not write snapshot {target}: {e}") from e
            raise

        logging.info(f"Saved {name} snapshot to {target} with {snapshot.count} items")
        return target

    def load(self, name: str) -> Optional[Snapshot]:
        """Load a snapshot, or None if it has never been written."""
        path = self.path_for(name)
        if not os.path.exists(path):
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logging.error(f"Could not read {name} snapshot at {path}: {e}")
            raise StorageError(path, f"Snapshot {path} is unreadable or corrupt: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(path, f"Snapshot {path} is not a {{fetchedAt, count, items}} object.")

        snapshot = Snapshot.from_dict(data)
        logging.debug(f"Loaded {name} snapshot from {path} with {snapshot.count} items")
        return snapshot

    def read(self, name: str) -> Snapshot:
        """Load a snapshot that must exist.

        Raises:
            DatasetNotFoundError: If the collection was never synced
        """
        snapshot = self.load(name)
        if snapshot is None:
            raise DatasetNotFoundError(name)
        return snapshot

    def search_issues(self, filters: IssueSearchFilters) -> IssueSearchResult:
        """Filter stored issues by project, label and cycle.

        All given filters must match; a filter left as None matches
        everything. Labels match by membership, project and cycle by
        equality.
        """
        dataset = self.read('issues')

        def matches(issue: Record) -> bool:
            if filters.project_id and resolve_project_id(issue) != filters.project_id:
                return False
            if filters.label_id and filters.label_id not in resolve_label_ids(issue):
                return False
            if filters.cycle_id and resolve_cycle_id(issue) != filters.cycle_id:
                return False
            return True

        issues = [issue for issue in dataset.items if matches(issue)]
        logging.debug(f"Matched {len(issues)} of {dataset.count} stored issues")
        return IssueSearchResult(fetched_at=dataset.fetched_at, filters=filters, issues=issues)

    def _team_keys_by_id(self) -> Dict[str, str]:
        dataset = self.read('teams')
        return {team['id']: team['key'] for team in dataset.items if team.get('id') and team.get('key')}

    def find_issue_by_key(self, issue_key: str) -> IssueLookupResult:
        """Find a stored issue by its TEAM-NUMBER key.

        The team is resolved from the inline `team.key` when present,
        otherwise from `teamId` through the teams snapshot, which is loaded
        at most once per lookup.

        Returns:
            IssueLookupResult; `found` is False when nothing matches
        """
        team_key, issue_number = parse_issue_key(issue_key)
        dataset = self.read('issues')
        team_keys: Optional[Dict[str, str]] = None

        for issue in dataset.items:
            number = issue.get('number')
            if isinstance(number, bool) or number != issue_number:
                continue

            team = issue.get('team')
            resolved = team.get('key') if isinstance(team, dict) else None
            if not resolved and issue.get('teamId'):
                if team_keys is None:
                    team_keys = self._team_keys_by_id()
                resolved = team_keys.get(issue['teamId'])

            if resolved == team_key:
                return IssueLookupResult(issue_key=issue_key, fetched_at=dataset.fetched_at, issue=issue)

        return IssueLookupResult(issue_key=issue_key, fetched_at=dataset.fetched_at, issue=None)
