"""Linear workspace client.

Each list query is a GraphQL connection drained through the cursor
paginator, then projected into flat records. Project and team records carry
a `kind` tag ('summary' or 'full') so callers can tell the shapes apart.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from .api_client import APIClient
from .errors import ConfigurationError
from .models import Record
from .pagination import Connection, paginate_connection

LINEAR_API_URL = 'https://api.linear.app/graphql'
PAGE_SIZE = 50

VIEWER_QUERY = """
query {
  viewer {
    organization { id name }
  }
}
"""

PROJECTS_QUERY = """
query Projects($first: Int!, $after: String) {
  projects(first: $first, after: $after, includeArchived: false) {
    nodes {
      id
      name
      state
      description
      targetDate
      startDate
      createdAt
      updatedAt
      health
      color
      progress
      url
      teams(first: 50) { nodes { id } }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

TEAMS_QUERY = """
query Teams($first: Int!, $after: String) {
  teams(first: $first, after: $after, includeArchived: false) {
    nodes {
      id
      name
      key
      description
      cycleDuration
      triageEnabled
      color
      timezone
      issueEstimationType
      createdAt
      updatedAt
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

ISSUES_QUERY = """
query Issues($first: Int!, $after: String) {
  issues(first: $first, after: $after, includeArchived: false) {
    nodes {
      id
      identifier
      number
      title
      description
      priority
      priorityLabel
      branchName
      url
      dueDate
      estimate
      trashed
      createdAt
      updatedAt
      completedAt
      archivedAt
      autoArchivedAt
      autoClosedAt
      canceledAt
      startedAt
      startedTriageAt
      triagedAt
      addedToCycleAt
      snoozedUntilAt
      team { id key }
      project { id }
      cycle { id }
      state { id name }
      assignee { id }
      labels(first: 50) { nodes { id } }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

USERS_QUERY = """
query Users($first: Int!, $after: String) {
  users(first: $first, after: $after) {
    nodes {
      id
      name
      displayName
      email
      active
      admin
      avatarUrl
      statusEmoji
      statusLabel
      disableReason
      createdAt
      updatedAt
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

LABELS_QUERY = """
query Labels($first: Int!, $after: String) {
  issueLabels(first: $first, after: $after, includeArchived: false) {
    nodes {
      id
      name
      description
      color
      archivedAt
      createdAt
      updatedAt
      team { id }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""

CYCLES_QUERY = """
query Cycles($first: Int!, $after: String) {
  cycles(first: $first, after: $after) {
    nodes {
      id
      name
      number
      description
      startsAt
      endsAt
      completedAt
      progress
      createdAt
      updatedAt
      team { id }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""


def _nested_id(node: Dict, key: str) -> Optional[str]:
    value = node.get(key)
    if isinstance(value, dict):
        return value.get('id')
    return None


def _connection_ids(node: Dict, key: str) -> List[str]:
    value = node.get(key) or {}
    return [item['id'] for item in value.get('nodes') or [] if item and item.get('id')]


def summarize_project(node: Dict) -> Record:
    return {
        'kind': 'summary',
        'id': node.get('id'),
        'name': node.get('name'),
        'state': node.get('state'),
        'targetDate': node.get('targetDate'),
        'url': node.get('url'),
        'teamIds': _connection_ids(node, 'teams'),
    }


def project_to_record(node: Dict) -> Record:
    record = {key: value for key, value in node.items() if key != 'teams'}
    record['teamIds'] = _connection_ids(node, 'teams')
    return {'kind': 'full', **record}


def summarize_team(node: Dict) -> Record:
    return {
        'kind': 'summary',
        'id': node.get('id'),
        'name': node.get('name'),
        'key': node.get('key'),
        'description': node.get('description'),
    }


def team_to_record(node: Dict) -> Record:
    return {'kind': 'full', **node}


def normalize_issue(node: Dict) -> Record:
    """Flatten nested references of an issue into id fields.

    The nested `team` object stays so its key can build the TEAM-NUMBER
    identifier without the teams snapshot.
    """
    record = {key: value for key, value in node.items()
              if key not in ('project', 'cycle', 'state', 'assignee', 'labels')}
    record['projectId'] = node.get('projectId') or _nested_id(node, 'project')
    record['cycleId'] = node.get('cycleId') or _nested_id(node, 'cycle')
    record['teamId'] = node.get('teamId') or _nested_id(node, 'team')
    record['stateId'] = node.get('stateId') or _nested_id(node, 'state')
    record['stateName'] = (node.get('state') or {}).get('name')
    record['assigneeId'] = node.get('assigneeId') or _nested_id(node, 'assignee')
    record['labelIds'] = node.get('labelIds') or _connection_ids(node, 'labels')
    return record


def team_scoped_record(node: Dict) -> Record:
    """Project a label or cycle, replacing the nested team with its id."""
    record = {key: value for key, value in node.items() if key != 'team'}
    record['teamId'] = _nested_id(node, 'team')
    return record


class LinearService:
    """Fetches workspace collections from the Linear GraphQL API."""

    def __init__(self, api_key: str, workspace_id: str = None, api_client: APIClient = None):
        """Initialize the Linear service.

        Args:
            api_key: Linear personal API key
            workspace_id: Expected organization id; checked once before the
                first query
            api_client: Optional pre-built transport (tests)
        """
        if not api_key and api_client is None:
            raise ConfigurationError("Linear is not configured. Set LINEAR_API_KEY.")

        self.workspace_id = workspace_id
        self.api_client = api_client or APIClient(
            LINEAR_API_URL,
            headers={'Authorization': api_key, 'Content-Type': 'application/json'},
            name='Linear',
        )
        self._validated_workspace_id: Optional[str] = None
        logging.info("Initialized Linear client")

    def ensure_workspace_access(self) -> str:
        """Check that the API key belongs to the configured workspace.

        Returns:
            The authenticated organization id

        Raises:
            ConfigurationError: If the organization does not match
        """
        if self._validated_workspace_id:
            return self._validated_workspace_id

        data = self.api_client.post_graphql(VIEWER_QUERY)
        organization_id = ((data.get('viewer') or {}).get('organization') or {}).get('id')

        if self.workspace_id and organization_id != self.workspace_id:
            raise ConfigurationError(
                f"Authenticated workspace ({organization_id}) does not match "
                f"expected workspace ({self.workspace_id})."
            )

        self._validated_workspace_id = organization_id
        return organization_id

    def _page_fetcher(self, query: str, field: str) -> Callable[[Optional[str]], Connection]:
        def fetch_page(cursor: Optional[str]) -> Connection:
            data = self.api_client.post_graphql(query, {'first': PAGE_SIZE, 'after': cursor})
            return Connection.from_graphql(data.get(field) or {})
        return fetch_page

    def _fetch_all(self, query: str, field: str) -> List[Dict[str, Any]]:
        self.ensure_workspace_access()
        nodes = paginate_connection(self._page_fetcher(query, field))
        logging.info(f"Fetched {len(nodes)} {field} from Linear")
        return nodes

    def fetch_workspace_projects(self, full: bool = False) -> List[Record]:
        nodes = self._fetch_all(PROJECTS_QUERY, 'projects')
        project = project_to_record if full else summarize_project
        return [project(node) for node in nodes]

    def fetch_workspace_teams(self, full: bool = False) -> List[Record]:
        nodes = self._fetch_all(TEAMS_QUERY, 'teams')
        project = team_to_record if full else summarize_team
        return [project(node) for node in nodes]

    def fetch_workspace_issues(self) -> List[Record]:
        return [normalize_issue(node) for node in self._fetch_all(ISSUES_QUERY, 'issues')]

    def fetch_workspace_users(self) -> List[Record]:
        return [dict(node) for node in self._fetch_all(USERS_QUERY, 'users')]

    def fetch_workspace_labels(self) -> List[Record]:
        return [team_scoped_record(node) for node in self._fetch_all(LABELS_QUERY, 'issueLabels')]

    def fetch_workspace_cycles(self) -> List[Record]:
        return [team_scoped_record(node) for node in self._fetch_all(CYCLES_QUERY, 'cycles')]

    def master_fetchers(self) -> Dict[str, Callable[[], List[Record]]]:
        """Fetch callables for every master collection, keyed by snapshot name."""
        # Parallel fetches reuse the cached organization id
        self.ensure_workspace_access()
        return {
            'teams': lambda: self.fetch_workspace_teams(full=True),
            'projects': lambda: self.fetch_workspace_projects(full=True),
            'issues': self.fetch_workspace_issues,
            'users': self.fetch_workspace_users,
            'labels': self.fetch_workspace_labels,
            'cycles': self.fetch_workspace_cycles,
        }
