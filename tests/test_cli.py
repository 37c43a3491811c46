"""
Integration tests for the command-line interface
"""

import json
import os
import pytest
from click.testing import CliRunner
from unittest.mock import Mock, patch

from tracker_sync.cli import main, run
from tracker_sync.config import Settings
from tracker_sync.context import ServiceContext
from tracker_sync.errors import UpstreamFetchError
from tracker_sync.figma import FigmaService
from tracker_sync.github import GitHubService
from tracker_sync.linear import LinearService
from tracker_sync.models import (
    CommitListResult,
    IssueSearchFilters,
    PullRequestListResult,
    PullRequestSummary,
    ReviewStatusEntry,
    ReviewStatusResult,
    Snapshot,
)
from tracker_sync.storage import SnapshotStore


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def settings(tmp_path):
    return Settings(storage_dir=str(tmp_path / 'storage'), linear_workspace_id='org-1')


@pytest.fixture
def store(settings):
    """Create a store seeded with issues and teams snapshots."""
    store = SnapshotStore(settings.storage_dir)
    store.write('issues', Snapshot(fetched_at='2024-05-01T00:00:00.000Z', items=[
        {'id': 'i1', 'identifier': 'CORE-1', 'title': 'Crash, on save', 'number': 1,
         'teamId': 't1', 'projectId': 'p1', 'labelIds': ['bug']},
        {'id': 'i2', 'identifier': 'CORE-2', 'title': 'Polish', 'number': 2,
         'teamId': 't1', 'projectId': 'p2', 'labelIds': []},
    ]))
    store.write('teams', Snapshot(fetched_at='2024-05-01T00:00:00.000Z', items=[{'id': 't1', 'key': 'CORE'}]))
    return store


def invoke(runner, services, args):
    return runner.invoke(main, args, obj=services)


class TestLinearCommands:
    """Test cases for the linear command group."""

    def test_local_collection(self, runner, settings, store):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'teams'])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload['source'] == 'local'
        assert payload['workspaceId'] == 'org-1'
        assert payload['count'] == 1
        assert payload['teams'] == [{'key': 'CORE'}]

    def test_local_collection_with_all_fields(self, runner, settings, store):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'teams', '--all-fields'])

        assert json.loads(result.output)['teams'] == [{'id': 't1', 'key': 'CORE'}]

    def test_missing_snapshot_fails_with_hint(self, runner, settings):
        services = ServiceContext(settings)

        result = invoke(runner, services, ['linear', 'cycles'])

        assert result.exit_code == 1
        assert 'Failed to execute linear cycles.' in result.output
        assert 'tracker-sync linear sync' in result.output

    def test_remote_collection_writes_snapshot(self, runner, settings, store):
        linear = Mock(spec=LinearService)
        linear.fetch_workspace_projects.return_value = [{'kind': 'full', 'id': 'p1', 'name': 'Alpha'}]
        services = ServiceContext(settings, linear=linear, store=store)

        result = invoke(runner, services, ['linear', 'projects', '--remote', '--full'])

        assert result.exit_code == 0
        linear.fetch_workspace_projects.assert_called_once_with(full=True)
        payload = json.loads(result.output)
        assert payload['source'] == 'remote'
        assert payload['full'] is True
        assert payload['projects'] == [{'id': 'p1', 'name': 'Alpha'}]
        assert store.read('projects').items == [{'kind': 'full', 'id': 'p1', 'name': 'Alpha'}]

    def test_remote_without_credentials(self, runner, settings, store):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'users', '--remote'])

        assert result.exit_code == 1
        assert 'LINEAR_API_KEY' in result.output

    def test_issue_lookup(self, runner, settings, store):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'issue', 'CORE-1', '--all-fields'])

        payload = json.loads(result.output)
        assert payload['found'] is True
        assert payload['issue']['id'] == 'i1'

    def test_issue_lookup_not_found_is_not_an_error(self, runner, settings, store):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'issue', 'CORE-999'])

        assert result.exit_code == 0
        assert json.loads(result.output)['found'] is False

    def test_issue_lookup_rejects_malformed_key(self, runner, settings, store):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'issue', 'CORE'])

        assert result.exit_code == 1
        assert 'Invalid issue key' in result.output

    def test_search_issues_csv(self, runner, settings, store):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'search-issues', '--label', 'bug', '--format', 'csv'])

        assert result.exit_code == 0
        assert result.output == 'identifier,title\nCORE-1,"Crash, on save"\n'

    def test_search_issues_output_file(self, runner, settings, store, tmp_path):
        services = ServiceContext(settings, store=store)
        target = tmp_path / 'exports' / 'issues.json'

        result = invoke(runner, services, ['linear', 'search-issues', '--project', 'p2', '--output', str(target)])

        assert result.exit_code == 0
        assert f'Saved output to {target}' in result.output
        payload = json.loads(target.read_text(encoding='utf-8'))
        assert payload['filters'] == IssueSearchFilters(project_id='p2').to_dict()
        assert payload['count'] == 1

    def test_output_without_path_uses_exports_dir(self, runner, settings, store, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'teams', '--format', 'csv', '--output'])

        assert result.exit_code == 0
        exports = os.listdir(tmp_path / 'storage' / 'exports')
        assert len(exports) == 1
        assert exports[0].startswith('linear-teams-')
        assert exports[0].endswith('.csv')

    def test_sync(self, runner, settings, store):
        linear = Mock(spec=LinearService)
        linear.master_fetchers.return_value = {
            'teams': Mock(return_value=[{'id': 't1', 'key': 'CORE'}]),
            'users': Mock(return_value=[]),
        }
        services = ServiceContext(settings, linear=linear, store=store)

        result = invoke(runner, services, ['linear', 'sync', '--output', str(settings.storage_dir + '/sync.json')])

        assert result.exit_code == 0
        with open(settings.storage_dir + '/sync.json', encoding='utf-8') as f:
            payload = json.load(f)
        assert payload['source'] == 'remote'
        assert [entry['name'] for entry in payload['files']] == ['teams', 'users']

    def test_sync_failure_exits_nonzero(self, runner, settings, store):
        linear = Mock(spec=LinearService)
        linear.master_fetchers.return_value = {'teams': Mock(side_effect=UpstreamFetchError('Linear down'))}
        services = ServiceContext(settings, linear=linear, store=store)

        result = invoke(runner, services, ['linear', 'sync'])

        assert result.exit_code == 1
        assert 'Failed to execute linear sync.' in result.output
        assert 'Linear down' in result.output

    def test_corrupt_snapshot_fails_cleanly(self, runner, settings, store):
        with open(store.path_for('issues'), 'w', encoding='utf-8') as f:
            f.write('{not json')
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'issues'])

        assert result.exit_code == 1
        assert 'Failed to execute linear issues.' in result.output
        assert 'corrupt' in result.output

    def test_output_to_directory_fails_cleanly(self, runner, settings, store, tmp_path):
        services = ServiceContext(settings, store=store)

        result = invoke(runner, services, ['linear', 'teams', '--output', str(tmp_path)])

        assert result.exit_code == 1
        assert 'Failed to save output.' in result.output
        assert f'Could not write output to {tmp_path}' in result.output


def make_pr(number, title='Add feature', draft=False):
    return PullRequestSummary(
        number=number, title=title, url=f'https://github.com/acme/widgets/pull/{number}', state='open',
        draft=draft, created_at='2024-05-01T00:00:00Z', updated_at='2024-05-02T00:00:00Z',
        head_ref='feature', base_ref='main', author='octo',
    )


class TestGitHubCommands:
    """Test cases for the github command group."""

    @pytest.fixture
    def github(self):
        return Mock(spec=GitHubService)

    def test_prs(self, runner, settings, github):
        github.fetch_repository_pull_requests.return_value = PullRequestListResult(
            repository='acme/widgets', fetched_at='now', pull_requests=[make_pr(1)]
        )
        services = ServiceContext(settings, github=github)

        result = invoke(runner, services, [
            'github', 'prs', '--state', 'ALL', '--limit', '500', '--created-after', '2024-05-01T00:00:00Z',
        ])

        assert result.exit_code == 0
        kwargs = github.fetch_repository_pull_requests.call_args.kwargs
        assert kwargs['state'] == 'all'
        assert kwargs['limit'] == 200
        assert kwargs['created_after'].isoformat() == '2024-05-01T00:00:00+00:00'
        assert kwargs['repository'] is None
        assert json.loads(result.output)['pullRequests'][0]['number'] == 1

    def test_prs_rejects_zero_limit(self, runner, settings, github):
        result = invoke(runner, ServiceContext(settings, github=github), ['github', 'prs', '--limit', '0'])

        assert result.exit_code == 2
        github.fetch_repository_pull_requests.assert_not_called()

    def test_prs_rejects_bad_timestamp(self, runner, settings, github):
        result = invoke(runner, ServiceContext(settings, github=github), [
            'github', 'prs', '--updated-before', 'yesterday',
        ])

        assert result.exit_code == 1
        assert 'Invalid ISO timestamp for --updated-before' in result.output

    def test_owner_requires_repo(self, runner, settings, github):
        result = invoke(runner, ServiceContext(settings, github=github), ['github', 'prs', '--owner', 'acme'])

        assert result.exit_code == 1
        assert 'Both --owner and --repo' in result.output

    def test_review_status_ready_only(self, runner, settings, github):
        github.fetch_recent_review_status.return_value = ReviewStatusResult(
            repository='acme/widgets', fetched_at='now', window_start='then', entries=[
                ReviewStatusEntry(1, 'Ready', False, False, 'now', reviewers={'alice': 'APPROVED'}),
                ReviewStatusEntry(2, 'WIP thing', True, False, 'now'),
                ReviewStatusEntry(3, 'Draft', False, True, 'now'),
            ]
        )
        services = ServiceContext(settings, github=github)

        result = invoke(runner, services, ['github', 'review-status', '--ready-only', '--days', '3'])

        assert result.exit_code == 0
        github.fetch_recent_review_status.assert_called_once_with(window_days=3, limit=50, repository=None)
        entries = json.loads(result.output)['reviewStatus']
        assert [entry['number'] for entry in entries] == [1]
        assert entries[0]['reviewers'] == {'alice': 'APPROVED'}

    def test_commits_with_window_boundary(self, runner, settings, github):
        github.fetch_user_commits.return_value = CommitListResult(
            owner='acme', repo='widgets', author='octo', fetched_at='now'
        )
        services = ServiceContext(settings, github=github)

        result = invoke(runner, services, [
            'github', 'commits', '--user', 'octo', '--days', '2',
            '--timezone', 'America/New_York', '--window-boundary', '202406010000',
        ])

        assert result.exit_code == 0
        kwargs = github.fetch_user_commits.call_args.kwargs
        assert kwargs['author'] == 'octo'
        assert kwargs['limit'] == 40
        assert kwargs['until'].isoformat() == '2024-06-01T04:00:00+00:00'
        assert kwargs['since'].isoformat() == '2024-05-30T04:00:00+00:00'
        payload = json.loads(result.output)
        assert payload['windowDays'] == 2
        assert payload['windowBoundary'] == '2024-06-01T04:00:00.000Z'
        assert payload['timeZone'] == 'America/New_York'

    def test_commits_invalid_timezone(self, runner, settings, github):
        result = invoke(runner, ServiceContext(settings, github=github), [
            'github', 'commits', '--user', 'octo', '--timezone', 'Nowhere/City',
        ])

        assert result.exit_code == 1
        github.fetch_user_commits.assert_not_called()

    def test_commits_invalid_boundary(self, runner, settings, github):
        result = invoke(runner, ServiceContext(settings, github=github), [
            'github', 'commits', '--user', 'octo', '--timezone', 'UTC', '--window-boundary', '20240230',
        ])

        assert result.exit_code == 1
        assert 'calendar' in result.output

    def test_commits_requires_user(self, runner, settings, github):
        result = invoke(runner, ServiceContext(settings, github=github), ['github', 'commits'])
        assert result.exit_code == 2

    def test_github_without_token(self, runner, settings):
        result = invoke(runner, ServiceContext(settings), ['github', 'prs'])

        assert result.exit_code == 1
        assert 'GITHUB_TOKEN' in result.output


class TestFigmaCommands:
    def test_images(self, runner, settings):
        figma = Mock(spec=FigmaService)
        figma.fetch_image_urls.return_value = {'12:34': 'https://img/1'}
        services = ServiceContext(settings, figma=figma)

        result = invoke(runner, services, [
            'figma', 'images', '--file-key', 'FILE', '--node', '12-34', '--node', '5:6', '--scale', '2',
        ])

        assert result.exit_code == 0
        figma.fetch_image_urls.assert_called_once_with('FILE', ['12:34', '5:6'], 'png', 2)
        assert json.loads(result.output)['images'] == [
            {'nodeId': '12:34', 'url': 'https://img/1'},
            {'nodeId': '5:6', 'url': None},
        ]

    def test_images_bad_node(self, runner, settings):
        figma = Mock(spec=FigmaService)
        result = invoke(runner, ServiceContext(settings, figma=figma), [
            'figma', 'images', '--file-key', 'FILE', '--node', 'frame',
        ])

        assert result.exit_code == 1
        figma.fetch_image_urls.assert_not_called()


class TestEntryPoint:
    """Test cases for the console entry point."""

    def test_log_level_comes_from_settings(self, monkeypatch, tmp_path):
        monkeypatch.setenv('LOG_LEVEL', 'debug')
        monkeypatch.setenv('LINEAR_STORAGE_DIR', str(tmp_path))

        with patch('tracker_sync.cli.load_dotenv'), \
                patch('tracker_sync.cli.configure_logging') as configure_logging, \
                patch('tracker_sync.cli.main') as main_group:
            run()

        configure_logging.assert_called_once_with('DEBUG')
        services = main_group.call_args.kwargs['obj']
        assert services.settings.log_level == 'DEBUG'
        assert services.settings.storage_dir == str(tmp_path)
