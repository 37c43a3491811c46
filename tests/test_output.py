"""
Unit tests for JSON/CSV rendering and field whitelisting
"""

import json
import os
from datetime import datetime

import pytest

from tracker_sync.errors import StorageError
from tracker_sync.models import IssueLookupResult
from tracker_sync.output import (
    apply_analytics_filter,
    array_to_csv,
    build_default_output_path,
    filter_fields,
    normalize_format,
    render_payload,
    write_payload,
)


class TestArrayToCsv:
    """Test cases for CSV serialization."""

    def test_header_is_union_of_keys_in_first_seen_order(self):
        result = array_to_csv([{'a': 1}, {'b': 2}])
        assert result == 'a,b\n1,\n,2'

    def test_quotes_cells_with_commas_and_quotes(self):
        result = array_to_csv([{'title': 'Fix, then "ship"'}])
        assert result == 'title\n"Fix, then ""ship"""'

    def test_quotes_cells_with_newlines(self):
        result = array_to_csv([{'body': 'line one\nline two'}])
        assert result == 'body\n"line one\nline two"'

    def test_nested_values_are_json(self):
        result = array_to_csv([{'labels': ['bug', 'ui'], 'meta': {'k': 1}}])
        assert result == 'labels,meta\n"[""bug"",""ui""]","{""k"":1}"'

    def test_booleans_and_nulls(self):
        result = array_to_csv([{'draft': False, 'merged': True, 'author': None}])
        assert result == 'draft,merged,author\nfalse,true,'

    def test_empty_rows_give_empty_string(self):
        assert array_to_csv([]) == ''

    def test_no_trailing_newline(self):
        assert not array_to_csv([{'a': 1}, {'a': 2}]).endswith('\n')

    def test_single_empty_column_is_an_empty_line(self):
        assert array_to_csv([{'a': None}, {'a': 1}, {'a': ''}]) == 'a\n\n1\n'

    def test_empty_cells_beside_others_stay_unquoted(self):
        assert array_to_csv([{'a': None, 'b': ''}]) == 'a,b\n,'


class TestFieldWhitelist:
    """Test cases for analytics field filtering."""

    def test_keeps_only_whitelisted_fields(self):
        result = filter_fields([{'name': 'Bug', 'color': '#f00', 'id': 'l1', 'team': {'id': 't'}}], 'labels')
        assert result == [{'name': 'Bug', 'color': '#f00'}]

    def test_never_adds_missing_fields(self):
        result = filter_fields({'title': 'Only title'}, 'issue')
        assert result == {'title': 'Only title'}

    def test_unknown_collection_is_unchanged(self):
        payload = {'images': {'1:2': 'https://img'}}
        assert apply_analytics_filter(payload, 'images') == payload

    def test_replaces_collection_subtree_only(self):
        payload = {'repository': 'o/r', 'count': 1, 'commits': [{'sha': 'abc', 'url': 'https://x', 'verified': True}]}

        result = apply_analytics_filter(payload, 'commits')

        assert result == {'repository': 'o/r', 'count': 1, 'commits': [{'sha': 'abc'}]}
        assert payload['commits'][0]['url'] == 'https://x'

    def test_unkeyed_list_payload_is_projected(self):
        result = apply_analytics_filter([{'name': 'Core', 'key': 'CORE', 'id': 't1'}], 'teams')
        assert result == [{'name': 'Core', 'key': 'CORE'}]


class TestRenderPayload:
    """Test cases for rendering payloads."""

    def test_json_is_pretty_printed(self):
        result = render_payload({'teams': [{'name': 'Ü'}]}, 'json', 'teams')
        assert result == '{\n  "teams": [\n    {\n      "name": "Ü"\n    }\n  ]\n}'

    def test_all_fields_skips_whitelist(self):
        payload = {'teams': [{'id': 't1', 'name': 'Core'}]}
        result = json.loads(render_payload(payload, 'json', 'teams', skip_analytics_filter=True))
        assert result == payload

    def test_csv_uses_collection_rows(self):
        payload = {'fetchedAt': 'now', 'teams': [{'name': 'Core', 'key': 'CORE'}]}
        assert render_payload(payload, 'CSV', 'teams') == 'name,key\nCore,CORE'

    def test_csv_of_empty_list_is_empty_string(self):
        assert render_payload([], 'csv', 'issues') == ''
        assert render_payload([], 'csv') == ''

    def test_csv_of_single_record(self):
        payload = IssueLookupResult(issue_key='CORE-1', fetched_at='now', issue={'title': 'Bug', 'id': 'x'})
        assert render_payload(payload, 'csv', 'issue') == 'title\nBug'

    def test_csv_of_unkeyed_object_is_one_row(self):
        payload = {'source': 'remote', 'files': [{'name': 'teams'}]}
        assert render_payload(payload, 'csv') == 'source,files\nremote,"[{""name"":""teams""}]"'

    def test_csv_of_missing_collection_is_empty(self):
        payload = IssueLookupResult(issue_key='CORE-9', fetched_at='now', issue=None)
        assert render_payload(payload, 'csv', 'issue') == ''

    def test_result_objects_are_converted(self):
        payload = IssueLookupResult(issue_key='CORE-9', fetched_at='now', issue=None)
        assert json.loads(render_payload(payload, 'json', 'issue')) == {
            'issueKey': 'CORE-9',
            'fetchedAt': 'now',
            'found': False,
            'issue': None,
        }


class TestNormalizeFormat:
    @pytest.mark.parametrize('value,expected', [
        ('csv', 'csv'),
        ('CSV', 'csv'),
        ('json', 'json'),
        ('xml', 'json'),
        (None, 'json'),
    ])
    def test_normalizes(self, value, expected):
        assert normalize_format(value) == expected


class TestWritePayload:
    """Test cases for writing rendered output to disk."""

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / 'deep' / 'er' / 'out.csv'

        path = write_payload({'users': [{'name': 'Ada'}]}, 'csv', str(target), 'users')

        assert path == str(target)
        assert target.read_text(encoding='utf-8') == 'name\nAda'

    def test_returns_absolute_path(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        path = write_payload({'a': 1}, 'json', 'relative.json')

        assert os.path.isabs(path)
        assert os.path.exists(path)

    def test_directory_target_raises_storage_error(self, tmp_path):
        with pytest.raises(StorageError) as exc_info:
            write_payload({'a': 1}, 'json', str(tmp_path))

        assert exc_info.value.path == str(tmp_path)

    def test_default_output_path(self, tmp_path):
        path = build_default_output_path('github-prs', 'csv', str(tmp_path), datetime(2024, 5, 1, 12, 30, 15, 123000))

        assert path == os.path.join(
            str(tmp_path), 'storage', 'exports', 'github-prs-2024-05-01T12-30-15-123000.csv'
        )
