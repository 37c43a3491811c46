"""
Unit tests for time zone resolution and window boundaries
"""

import pytest
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from tracker_sync.errors import InvalidTimeZoneError, TimeZoneResolutionError, ValidationError
from tracker_sync.models import LocalDateTime, TimeZoneSpec
from tracker_sync.time_window import (
    convert_local_datetime_to_utc,
    format_utc,
    parse_local_datetime_input,
    resolve_commit_window,
    resolve_time_zone,
)


class TestParseLocalDateTimeInput:
    """Test cases for YYYYMMDD[HHMM] parsing."""

    def test_parses_date_and_time(self):
        assert parse_local_datetime_input('202405300000') == LocalDateTime(2024, 5, 30, 0, 0)

    def test_parses_time_component(self):
        assert parse_local_datetime_input('202405301745') == LocalDateTime(2024, 5, 30, 17, 45)

    def test_date_only_defaults_to_midnight(self):
        assert parse_local_datetime_input('20240601') == LocalDateTime(2024, 6, 1, 0, 0)

    def test_separators_are_ignored(self):
        assert parse_local_datetime_input('2024-06-01') == LocalDateTime(2024, 6, 1, 0, 0)

    def test_rejects_wrong_length(self):
        with pytest.raises(ValidationError, match='Invalid'):
            parse_local_datetime_input('2024010112')

    def test_rejects_month_out_of_range(self):
        with pytest.raises(ValidationError, match='Month'):
            parse_local_datetime_input('2024-13-01')

    def test_rejects_day_out_of_range(self):
        with pytest.raises(ValidationError, match='Day'):
            parse_local_datetime_input('20240132')

    def test_rejects_hour_out_of_range(self):
        with pytest.raises(ValidationError, match='Hour'):
            parse_local_datetime_input('202401012400')

    def test_rejects_minute_out_of_range(self):
        with pytest.raises(ValidationError, match='Minute'):
            parse_local_datetime_input('202401011260')

    def test_rejects_february_30(self):
        """Test the calendar check, not just digit ranges."""
        with pytest.raises(ValidationError, match='calendar'):
            parse_local_datetime_input('20240230')

    def test_rejects_31st_of_30_day_month(self):
        with pytest.raises(ValidationError, match='calendar'):
            parse_local_datetime_input('20240431')

    def test_accepts_leap_day(self):
        assert parse_local_datetime_input('20240229') == LocalDateTime(2024, 2, 29, 0, 0)


class TestResolveTimeZone:
    """Test cases for --timezone resolution."""

    def test_accepts_iana_identifiers(self):
        spec, label = resolve_time_zone('Asia/Tokyo')
        assert spec == TimeZoneSpec.iana('Asia/Tokyo')
        assert label == 'Asia/Tokyo'

    def test_accepts_compact_offsets(self):
        spec, label = resolve_time_zone('+0900')
        assert spec == TimeZoneSpec.offset(540)
        assert label == 'UTC+09:00'

    def test_accepts_negative_offsets_with_colon(self):
        spec, label = resolve_time_zone('-05:30')
        assert spec == TimeZoneSpec.offset(-330)
        assert label == 'UTC-05:30'

    def test_local_resolves_to_an_iana_zone(self):
        spec, label = resolve_time_zone('local')
        assert spec.kind == 'iana'
        assert label == spec.identifier
        ZoneInfo(spec.identifier)

    def test_none_behaves_like_local(self):
        assert resolve_time_zone(None) == resolve_time_zone('local')

    def test_local_uses_tz_environment(self, monkeypatch):
        monkeypatch.setenv('TZ', 'Europe/Berlin')
        spec, label = resolve_time_zone('LOCAL')
        assert spec == TimeZoneSpec.iana('Europe/Berlin')

    def test_rejects_unknown_zone(self):
        with pytest.raises(InvalidTimeZoneError):
            resolve_time_zone('Mars/Olympus_Mons')

    def test_invalid_zone_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            resolve_time_zone('not a zone')


class TestConvertLocalDateTimeToUtc:
    """Test cases for local wall-clock to UTC conversion."""

    def test_converts_offset_zones(self):
        result = convert_local_datetime_to_utc(LocalDateTime(2024, 1, 1, 0, 0), TimeZoneSpec.offset(540))
        assert result == datetime(2023, 12, 31, 15, 0, tzinfo=timezone.utc)

    def test_converts_negative_offset(self):
        result = convert_local_datetime_to_utc(LocalDateTime(2024, 1, 1, 0, 0), TimeZoneSpec.offset(-330))
        assert result == datetime(2024, 1, 1, 5, 30, tzinfo=timezone.utc)

    def test_converts_standard_time(self):
        result = convert_local_datetime_to_utc(
            LocalDateTime(2024, 2, 1, 0, 0), TimeZoneSpec.iana('America/New_York')
        )
        assert format_utc(result) == '2024-02-01T05:00:00.000Z'

    def test_converts_daylight_time(self):
        result = convert_local_datetime_to_utc(
            LocalDateTime(2024, 6, 1, 0, 0), TimeZoneSpec.iana('America/New_York')
        )
        assert format_utc(result) == '2024-06-01T04:00:00.000Z'

    @pytest.mark.parametrize('value', [
        LocalDateTime(2024, 3, 9, 23, 30),
        LocalDateTime(2024, 3, 10, 4, 0),
        LocalDateTime(2024, 11, 2, 12, 0),
        LocalDateTime(2024, 11, 4, 0, 15),
    ])
    def test_round_trip_around_transitions(self, value):
        """Test that the result renders back to the same wall clock."""
        zone = ZoneInfo('America/New_York')
        result = convert_local_datetime_to_utc(value, TimeZoneSpec.iana('America/New_York'))
        local = result.astimezone(zone)

        assert (local.year, local.month, local.day, local.hour, local.minute) == \
            (value.year, value.month, value.day, value.hour, value.minute)

    def test_result_is_utc_aware(self):
        result = convert_local_datetime_to_utc(LocalDateTime(2024, 6, 1, 9, 0), TimeZoneSpec.iana('Asia/Tokyo'))
        assert result.tzinfo == timezone.utc
        assert result == datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc)

    def test_nonexistent_local_time_fails(self):
        """Test that a wall-clock time inside the spring-forward gap cannot be resolved."""
        with pytest.raises(TimeZoneResolutionError):
            convert_local_datetime_to_utc(
                LocalDateTime(2024, 3, 10, 2, 30), TimeZoneSpec.iana('America/New_York')
            )


class TestCommitWindow:
    """Test cases for window bounds."""

    def test_window_ends_at_boundary(self):
        boundary = datetime(2024, 6, 1, 4, 0, tzinfo=timezone.utc)
        since, until = resolve_commit_window(7, boundary)

        assert until == boundary
        assert since == boundary - timedelta(days=7)

    def test_window_defaults_to_now(self):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)
        since, until = resolve_commit_window(1, now=now)

        assert until == now
        assert since == datetime(2024, 5, 31, tzinfo=timezone.utc)


class TestFormatUtc:
    def test_formats_with_milliseconds(self):
        value = datetime(2024, 6, 1, 4, 5, 6, 789000, tzinfo=timezone.utc)
        assert format_utc(value) == '2024-06-01T04:05:06.789Z'
