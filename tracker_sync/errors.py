"""Exception hierarchy for tracker-sync."""

from typing import Optional


class TrackerSyncError(Exception):
    """Base class for all errors raised by tracker-sync."""


class ConfigurationError(TrackerSyncError):
    """Missing credentials, workspace id or repository settings."""


class ValidationError(TrackerSyncError):
    """Malformed user input (dates, time zones, limits, keys)."""


class InvalidTimeZoneError(ValidationError):
    """A time zone value is neither an IANA identifier nor a UTC offset."""


class TimeZoneResolutionError(TrackerSyncError):
    """Local wall-clock time could not be mapped to a UTC instant."""


class DatasetNotFoundError(TrackerSyncError):
    """A local snapshot was requested before it was ever synced."""

    def __init__(self, name: str, message: str = None):
        self.name = name
        super().__init__(message or f'Local dataset "{name}" not found.')


class StorageError(TrackerSyncError):
    """A snapshot or output file could not be read or written."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class UpstreamFetchError(TrackerSyncError):
    """An upstream API call failed. Never retried."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
