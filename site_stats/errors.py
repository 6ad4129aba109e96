"""
Error types shared by the SiteStats subsystems.

Each error carries the HTTP status the web boundary answers with.
"""


class SiteStatsError(Exception):
    """Base class for SiteStats failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StorageError(SiteStatsError):
    """A durable read or write failed; the change is not committed."""

    status_code = 500


class StorageBusyError(StorageError):
    """The stats lock could not be acquired in time."""

    status_code = 503


class InvalidRequest(SiteStatsError):
    """Malformed action or field, rejected before any state change."""

    status_code = 400


class MethodNotAllowed(SiteStatsError):
    """Wrong HTTP verb."""

    status_code = 405
