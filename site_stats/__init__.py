"""
SiteStats

Visit counting and online presence tracking for a website.
"""

from .errors import SiteStatsError, StorageError, StorageBusyError, InvalidRequest, MethodNotAllowed

__all__ = [
    "SiteStatsError",
    "StorageError",
    "StorageBusyError",
    "InvalidRequest",
    "MethodNotAllowed",
]
