"""
Data Models for the Visit Counter

Defines the records persisted by the visit counter and the results it returns.
Timestamps are integer Unix epoch seconds; dates are ISO ``YYYY-MM-DD``
strings in server-local time.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class VisitorRecord:
    """Per-client ledger entry."""

    first_visit: int
    last_visit: int
    last_page_view: int
    last_visit_date: str
    visit_count: int
    last_session: int

    @classmethod
    def new(cls, now: int, today: str) -> "VisitorRecord":
        """Record for a client seen for the first time."""
        return cls(
            first_visit=now,
            last_visit=now,
            last_page_view=now,
            last_visit_date=today,
            visit_count=1,
            last_session=now
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "first_visit": self.first_visit,
            "last_visit": self.last_visit,
            "visit_count": self.visit_count,
            "last_page_view": self.last_page_view,
            "last_visit_date": self.last_visit_date,
            "last_session": self.last_session
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisitorRecord":
        """Create from a stored entry, tolerating missing fields."""
        return cls(
            first_visit=int(data.get("first_visit", 0) or 0),
            last_visit=int(data.get("last_visit", 0) or 0),
            last_page_view=int(data.get("last_page_view", 0) or 0),
            last_visit_date=str(data.get("last_visit_date", "") or ""),
            visit_count=max(int(data.get("visit_count", 1) or 1), 1),
            last_session=int(data.get("last_session", 0) or 0)
        )


@dataclass
class AggregateCounters:
    """Site-wide totals."""

    total_visitors: int = 0
    total_views: int = 0
    updated_at: int = 0

    @classmethod
    def empty(cls, now: Optional[int] = None) -> "AggregateCounters":
        return cls(updated_at=int(time.time()) if now is None else now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_visitors": self.total_visitors,
            "total_views": self.total_views,
            "updated_at": self.updated_at
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregateCounters":
        return cls(
            total_visitors=int(data.get("total_visitors", 0) or 0),
            total_views=int(data.get("total_views", 0) or 0),
            updated_at=int(data.get("updated_at", 0) or 0)
        )


@dataclass
class VisitResult:
    """Outcome of recording a visit."""

    is_new_visitor: bool
    today_visit_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "is_new_visitor": self.is_new_visitor,
            "today_visit_count": self.today_visit_count
        }


@dataclass
class StatsSnapshot:
    """Numbers shown by the stats widget."""

    total_visitors: int
    total_views: int
    today_visit_count: int
    online_users: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_visitors": self.total_visitors,
            "total_views": self.total_views,
            "today_visit_count": self.today_visit_count,
            "online_users": self.online_users
        }


def empty_ledger() -> Dict[str, Any]:
    return {}


def empty_online_map() -> Dict[str, Any]:
    return {}


def empty_counters() -> Dict[str, Any]:
    return AggregateCounters.empty().to_dict()
