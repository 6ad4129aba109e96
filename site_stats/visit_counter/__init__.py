"""
Visit Counter Module

Counts visitors, page views and daily visits, and tracks who is online.
"""

from .factory import create_visit_counter_module
from .models import AggregateCounters, StatsSnapshot, VisitorRecord, VisitResult
from .services import VisitCounterService

__all__ = [
    "create_visit_counter_module",
    "VisitCounterService",
    "VisitorRecord",
    "AggregateCounters",
    "VisitResult",
    "StatsSnapshot",
]
