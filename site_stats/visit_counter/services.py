"""
Visit Counter Service

Classifies incoming visits and keeps the site counters, the visitor ledger
and the online presence map up to date.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from config_manager import SiteStatsConfig

from ..errors import StorageError
from ..storage import StatsStores
from .models import AggregateCounters, StatsSnapshot, VisitorRecord, VisitResult

logger = logging.getLogger(__name__)


def local_date(timestamp: int) -> str:
    """Server-local calendar date of a timestamp."""
    return datetime.fromtimestamp(timestamp).date().isoformat()


def prune_online(online: Dict[str, int], now: int, threshold: int) -> Tuple[Dict[str, int], int]:
    """Drop entries idle for more than threshold seconds.

    Returns:
        Tuple of (remaining entries, number evicted)
    """
    cutoff = now - threshold
    kept = {client: ts for client, ts in online.items() if ts >= cutoff}
    return kept, len(online) - len(kept)


class VisitCounterService:
    """Visit accounting over the counters, ledger and presence documents.

    Every operation holds the stats lock across its whole load-modify-save
    sequence. Settings are fetched from config_provider on every call.
    """

    def __init__(
        self,
        stores: StatsStores,
        config_provider: Callable[[], SiteStatsConfig],
        clock: Callable[[], float] = time.time
    ):
        """Initialize the visit counter service.

        Args:
            stores: The three stats documents and their lock
            config_provider: Returns the current SiteStatsConfig
            clock: Source of the current time when callers pass none
        """
        self.stores = stores
        self.config_provider = config_provider
        self.clock = clock

    def _now(self, now: Optional[float]) -> int:
        return int(self.clock() if now is None else now)

    def _locked(self, config: SiteStatsConfig):
        return self.stores.lock.hold(config.lock_timeout)

    # =====================
    # Document helpers
    # =====================

    def _load_counters(self) -> AggregateCounters:
        try:
            return AggregateCounters.from_dict(self.stores.counters.load())
        except (TypeError, ValueError):
            logger.warning("Corrupt counters document, starting from zero")
            return AggregateCounters.empty()

    def _load_online(self) -> Dict[str, int]:
        online = {}
        for client, ts in self.stores.online.load().items():
            try:
                online[client] = int(ts)
            except (TypeError, ValueError):
                logger.warning(f"Dropping corrupt presence entry for {client}")
        return online

    @staticmethod
    def _parse_record(entry: Any) -> Optional[VisitorRecord]:
        if not isinstance(entry, dict):
            return None
        try:
            return VisitorRecord.from_dict(entry)
        except (TypeError, ValueError):
            return None

    def _lookup_visitor(self, visitors: Dict[str, Any], client_id: str) -> Optional[VisitorRecord]:
        if client_id not in visitors:
            return None
        record = self._parse_record(visitors[client_id])
        if record is None:
            logger.warning(f"Corrupt visitor record for {client_id}, treating as unseen")
        return record

    # =====================
    # Operations
    # =====================

    def record_visit(
        self,
        client_id: str,
        is_new_session: bool = False,
        now: Optional[float] = None
    ) -> VisitResult:
        """Record a visit from client_id.

        Args:
            client_id: Resolved client identifier
            is_new_session: Client-side hint that a new browser session started
            now: Unix timestamp of the visit (defaults to the clock)

        Returns:
            VisitResult with the new-visitor flag and today's visit count

        Raises:
            StorageError: A document could not be written. Documents already
                written for this visit are restored before the error propagates.
        """
        config = self.config_provider()
        now = self._now(now)
        today = local_date(now)

        with self._locked(config):
            visitors = self.stores.visitors.load()
            counters = self._load_counters()
            previous_entry = visitors.get(client_id)
            previous_counters = counters.to_dict()
            record = self._lookup_visitor(visitors, client_id)
            counters_changed = False

            if record is None:
                record = VisitorRecord.new(now, today)
                counters.total_visitors += 1
                counters.total_views += 1
                counters_changed = True
                result = VisitResult(is_new_visitor=True, today_visit_count=1)
                logger.info(f"New visitor {client_id} (#{counters.total_visitors})")
            else:
                if now - record.last_page_view >= config.anti_spam_interval:
                    counters.total_views += 1
                    counters_changed = True
                    record.last_page_view = now
                else:
                    logger.debug(f"View from {client_id} inside anti-spam window, not counted")

                if record.last_visit_date == today:
                    if is_new_session or now - record.last_session >= config.session_interval:
                        record.visit_count += 1
                        record.last_session = now
                else:
                    record.visit_count = 1
                    record.last_visit_date = today
                    record.last_session = now

                record.last_visit = now
                result = VisitResult(is_new_visitor=False, today_visit_count=record.visit_count)

            visitors[client_id] = record.to_dict()
            ledger_saved = counters_saved = False
            try:
                self.stores.visitors.save(visitors)
                ledger_saved = True

                if counters_changed:
                    counters.updated_at = now
                    self.stores.counters.save(counters.to_dict())
                    counters_saved = True

                self._refresh_presence(client_id, now, config)
            except StorageError:
                if counters_saved:
                    self._restore(self.stores.counters, previous_counters)
                if ledger_saved:
                    if previous_entry is None:
                        del visitors[client_id]
                    else:
                        visitors[client_id] = previous_entry
                    self._restore(self.stores.visitors, visitors)
                raise

        return result

    @staticmethod
    def _restore(store, document: Dict[str, Any]) -> None:
        """Put back a document written earlier in a visit that failed later."""
        try:
            store.save(document)
        except StorageError as e:
            logger.error(f"Could not roll back stats document: {e}")

    def _refresh_presence(self, client_id: str, now: int, config: SiteStatsConfig) -> None:
        online, evicted = prune_online(self._load_online(), now, config.online_user_timeout)
        if evicted:
            logger.debug(f"Evicted {evicted} idle presence entries")
        online[client_id] = now
        self.stores.online.save(online)

    def update_online_presence(self, client_id: str, now: Optional[float] = None) -> None:
        """Mark client_id as online at now, dropping entries past the online timeout."""
        config = self.config_provider()
        now = self._now(now)
        with self._locked(config):
            self._refresh_presence(client_id, now, config)

    def get_stats(self, client_id: str, now: Optional[float] = None) -> StatsSnapshot:
        """Build the stats snapshot for client_id.

        The presence map is pruned with the presence window (not the online
        timeout) and saved back only if entries expired.
        """
        config = self.config_provider()
        now = self._now(now)
        today = local_date(now)

        with self._locked(config):
            counters = self._load_counters()

            today_visit_count = 1
            record = self._lookup_visitor(self.stores.visitors.load(), client_id)
            if record is not None and record.last_visit_date == today:
                today_visit_count = record.visit_count

            online, evicted = prune_online(self._load_online(), now, config.online_presence_window)
            if evicted:
                self.stores.online.save(online)

        return StatsSnapshot(
            total_visitors=counters.total_visitors,
            total_views=counters.total_views,
            today_visit_count=today_visit_count,
            online_users=len(online)
        )

    def cleanup_online_presence(self, now: Optional[float] = None) -> int:
        """Evict presence entries idle longer than the online timeout.

        Returns:
            Number of entries removed
        """
        config = self.config_provider()
        now = self._now(now)
        with self._locked(config):
            online, evicted = prune_online(self._load_online(), now, config.online_user_timeout)
            if evicted:
                self.stores.online.save(online)
                logger.info(f"Cleaned up {evicted} idle presence entries")
        return evicted

    # =====================
    # Read-only helpers
    # =====================

    def get_visitor(self, client_id: str) -> Optional[VisitorRecord]:
        """Ledger entry for client_id, if any."""
        return self._lookup_visitor(self.stores.visitors.load(), client_id)

    def get_summary(self) -> Dict[str, int]:
        """Raw document sizes and totals, without pruning."""
        counters = self._load_counters()
        return {
            "total_visitors": counters.total_visitors,
            "total_views": counters.total_views,
            "updated_at": counters.updated_at,
            "ledger_entries": len(self.stores.visitors.load()),
            "presence_entries": len(self._load_online())
        }
