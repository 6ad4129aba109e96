"""
Factory for creating the visit counter module.
"""
from pathlib import Path
from typing import Callable, Optional

from config_manager import SiteStatsConfig

from ..storage import create_json_stores, create_memory_stores
from .models import empty_counters, empty_ledger, empty_online_map
from .routes import create_visit_counter_blueprint
from .services import VisitCounterService


def create_visit_counter_module(
    config_provider: Callable[[], SiteStatsConfig],
    data_dir: Optional[Path] = None,
    storage: str = "json"
) -> dict:
    """Create visit counter module with service and routes.

    Args:
        config_provider: Returns the current SiteStatsConfig on every call
        data_dir: Directory for the stats documents (json storage only)
        storage: "json" for files under data_dir, "memory" for process-local state

    Returns:
        Dictionary containing the service, the stores and the blueprint
    """
    lock_timeout = config_provider().lock_timeout

    if storage == "memory":
        stores = create_memory_stores(empty_counters, empty_ledger, empty_online_map, lock_timeout)
    else:
        if data_dir is None:
            raise ValueError("data_dir is required for json storage")
        stores = create_json_stores(data_dir, empty_counters, empty_ledger, empty_online_map, lock_timeout)

    # Write default documents so the data directory is complete from the start
    stores.initialize()

    visit_counter_service = VisitCounterService(stores, config_provider)

    blueprint = create_visit_counter_blueprint(
        visit_counter_service=visit_counter_service,
        config_provider=config_provider
    )

    return {
        "service": visit_counter_service,
        "stores": stores,
        "blueprint": blueprint
    }
