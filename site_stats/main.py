"""
Flask application for the SiteStats service.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager, SiteStatsConfig

from .visit_counter.factory import create_visit_counter_module

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent


def create_app(
    config_manager: Optional[ConfigManager] = None,
    data_dir: Optional[Path] = None,
    config_provider: Optional[Callable[[], SiteStatsConfig]] = None
) -> Flask:
    """Build the Flask app with the visit counter registered.

    Args:
        config_manager: Configuration source (a fresh ConfigManager by default)
        data_dir: Overrides the configured data directory
        config_provider: Overrides where per-request stats settings come from

    Returns:
        Configured Flask application
    """
    if config_manager is None:
        config_manager = ConfigManager()

    if config_provider is None:
        def config_provider() -> SiteStatsConfig:
            config_manager.reload_if_modified()
            return config_manager.get_site_stats_config()

    paths_config = config_manager.get_paths_config()
    if data_dir is None:
        data_dir = Path(paths_config.data_dir)
        if not data_dir.is_absolute():
            data_dir = BASE_DIR / data_dir

    app = Flask(__name__)
    # Client addresses come from the stats resolver, so X-Forwarded-For is left alone here
    app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for   = 0,
            x_proto = 1,     # trust 1 hop for X-Forwarded-Proto
            x_host  = 1,     # trust 1 hop for X-Forwarded-Host
            x_prefix= 1)     # honour X-Forwarded-Prefix when mounted under a path

    visit_counter_module = create_visit_counter_module(
        config_provider=config_provider,
        data_dir=data_dir,
        storage=paths_config.storage
    )
    app.register_blueprint(visit_counter_module["blueprint"])
    app.extensions["site_stats"] = visit_counter_module

    logger.info(f"SiteStats ready ({paths_config.storage} storage, data dir {data_dir})")
    return app
