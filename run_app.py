#!/usr/bin/env python3
"""
Simple runner script for the SiteStats Flask application.
"""

from pathlib import Path

from config_manager import config_manager, get_app_config
from site_stats.logging_config import setup_logging, stop_logging
from site_stats.main import create_app

if __name__ == "__main__":
    app_config = get_app_config()
    setup_logging(debug=app_config.debug)

    print("🚀 Starting SiteStats...")
    print(f"📁 Working directory: {Path(__file__).parent}")

    app = create_app(config_manager)
    try:
        app.run(
            host=app_config.host,
            port=app_config.port,
            debug=app_config.debug
        )
    finally:
        stop_logging()
