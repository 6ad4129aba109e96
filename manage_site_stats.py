#!/usr/bin/env python3
"""
Maintenance script for the SiteStats data directory:
- clean up idle online presence entries (run from cron)
- show the counters and document sizes
- inspect a single visitor record
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from config_manager import ConfigManager
from site_stats.errors import StorageError
from site_stats.visit_counter.factory import create_visit_counter_module

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="SiteStats maintenance script")
    parser.add_argument("--config", default="site_stats_config.json",
                        help="Configuration file")
    parser.add_argument("--data-dir", type=Path,
                        help="Data directory (defaults to the configured one)")
    parser.add_argument("--cleanup", action="store_true",
                        help="Remove online presence entries past the online timeout")
    parser.add_argument("--stats", action="store_true",
                        help="Show counters and document sizes")
    parser.add_argument("--visitor", metavar="IP",
                        help="Show the ledger entry for one client")

    args = parser.parse_args(argv)

    config_manager = ConfigManager(args.config)
    data_dir = args.data_dir or Path(config_manager.get_paths_config().data_dir)

    try:
        module = create_visit_counter_module(
            config_provider=config_manager.get_site_stats_config,
            data_dir=data_dir
        )
        service = module["service"]


        if args.cleanup:
            removed = service.cleanup_online_presence()
            print(json.dumps({"removed": removed}, indent=2))

        if args.stats:
            print(json.dumps(service.get_summary(), indent=2, ensure_ascii=False))

        if args.visitor:
            record = service.get_visitor(args.visitor)
            if record is None:
                logger.warning(f"No record for {args.visitor}")
                return 1
            print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
    except StorageError as e:
        logger.error(f"Storage failure: {e}")
        return 2

    if not (args.cleanup or args.stats or args.visitor):
        parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
