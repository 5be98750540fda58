#!/usr/bin/env python3
"""
Fetch AEMET CAP warnings once, or every AEMET_INTERVAL_SECONDS.
"""

import argparse
import logging
import sys

from aemet_alerts.config import Settings, load_env_files
from aemet_alerts.cron import AlertScheduler, run_once
from aemet_alerts.errors import ConfigError
from aemet_alerts.logging_setup import configure_logging

logger = logging.getLogger('aemet_alerts.cron')


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument('--once', action='store_true', help='run a single fetch and exit')
    args = parser.parse_args(argv)

    load_env_files()
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    try:
        settings.validate()
    except ConfigError as e:
        # refuse to guess endpoints
        logger.error("%s", e)
        return 1

    if args.once:
        report = run_once(settings)
        return 0 if not report.failed_areas else 2

    scheduler = AlertScheduler(lambda: run_once(settings), interval=settings.interval_seconds)
    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        logger.info("Stopping")
        scheduler.stop()
    return 0


if __name__ == '__main__':
    sys.exit(main())
