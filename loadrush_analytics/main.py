"""
Analytics Service Entry Point

Can run in two modes:
1. Service mode (default): live dashboard, Kafka change feed, insights published
2. One-shot mode: compute the current insight summary once and print it as JSON

Usage:
    # Service mode
    loadrush-analytics

    # One-shot
    loadrush-analytics --once
    loadrush-analytics --once --database-url sqlite:///loadrush.db
"""

import argparse
import json
import sys

from loadrush_analytics.core.config import Config
from loadrush_analytics.core.logging import get_logger

logger = get_logger("main", labels={"component": "main"})


def run_once(database_url: str) -> int:
    """Print one insight summary. Exit code 1 if any aggregator failed."""
    from loadrush_analytics.handlers import AnalyticsDashboard
    from loadrush_analytics.store.sql import open_store

    dashboard = AnalyticsDashboard(open_store(database_url), poll_seconds=0)
    dashboard.start()
    try:
        summary = dashboard.summary
    finally:
        dashboard.stop()

    print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
    return 1 if summary.error else 0


def run_service() -> int:
    from loadrush_analytics.workers.base import run_worker
    from loadrush_analytics.workers.insight_worker import InsightWorker

    logger.info("Starting analytics service")
    run_worker(InsightWorker())
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="LoadRush Analytics Service")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Compute the current insight summary, print it and exit."
    )
    parser.add_argument("--database-url", default=Config.DATABASE_URL)

    args = parser.parse_args(argv)

    if args.once:
        return run_once(args.database_url)
    return run_service()


if __name__ == "__main__":
    sys.exit(main())
