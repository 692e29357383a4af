"""
Pricing Analysis Script
=======================

Command-line script to run the price-per-unit analysis and write the report.

Usage:
    python scripts/run_pricing.py --source-dir data/raw/complete_journey
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger

from config import get_config
from retail_insights.pipeline import run_pricing_pipeline
from retail_insights.utils import setup_logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Run the price-per-unit analysis")

    parser.add_argument(
        "--source-dir",
        type=str,
        default=None,
        help="Directory holding products, transactions and demographics tables"
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Base URL serving the tables (overrides --source-dir)"
    )
    parser.add_argument(
        "--no-report",
        action="store_true",
        help="Skip charts and the Markdown report"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to logging.level in config.yaml)"
    )

    return parser.parse_args()


def main():
    """Main pricing analysis function."""
    args = parse_args()

    config = get_config()
    logging_config = config.get("logging", {})
    setup_logging(
        level=args.log_level or logging_config.get("level", "INFO"),
        log_file=logging_config.get("log_file")
    )
    logger.info("Starting pricing analysis...")

    source = config.setdefault("pricing", {}).setdefault("source", {})
    if args.source_dir:
        source["directory"] = args.source_dir
    if args.base_url:
        source["base_url"] = args.base_url

    results = run_pricing_pipeline(config, render=not args.no_report)

    for label, summary in {**results.unit_summaries, **results.category_summaries}.items():
        logger.info(f"{label}: {summary.n_products} products\n{summary.quantiles}")
    if results.report_path:
        logger.info(f"Report: {results.report_path}")


if __name__ == "__main__":
    main()
