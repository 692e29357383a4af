"""
Churn Analysis Script
=====================

Command-line script to select, fit and evaluate the churn model.

Usage:
    python scripts/run_churn.py --data customer_retention.csv --save-model
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger

from config import get_config
from retail_insights.pipeline import run_churn_pipeline
from retail_insights.utils import format_metrics, setup_logging


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Train and evaluate churn models")

    parser.add_argument(
        "--data",
        type=str,
        default=None,
        help="Name of the customer CSV in data/raw/ (defaults to config)"
    )
    parser.add_argument(
        "--families",
        type=str,
        nargs="+",
        choices=["mars", "bagging", "random_forest"],
        default=None,
        help="Restrict the search to these model families"
    )
    parser.add_argument(
        "--save-model",
        action="store_true",
        help="Persist the final model with joblib"
    )
    parser.add_argument(
        "--no-mlflow",
        action="store_true",
        help="Disable MLflow tracking"
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
    """Main churn analysis function."""
    args = parse_args()

    config = get_config()
    logging_config = config.get("logging", {})
    setup_logging(
        level=args.log_level or logging_config.get("level", "INFO"),
        log_file=logging_config.get("log_file")
    )
    logger.info("Starting churn analysis...")

    churn_config = config.setdefault("churn", {})
    if args.data:
        churn_config["data_file"] = args.data
    if args.families:
        for family, family_config in churn_config.get("models", {}).items():
            family_config["enabled"] = family in args.families
    if args.no_mlflow:
        config.setdefault("mlflow", {})["enabled"] = False

    results = run_churn_pipeline(config, save_model=args.save_model)

    logger.info(f"\nLeaderboard:\n{results.leaderboard}")
    logger.info(f"Selected model: {results.fitted.family}")
    metrics = format_metrics({
        "cv_auc": results.fitted.selected.cv_auc,
        "test_auc": results.evaluation.test_auc,
    })
    logger.info(f"Metrics: {metrics}")
    logger.info(f"Revenue at risk: {results.evaluation.revenue_at_risk:.2%}")
    logger.info(f"Report: {results.report_path}")


if __name__ == "__main__":
    main()
