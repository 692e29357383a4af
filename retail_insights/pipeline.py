"""
Analysis Pipelines
==================

End-to-end runs of the pricing and churn analyses. Each stage consumes the
previous stage's output and returns new frames or frozen results.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger

from config import REPORTS_DIR, get_config
from retail_insights.data import ChurnPreprocessor, DataLoader, JourneyTables, ProductNormalizer
from retail_insights.models import (
    EvaluationReport,
    FamilySearchResult,
    FittedModel,
    ModelEvaluator,
    ModelTrainer,
)
from retail_insights.pricing import (
    CategoryAnalyzer,
    PriceSummary,
    PricingPlotter,
    SalesViews,
    UnitAnalyzer,
    unit_groups_from_config,
)
from retail_insights.reporting import ReportWriter
from retail_insights.utils import slugify


@dataclass(frozen=True)
class PricingResults:
    unit_summaries: Dict[str, PriceSummary]
    category_summaries: Dict[str, PriceSummary]
    average_sales: pd.DataFrame
    total_sales: pd.DataFrame
    quantity_scatter: pd.DataFrame
    report_path: Optional[Path]


@dataclass(frozen=True)
class ChurnResults:
    searches: Dict[str, FamilySearchResult]
    leaderboard: pd.DataFrame
    fitted: FittedModel
    evaluation: EvaluationReport
    quality: dict
    report_path: Optional[Path]


def run_pricing_pipeline(
    config: Optional[dict] = None,
    tables: Optional[JourneyTables] = None,
    output_dir: Optional[Path] = None,
    render: bool = True
) -> PricingResults:
    """
    Run the pricing analysis.

    Args:
        config: Configuration dictionary
        tables: Pre-loaded tables; loaded from the provider when omitted
        output_dir: Report directory (figures go to its figures/ folder)
        render: Whether to draw charts and write the Markdown report

    Returns:
        PricingResults
    """
    config = config or get_config()
    pricing_config = config.get("pricing", {})
    output_dir = Path(output_dir or REPORTS_DIR)

    tables = tables or DataLoader(config).load_journey_tables()
    products = ProductNormalizer(config).normalize(tables.products)

    unit_analyzer = UnitAnalyzer(tables.transactions, tables.demographics, config)
    unit_summaries = unit_analyzer.analyze_all(products)

    category_analyzer = CategoryAnalyzer(tables.transactions, tables.demographics, config)
    category_summaries = category_analyzer.analyze_configured(products)

    views_config = pricing_config.get("sales_views", {})
    groups = unit_groups_from_config(config)
    view_group = groups.get(views_config.get("unit_group", "ounces"))
    view_products = unit_analyzer.select_unit_group(products, view_group) if view_group else products
    view_max_price = view_group.max_price if view_group else None

    views = SalesViews(unit_analyzer)
    average_sales = views.average_sales_view(view_products, max_price=view_max_price)
    total_sales = views.total_sales_view(
        view_products,
        max_price=view_max_price,
        max_total_sales=views_config.get("max_total_sales"),
    )
    quantity_scatter = views.quantity_scatter(
        view_products, price_ceiling=views_config.get("scatter_price_ceiling", 0.35)
    )

    report_path = None
    if render:
        plotter = PricingPlotter(config, output_dir=output_dir / "figures")
        facets = pricing_config.get("facets", [])
        writer = ReportWriter("Price per unit analysis", output_dir=output_dir)
        writer.add_text(
            "Price per unit is sales value divided by quantity and package size. "
            "Products are averaged over their transactions; averages above each "
            "group's cutoff are excluded as outliers."
        )

        for heading, summaries in [("Unit groups", unit_summaries), ("Categories", category_summaries)]:
            figures = {}
            for label, summary in summaries.items():
                if summary.histogram.empty:
                    continue
                stem = f"histogram_{slugify(label)}"
                plt.close(plotter.plot_histogram(summary))
                figures[f"{label}_histogram"] = plotter.saved_figures[stem]
                for facet in facets:
                    if facet in summary.histogram.columns:
                        plt.close(plotter.plot_histogram(summary, facet=facet))
                        figures[f"{label}_by_{facet}"] = plotter.saved_figures[f"{stem}_by_{facet}"]
            if any(summary.n_products for summary in summaries.values()):
                name = f"boxplot_{slugify(heading)}"
                plt.close(plotter.plot_boxplot(summaries, name=name))
                figures[name] = plotter.saved_figures[name]
            writer.add_price_summaries(heading, summaries, figures)

        writer.add_heading("Sales value and price per unit")
        for view, y, title, name in [
            (average_sales, "avg_sales_value", "Average sales value per product", "average_sales_value"),
            (total_sales, "total_sales_value", "Total sales value per product", "total_sales_value"),
        ]:
            if view.empty:
                continue
            plt.close(plotter.plot_sales_scatter(view, y=y, title=title, name=name))
            writer.add_figure(plotter.saved_figures[name], title)
        if not quantity_scatter.empty:
            plt.close(plotter.plot_quantity_scatter(quantity_scatter))
            writer.add_figure(plotter.saved_figures["price_vs_quantity"], "Price per unit vs quantity")

        report_path = writer.write("pricing_report.md")

    logger.info("Pricing analysis complete")
    return PricingResults(
        unit_summaries=unit_summaries,
        category_summaries=category_summaries,
        average_sales=average_sales,
        total_sales=total_sales,
        quantity_scatter=quantity_scatter,
        report_path=report_path,
    )


def run_churn_pipeline(
    config: Optional[dict] = None,
    records: Optional[pd.DataFrame] = None,
    output_dir: Optional[Path] = None,
    render: bool = True,
    save_model: bool = False
) -> ChurnResults:
    """
    Run the churn model selection and evaluation.

    Args:
        config: Configuration dictionary
        records: Raw customer records; read from the configured CSV when omitted
        output_dir: Report directory (figures go to its figures/ folder)
        render: Whether to draw charts and write the Markdown report
        save_model: Whether to persist the final model with joblib

    Returns:
        ChurnResults
    """
    config = config or get_config()
    output_dir = Path(output_dir or REPORTS_DIR)
    loader = DataLoader(config)

    churn_config = config.get("churn", {})
    if records is None:
        records = loader.load_raw_data(churn_config.get("data_file", "customer_retention.csv"))

    quality = loader.validate_data(records)
    logger.info(
        f"Data quality: {quality['total_rows']} rows, {quality['duplicates']} duplicates, "
        f"{sum(quality['missing_values'].values())} missing values"
    )
    df = loader.prepare_customer_records(records)

    X_train, X_test, y_train, y_test = loader.get_train_test_split(df)

    preprocessor = ChurnPreprocessor(config).resolve_features(X_train)
    trainer = ModelTrainer(config, preprocessor=preprocessor)
    searches = trainer.search_all(X_train, y_train)
    leaderboard = trainer.leaderboard(searches)
    selected = trainer.select_model(searches)
    fitted = trainer.fit_final(selected, X_train, y_train)

    evaluator = ModelEvaluator(config, output_dir=output_dir / "figures")
    evaluation = evaluator.evaluate(fitted, X_train, y_train, X_test, y_test)

    if save_model:
        trainer.save_model(fitted)

    report_path = None
    if render:
        writer = ReportWriter("Customer churn prediction", output_dir=output_dir)
        test_share = churn_config.get("test_size", 0.3)
        writer.add_data_quality(quality, n_clean=len(df))
        writer.add_text(
            f"{len(df)} customers with recorded total charges were split "
            f"{1 - test_share:.0%}/{test_share:.0%} into "
            f"training ({len(X_train)}) and test ({len(X_test)}) sets, stratified by status."
        )
        writer.add_model_selection(leaderboard, selected)
        writer.add_evaluation(evaluation, top_features=evaluator.top_features)

        plt.close(evaluator.plot_confusion_matrix(evaluation))
        plt.close(evaluator.plot_roc_curve(fitted, X_test, y_test))
        plt.close(evaluator.plot_feature_importance(evaluation))
        for name, path in evaluator.saved_figures.items():
            writer.add_figure(path, name.replace("_", " ").capitalize())

        report_path = writer.write("churn_report.md")

    logger.info("Churn analysis complete")
    return ChurnResults(
        searches=searches,
        leaderboard=leaderboard,
        fitted=fitted,
        evaluation=evaluation,
        quality=quality,
        report_path=report_path,
    )
