"""
Markdown Report Writer
======================

Assembles narrative, tables and figure links into the pricing and churn
reports.
"""

import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import pandas as pd
from loguru import logger

from config import REPORTS_DIR
from retail_insights.models.evaluator import EvaluationReport
from retail_insights.models.trainer import SelectedModel
from retail_insights.pricing.unit_analyzer import PriceSummary


def format_value(value) -> str:
    """Render a table cell; floats get four decimals."""
    if isinstance(value, float):
        return "n/a" if pd.isna(value) else f"{value:.4f}"
    return str(value)


def markdown_table(df: pd.DataFrame, index: bool = False) -> str:
    """Render a DataFrame as a pipe table."""
    if index:
        df = df.reset_index()
    header = "| " + " | ".join(str(col) for col in df.columns) + " |"
    divider = "|" + "|".join("---" for _ in df.columns) + "|"
    rows = [
        "| " + " | ".join(format_value(value) for value in row) + " |"
        for row in df.itertuples(index=False)
    ]
    return "\n".join([header, divider, *rows]) + "\n"


def quantile_table(summaries: Mapping[str, PriceSummary]) -> str:
    """One row per group: product count plus the five-number summary."""
    rows = []
    for label, summary in summaries.items():
        row = {"group": label, "products": summary.n_products}
        row.update({name: float(value) for name, value in summary.quantiles.items()})
        rows.append(row)
    if not rows:
        return "_No groups analyzed._\n"
    return markdown_table(pd.DataFrame(rows))


class ReportWriter:
    """Build a Markdown report section by section and write it to disk."""

    def __init__(self, title: str, output_dir: Optional[Path] = None):
        self.title = title
        self.output_dir = Path(output_dir or REPORTS_DIR)
        self.sections: List[str] = [f"# {title}\n"]

    def add_text(self, text: str) -> "ReportWriter":
        self.sections.append(text.strip() + "\n")
        return self

    def add_heading(self, heading: str, level: int = 2) -> "ReportWriter":
        self.sections.append(f"{'#' * level} {heading}\n")
        return self

    def add_table(self, df: pd.DataFrame, index: bool = False) -> "ReportWriter":
        self.sections.append(markdown_table(df, index=index))
        return self

    def add_figure(self, path: Path, caption: str) -> "ReportWriter":
        """Link a saved figure relative to the report directory."""
        relative = Path(os.path.relpath(Path(path), self.output_dir)).as_posix()
        self.sections.append(f"![{caption}]({relative})\n")
        return self

    def add_price_summaries(
        self,
        heading: str,
        summaries: Mapping[str, PriceSummary],
        figures: Optional[Dict[str, Path]] = None
    ) -> "ReportWriter":
        """Quantile table for a set of groups followed by their charts."""
        self.add_heading(heading)
        self.sections.append(quantile_table(summaries))
        for name, path in (figures or {}).items():
            self.add_figure(path, name.replace("_", " "))
        return self

    def add_data_quality(self, quality: Mapping, n_clean: int) -> "ReportWriter":
        """Row counts, duplicates, missing values and label balance of the raw records."""
        self.add_heading("Data quality")
        self.add_text(
            f"{quality['total_rows']} raw records with {quality['total_columns']} columns, "
            f"{quality['duplicates']} duplicate rows; {n_clean} rows kept after cleaning."
        )
        missing = {col: n for col, n in quality["missing_values"].items() if n}
        if missing:
            self.add_table(pd.DataFrame({"column": list(missing), "missing": list(missing.values())}))
        if "target_distribution" in quality:
            self.add_table(pd.DataFrame({
                "status": list(quality["target_distribution"]),
                "customers": list(quality["target_distribution"].values()),
                "share": list(quality["target_balance"].values()),
            }))
        return self

    def add_model_selection(
        self,
        leaderboard: pd.DataFrame,
        selected: SelectedModel
    ) -> "ReportWriter":
        """Leaderboard of grid-search trials and the promoted configuration."""
        self.add_heading("Model selection")
        self.add_text(
            "Each family was tuned by cross-validated grid search on mean AUC. "
            "The best configurations per family were:"
        )
        self.add_table(leaderboard)
        params = ", ".join(f"{k}={v}" for k, v in selected.params.items())
        self.add_text(
            f"Promoted model: **{selected.family}** ({params}) "
            f"with cross-validated AUC {selected.cv_auc:.4f}."
        )
        return self

    def add_evaluation(
        self,
        report: EvaluationReport,
        top_features: int = 10
    ) -> "ReportWriter":
        """Test AUC, confusion matrix, importance ranking and revenue at risk."""
        self.add_heading("Evaluation on held-out customers")
        self.add_text(
            f"Test AUC: **{report.test_auc:.4f}** on {report.n_test} customers "
            f"(decision threshold {report.threshold})."
        )
        self.add_heading("Confusion matrix", level=3)
        self.add_table(report.confusion, index=True)
        self.add_heading("Feature importance", level=3)
        self.add_table(report.feature_importance.head(top_features))
        self.add_heading("Revenue at risk", level=3)
        self.add_text(
            f"If nothing changes, customers predicted to leave account for "
            f"**{report.revenue_at_risk:.2%}** of monthly charges in the test set."
        )
        return self

    def render(self) -> str:
        return "\n".join(self.sections)

    def write(self, filename: str) -> Path:
        """Write the report and return its path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / filename
        filepath.write_text(self.render(), encoding="utf-8")
        logger.info(f"Report written to {filepath}")
        return filepath
