"""
Pricing Plots
=============

Histogram, boxplot and scatter charts for the pricing analysis.
"""

from pathlib import Path
from typing import Dict, Optional, Tuple

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from loguru import logger

from config import FIGURES_DIR, get_config
from retail_insights.utils import slugify

from .unit_analyzer import AVG_PRICE_COL, PRICE_COL, PriceSummary


class PricingPlotter:
    """Render and save pricing charts."""

    def __init__(self, config: Optional[dict] = None, output_dir: Optional[Path] = None):
        """
        Initialize PricingPlotter.

        Args:
            config: Configuration dictionary
            output_dir: Directory for PNG files, defaults to reports/figures
        """
        self.config = config or get_config()
        self.bins = self.config.get("pricing", {}).get("histogram_bins", 30)
        self.output_dir = Path(output_dir or FIGURES_DIR)
        self.saved_figures: Dict[str, Path] = {}

    def _save(self, fig: plt.Figure, name: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / f"{name}.png"
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        self.saved_figures[name] = filepath
        logger.info(f"Saved {name} plot to {filepath}")
        return filepath

    def plot_histogram(
        self,
        summary: PriceSummary,
        facet: Optional[str] = None,
        save: bool = True
    ) -> plt.Figure:
        """
        Histogram of average price per unit, one count per transaction.

        Args:
            summary: Output of an analyzer
            facet: Demographic column to facet by (income, household_size)
            save: Whether to save figure

        Returns:
            Matplotlib figure
        """
        data = summary.histogram
        if facet is not None and facet not in data.columns:
            raise ValueError(f"Cannot facet by '{facet}': column not in histogram data")

        grid = sns.displot(
            data=data,
            x=AVG_PRICE_COL,
            col=facet,
            col_wrap=3 if facet else None,
            bins=self.bins,
            height=3,
            facet_kws={"sharey": False},
        )
        grid.set_axis_labels("Average price per unit", "Transactions")
        grid.figure.suptitle(f"{summary.label}: average price per unit", y=1.02)
        fig = grid.figure

        if save:
            suffix = f"_by_{facet}" if facet else ""
            self._save(fig, f"histogram_{slugify(summary.label)}{suffix}")
        return fig

    def plot_boxplot(
        self,
        summaries: Dict[str, PriceSummary],
        name: str = "boxplot",
        save: bool = True,
        figsize: Tuple[int, int] = (8, 5)
    ) -> plt.Figure:
        """
        Side-by-side boxplots of per-product average price per unit.

        Args:
            summaries: Summaries keyed by label
            name: File name stem
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        frames = [
            pd.DataFrame({"group": label, AVG_PRICE_COL: summary.boxplot.values})
            for label, summary in summaries.items()
        ]
        data = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(
            columns=["group", AVG_PRICE_COL]
        )

        fig, ax = plt.subplots(figsize=figsize)
        sns.boxplot(data=data, x="group", y=AVG_PRICE_COL, ax=ax)
        ax.set_xlabel("")
        ax.set_ylabel("Average price per unit")
        ax.set_title("Average price per unit by product")
        ax.grid(True, alpha=0.3, axis="y")
        plt.tight_layout()

        if save:
            self._save(fig, name)
        return fig

    def plot_sales_scatter(
        self,
        view: pd.DataFrame,
        y: str,
        title: str,
        name: str,
        save: bool = True,
        figsize: Tuple[int, int] = (8, 5)
    ) -> plt.Figure:
        """
        Scatter of a sales measure against average price per unit with a
        second-order trend line.

        Args:
            view: Output of SalesViews.average_sales_view or total_sales_view
            y: Column plotted on the y axis
            title: Plot title
            name: File name stem
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        fig, ax = plt.subplots(figsize=figsize)
        sns.scatterplot(data=view, x=AVG_PRICE_COL, y=y, alpha=0.4, ax=ax)
        if len(view) > 3:
            sns.regplot(data=view, x=AVG_PRICE_COL, y=y, order=2, scatter=False, color="red", ax=ax)
        ax.set_xlabel("Average price per unit")
        ax.set_ylabel(y.replace("_", " ").capitalize())
        ax.set_title(title)
        ax.grid(True, alpha=0.3)
        plt.tight_layout()

        if save:
            self._save(fig, name)
        return fig

    def plot_quantity_scatter(
        self,
        view: pd.DataFrame,
        name: str = "price_vs_quantity",
        save: bool = True,
        figsize: Tuple[int, int] = (8, 5)
    ) -> plt.Figure:
        """Per-transaction price per unit against quantity."""
        fig, ax = plt.subplots(figsize=figsize)
        sns.scatterplot(data=view, x=PRICE_COL, y="quantity", alpha=0.3, ax=ax)
        ax.set_xlabel("Price per unit")
        ax.set_ylabel("Quantity")
        ax.set_title("Price per unit vs quantity purchased")
        ax.grid(True, alpha=0.3)
        plt.tight_layout()

        if save:
            self._save(fig, name)
        return fig
