"""
Unit Price Analyzer
===================

Price-per-unit distributions per package unit group.

A transaction's price per unit is ``sales_value / quantity / size_value``.
Transactions with a non-positive quantity or size, or with a missing
value anywhere in that expression, never enter an aggregate.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd
from loguru import logger

from config import get_config

PRICE_COL = "price_per_unit"
AVG_PRICE_COL = "avg_price_per_unit"

QUANTILES = {
    "min": 0.0,
    "q1": 0.25,
    "median": 0.5,
    "q3": 0.75,
    "max": 1.0,
}

MATCH_MODES = ("exact", "contains")


@dataclass(frozen=True)
class UnitGroup:
    """A named package unit with the price cutoff applied before plotting."""

    name: str
    unit: str
    match: str = "contains"
    max_price: Optional[float] = None

    def __post_init__(self):
        if self.match not in MATCH_MODES:
            raise ValueError(f"Unknown match mode '{self.match}'. Available: {MATCH_MODES}")

    def matches(self, units: pd.Series) -> pd.Series:
        """Boolean mask of unit tokens belonging to this group."""
        if self.match == "exact":
            return units == self.unit
        return units.str.contains(self.unit, regex=False, na=False)


@dataclass(frozen=True)
class PriceSummary:
    """
    Distribution outputs for one unit group or category.

    Attributes:
        label: Group or category name
        histogram: One row per transaction carrying its product's average
            price per unit (and demographics when joined)
        boxplot: One average price per unit per product, indexed by product
        quantiles: min, q1, median, q3 and max of ``boxplot``
    """

    label: str
    histogram: pd.DataFrame
    boxplot: pd.Series
    quantiles: pd.Series

    @property
    def n_products(self) -> int:
        return int(self.boxplot.size)


def quantile_summary(values: Iterable[float]) -> pd.Series:
    """
    Five-number summary using linear interpolation between order statistics.

    Missing values are dropped first; an empty input yields all-NaN.
    """
    series = pd.Series(values, dtype=float).dropna()
    if series.empty:
        return pd.Series(np.nan, index=list(QUANTILES), dtype=float)

    result = series.quantile(list(QUANTILES.values()), interpolation="linear")
    result.index = list(QUANTILES)
    result.name = None
    return result


def compute_price_per_unit(joined: pd.DataFrame) -> pd.DataFrame:
    """
    Add the per-transaction price per unit, dropping rows where it is undefined.

    Args:
        joined: Transactions joined to normalized products

    Returns:
        New DataFrame restricted to transactions with a finite price per unit
    """
    valid = (
        (joined["quantity"] > 0)
        & (joined["size_value"] > 0)
        & joined["sales_value"].notna()
    )
    priced = joined.loc[valid].copy()
    priced[PRICE_COL] = priced["sales_value"] / priced["quantity"] / priced["size_value"]
    priced = priced[np.isfinite(priced[PRICE_COL])]

    excluded = len(joined) - len(priced)
    if excluded:
        logger.debug(f"Excluded {excluded} transactions with undefined price per unit")
    return priced


def unit_groups_from_config(config: dict) -> Dict[str, UnitGroup]:
    """Build the configured unit groups keyed by name."""
    groups = {}
    for name, spec in config.get("pricing", {}).get("unit_groups", {}).items():
        groups[name] = UnitGroup(
            name=name,
            unit=spec["unit"],
            match=spec.get("match", "contains"),
            max_price=spec.get("max_price"),
        )
    return groups


class UnitAnalyzer:
    """Price-per-unit distributions for products grouped by package unit."""

    def __init__(
        self,
        transactions: pd.DataFrame,
        demographics: Optional[pd.DataFrame] = None,
        config: Optional[dict] = None
    ):
        """
        Initialize UnitAnalyzer.

        Args:
            transactions: Transaction log
            demographics: Household demographics for the histogram path
            config: Configuration dictionary
        """
        self.config = config or get_config()
        self.transactions = transactions
        self.demographics = demographics

    def select_unit_group(self, products: pd.DataFrame, group: UnitGroup) -> pd.DataFrame:
        """Normalized products whose unit token belongs to ``group``."""
        return products[group.matches(products["size_unit"])]

    def transaction_prices(self, products: pd.DataFrame) -> pd.DataFrame:
        """
        Inner join products to transactions and compute price per unit.

        Products without any transaction drop out of the join.
        """
        joined = products.merge(self.transactions, on="product_id", how="inner")
        return compute_price_per_unit(joined)

    @staticmethod
    def average_price_per_unit(priced: pd.DataFrame) -> pd.Series:
        """Unweighted mean price per unit per product."""
        return priced.groupby("product_id")[PRICE_COL].mean().rename(AVG_PRICE_COL)

    def summarize(
        self,
        products: pd.DataFrame,
        label: str,
        max_price: Optional[float] = None
    ) -> PriceSummary:
        """
        Build histogram, boxplot and quantile outputs for a product subset.

        Args:
            products: Normalized products already restricted to the subset
            label: Name used in logs and reports
            max_price: Products whose average exceeds this are dropped

        Returns:
            PriceSummary for the subset
        """
        priced = self.transaction_prices(products)
        averages = self.average_price_per_unit(priced)

        if max_price is not None:
            kept = averages[averages <= max_price]
            logger.info(
                f"{label}: {len(averages) - len(kept)} of {len(averages)} products "
                f"above price cutoff {max_price}"
            )
            averages = kept

        histogram = priced[priced["product_id"].isin(averages.index)]
        histogram = histogram.merge(
            averages.reset_index(), on="product_id", how="inner"
        )
        if self.demographics is not None:
            histogram = histogram.merge(self.demographics, on="household_id", how="inner")

        if averages.empty:
            logger.warning(f"{label}: no products with a defined price per unit")

        quantiles = quantile_summary(averages)
        logger.info(f"{label}: {len(averages)} products, median price per unit {quantiles['median']:.4f}")

        return PriceSummary(
            label=label,
            histogram=histogram.reset_index(drop=True),
            boxplot=averages,
            quantiles=quantiles,
        )

    def analyze(
        self,
        products: pd.DataFrame,
        group: UnitGroup,
        max_price: Optional[float] = None
    ) -> PriceSummary:
        """
        Price-per-unit summary for one unit group.

        Args:
            products: Normalized products
            group: Unit group to analyze
            max_price: Overrides the group's own cutoff

        Returns:
            PriceSummary for the group
        """
        subset = self.select_unit_group(products, group)
        cutoff = max_price if max_price is not None else group.max_price
        return self.summarize(subset, group.name, cutoff)

    def analyze_all(
        self,
        products: pd.DataFrame,
        groups: Optional[Dict[str, UnitGroup]] = None
    ) -> Dict[str, PriceSummary]:
        """Summaries for every configured unit group."""
        groups = groups or unit_groups_from_config(self.config)
        return {name: self.analyze(products, group) for name, group in groups.items()}
