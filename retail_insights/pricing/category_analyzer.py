"""
Category Price Analyzer
=======================

Unit-price distributions restricted to a product category.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd
from loguru import logger

from .unit_analyzer import MATCH_MODES, PriceSummary, UnitAnalyzer, UnitGroup


@dataclass(frozen=True)
class CategoryMatcher:
    """Predicate over product category labels (case-sensitive)."""

    pattern: str
    match: str = "contains"
    regex: bool = True

    def __post_init__(self):
        if self.match not in MATCH_MODES:
            raise ValueError(f"Unknown match mode '{self.match}'. Available: {MATCH_MODES}")

    def __call__(self, categories: pd.Series) -> pd.Series:
        if self.match == "exact":
            return categories == self.pattern
        return categories.str.contains(self.pattern, case=True, regex=self.regex, na=False)


@dataclass(frozen=True)
class CategorySpec:
    """A configured category: its matcher, unit group and price cutoff."""

    name: str
    matcher: CategoryMatcher
    group: Optional[UnitGroup] = None
    max_price: Optional[float] = None


def categories_from_config(config: dict) -> Dict[str, CategorySpec]:
    """Build the configured category analyses keyed by name."""
    specs = {}
    for name, spec in config.get("pricing", {}).get("categories", {}).items():
        group = None
        if spec.get("unit"):
            group = UnitGroup(name=name, unit=spec["unit"], match=spec.get("unit_match", "contains"))
        specs[name] = CategorySpec(
            name=name,
            matcher=CategoryMatcher(pattern=spec["pattern"], match=spec.get("match", "contains")),
            group=group,
            max_price=spec.get("max_price"),
        )
    return specs


class CategoryAnalyzer(UnitAnalyzer):
    """UnitAnalyzer with a category pre-filter."""

    def filter_category(self, products: pd.DataFrame, matcher: CategoryMatcher) -> pd.DataFrame:
        """Products whose category label satisfies ``matcher``."""
        subset = products[matcher(products["product_category"])]
        logger.info(f"Category '{matcher.pattern}': {len(subset)} of {len(products)} products")
        return subset

    def analyze_category(
        self,
        products: pd.DataFrame,
        matcher: CategoryMatcher,
        group: Optional[UnitGroup] = None,
        max_price: Optional[float] = None,
        label: Optional[str] = None
    ) -> PriceSummary:
        """
        Price-per-unit summary for one category.

        Args:
            products: Normalized products
            matcher: Category predicate
            group: Optional unit group applied after the category filter
            max_price: Price-per-unit cutoff
            label: Report label, defaults to the matcher pattern

        Returns:
            PriceSummary for the category
        """
        subset = self.filter_category(products, matcher)
        if group is not None:
            subset = self.select_unit_group(subset, group)
        return self.summarize(subset, label or matcher.pattern, max_price)

    def analyze_configured(
        self,
        products: pd.DataFrame,
        specs: Optional[Dict[str, CategorySpec]] = None
    ) -> Dict[str, PriceSummary]:
        """Summaries for every configured category."""
        specs = specs or categories_from_config(self.config)
        return {
            name: self.analyze_category(
                products, spec.matcher, spec.group, spec.max_price, label=name
            )
            for name, spec in specs.items()
        }
